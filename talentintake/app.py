import argparse
import json
import sys
from pathlib import Path

from . import __version__
from .analysis import build_analysis_provider
from .config import load_settings
from .database import init_database
from .enrichment import build_gateway
from .errors import IntakeError
from .events import to_ndjson
from .models import CandidateSubmission, ScoringWeights
from .orchestrator import BatchOptions, BatchOrchestrator
from .schema import validate_submission
from .scoring import ScoringEngine
from .storage import CandidateStore
from .tabular import data_quality, read_submissions


def _db_path(args: argparse.Namespace, settings) -> Path:
    return Path(args.db) if getattr(args, "db", None) else settings.db_path


def build_orchestrator(settings, store: CandidateStore) -> BatchOrchestrator:
    return BatchOrchestrator(
        store=store,
        gateway=build_gateway(settings),
        scoring_engine=ScoringEngine(build_analysis_provider(settings)),
    )


def _options(args: argparse.Namespace) -> BatchOptions:
    job_description = None
    if getattr(args, "job_description", None):
        jd_path = Path(args.job_description)
        if not jd_path.exists():
            raise SystemExit(f"Job description file not found: {jd_path}")
        job_description = jd_path.read_text(encoding="utf-8")
    return BatchOptions(
        force_reenrich=args.force_reenrich,
        require_enrichment_for_scoring=args.require_enrichment,
        job_description=job_description,
    )


def _weights(args: argparse.Namespace):
    if not getattr(args, "weights", None):
        return None
    path = Path(args.weights)
    if not path.exists():
        raise SystemExit(f"Weights file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    try:
        return ScoringWeights.from_dict(data)
    except IntakeError as e:
        raise SystemExit(f"Invalid weights: {e.message}")


def _emit(events) -> int:
    """Write events as NDJSON to stdout; return the number of failed items."""
    failed = 0
    for event in events:
        print(to_ndjson(event), flush=True)
        if event["type"] == "item" and not event["success"]:
            failed += 1
        if event["type"] == "error":
            failed += 1
    return failed


def cmd_init_db(args: argparse.Namespace) -> None:
    settings = load_settings()
    db_path = _db_path(args, settings)
    init_database(db_path)
    print(f"Database ready: {db_path}")


def cmd_process(args: argparse.Namespace) -> None:
    settings = load_settings()
    store = CandidateStore(_db_path(args, settings))
    orchestrator = build_orchestrator(settings, store)
    events = orchestrator.process_file(
        args.tenant,
        Path(args.input),
        weights=_weights(args),
        options=_options(args),
        page=args.page,
        page_size=args.page_size,
    )
    try:
        failed = _emit(events)
    except KeyboardInterrupt:
        orchestrator.cancel()
        raise SystemExit(130)
    finally:
        store.close()
    if failed and args.strict:
        raise SystemExit(1)


def cmd_submit(args: argparse.Namespace) -> None:
    settings = load_settings()
    submission = CandidateSubmission(
        name=args.name,
        email=args.email,
        company=args.company,
        title=args.title,
        location=args.location,
        profile_handle=args.profile,
        skills=tuple(s.strip() for s in (args.skills or "").split(",") if s.strip()),
    )
    store = CandidateStore(_db_path(args, settings))
    try:
        orchestrator = build_orchestrator(settings, store)
        _emit(orchestrator.process_batch(args.tenant, [submission], _weights(args), _options(args)))
    finally:
        store.close()


def cmd_validate(args: argparse.Namespace) -> None:
    try:
        submissions = read_submissions(Path(args.input))
    except IntakeError as e:
        raise SystemExit(e.message)
    invalid = 0
    for index, submission in enumerate(submissions, start=1):
        errors = validate_submission(submission)
        if errors:
            invalid += 1
            print(f"Row {index}:")
            for e in errors:
                print(f" - {e}")
    print(f"Rows: {len(submissions)}  invalid: {invalid}  data quality: {data_quality(submissions)}%")
    if invalid:
        raise SystemExit(2)


def cmd_set_weights(args: argparse.Namespace) -> None:
    settings = load_settings()
    try:
        weights = ScoringWeights(
            open_to_work=args.open_to_work,
            skill_match=args.skill_match,
            job_stability=args.job_stability,
            engagement=args.engagement,
            company_difference=args.company_difference,
        ).validated()
    except IntakeError as e:
        raise SystemExit(f"Invalid weights: {e.message}")
    store = CandidateStore(_db_path(args, settings))
    try:
        store.set_weights(args.tenant, weights)
    finally:
        store.close()
    print(json.dumps(weights.to_dict()))


def cmd_show_weights(args: argparse.Namespace) -> None:
    settings = load_settings()
    store = CandidateStore(_db_path(args, settings))
    try:
        weights = store.get_weights(args.tenant)
    finally:
        store.close()
    source = "tenant" if weights else "default"
    print(json.dumps({"source": source, "weights": (weights or ScoringWeights()).to_dict()}))


def cmd_list(args: argparse.Namespace) -> None:
    settings = load_settings()
    store = CandidateStore(_db_path(args, settings))
    try:
        candidates = store.list_candidates(args.tenant, limit=args.limit, offset=args.offset, priority=args.priority)
        total = store.count(args.tenant)
    finally:
        store.close()
    if not candidates:
        print("No candidates for this tenant.")
        return
    print(f"Showing {len(candidates)} of {total} candidates for {args.tenant}:\n")
    for c in candidates:
        print(f"ID: {c.id}")
        print(f"  Name: {c.name}")
        print(f"  Email: {c.email}")
        print(f"  Company: {c.company}  (current: {c.current_company})")
        print(f"  Title: {c.title}")
        print(f"  Score: {c.score}  Tier: {c.priority_tier}  Potential: {c.potential_to_join}")
        print(f"  Enrichment: {c.enrichment_status}")
        print()


def _add_batch_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--tenant", required=True, help="Tenant id owning the candidates")
    p.add_argument("--weights", help="JSON file with all five scoring weights (must sum to 100)")
    p.add_argument("--force-reenrich", action="store_true", help="Re-enrich and rescore already known candidates")
    p.add_argument("--require-enrichment", action="store_true", help="Skip scoring when no profile was found")
    p.add_argument("--job-description", help="Text file with the role to match skills against")
    p.add_argument("--db", help="SQLite database path (default: INTAKE_DB_PATH or data/candidates.db)")


def main(argv=None):
    parser = argparse.ArgumentParser(prog="talentintake", description="Candidate intake: match, enrich, score")
    parser.add_argument("--version", action="store_true", help="Show version")

    subparsers = parser.add_subparsers(dest="command")

    init = subparsers.add_parser("init-db", help="Create the candidate database")
    init.add_argument("--db", help="SQLite database path")
    init.set_defaults(func=cmd_init_db)

    proc = subparsers.add_parser("process", help="Process a CSV/Excel batch, printing NDJSON events")
    proc.add_argument("--input", required=True, help="Path to .csv or .xlsx file")
    proc.add_argument("--page", type=int, help="1-based page of rows to process")
    proc.add_argument("--page-size", type=int, help="Rows per page")
    proc.add_argument("--strict", action="store_true", help="Exit 1 if any item failed")
    _add_batch_options(proc)
    proc.set_defaults(func=cmd_process)

    sub = subparsers.add_parser("submit", help="Submit a single candidate")
    sub.add_argument("--name", required=True)
    sub.add_argument("--email")
    sub.add_argument("--company")
    sub.add_argument("--title")
    sub.add_argument("--location")
    sub.add_argument("--profile", help="Profile URL (e.g. LinkedIn)")
    sub.add_argument("--skills", help="Comma-separated skills")
    _add_batch_options(sub)
    sub.set_defaults(func=cmd_submit)

    val = subparsers.add_parser("validate", help="Check a CSV/Excel batch without processing it")
    val.add_argument("--input", required=True, help="Path to .csv or .xlsx file")
    val.set_defaults(func=cmd_validate)

    sw = subparsers.add_parser("set-weights", help="Store a tenant's scoring weights")
    sw.add_argument("--tenant", required=True)
    sw.add_argument("--open-to-work", type=float, required=True)
    sw.add_argument("--skill-match", type=float, required=True)
    sw.add_argument("--job-stability", type=float, required=True)
    sw.add_argument("--engagement", type=float, required=True)
    sw.add_argument("--company-difference", type=float, required=True)
    sw.add_argument("--db", help="SQLite database path")
    sw.set_defaults(func=cmd_set_weights)

    shw = subparsers.add_parser("show-weights", help="Show the weights a tenant's batches use")
    shw.add_argument("--tenant", required=True)
    shw.add_argument("--db", help="SQLite database path")
    shw.set_defaults(func=cmd_show_weights)

    lst = subparsers.add_parser("list", help="List a tenant's candidates, best first")
    lst.add_argument("--tenant", required=True)
    lst.add_argument("--priority", choices=["High", "Medium", "Low"])
    lst.add_argument("--limit", type=int, default=20)
    lst.add_argument("--offset", type=int, default=0)
    lst.add_argument("--db", help="SQLite database path")
    lst.set_defaults(func=cmd_list)

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help(sys.stderr)


if __name__ == "__main__":
    main()
