"""
Batch orchestration.

A batch is processed item by item, in input order, as a generator of
events. Each item goes through validate, resolve, enrich, merge, score and
persist; a failure anywhere in that chain is reported on the item's event
and the batch moves on to the next item.
"""

import threading
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from .errors import (
    BatchSetupError,
    IdentityConflictError,
    IntakeError,
    PersistenceError,
    ValidationError,
    describe_error,
)
from .events import complete_event, error_event, item_event, start_event
from .identity import IdentityResolver
from .logger import get_logger
from .merge import merge
from .models import (
    DEFAULT_WEIGHTS,
    CandidateRecord,
    CandidateSubmission,
    FieldChange,
    LookupCriteria,
    MatchedBy,
    MatchResult,
    ScoringResult,
    ScoringWeights,
)
from .normalize import normalize_email
from .schema import validate_submission
from .tabular import page_slice, read_submissions

logger = get_logger()


@dataclass(frozen=True)
class BatchOptions:
    force_reenrich: bool = False
    require_enrichment_for_scoring: bool = False
    job_description: Optional[str] = None


def build_payload(
    record: CandidateRecord,
    match: MatchResult,
    was_enriched: bool,
    scoring: Optional[ScoringResult],
    changes: List[FieldChange],
    saved: bool,
    fast_path: bool = False,
) -> Dict[str, Any]:
    return {
        "candidateId": record.id,
        "name": record.name,
        "isUpdate": match.is_match,
        "matchedBy": match.matched_by,
        "wasEnriched": was_enriched,
        "enrichmentStatus": record.enrichment_status,
        "fastPath": fast_path,
        "score": record.score,
        "priorityTier": record.priority_tier,
        "scoring": scoring.to_dict() if scoring is not None else None,
        "changes": [c.to_dict() for c in changes],
        "savedToDatabase": saved,
        "candidate": record.to_dict(),
    }


class BatchOrchestrator:
    def __init__(
        self,
        store,
        gateway,
        scoring_engine,
        resolver: Optional[IdentityResolver] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.gateway = gateway
        self.scoring_engine = scoring_engine
        self.resolver = resolver or IdentityResolver(store)
        self._clock = clock
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Stop after the item in flight. Safe to call from another thread."""
        self._cancelled.set()

    def _resolve_weights(self, tenant_id: str, weights: Optional[ScoringWeights]) -> ScoringWeights:
        if weights is not None:
            return weights.validated()
        return self.store.get_weights(tenant_id) or DEFAULT_WEIGHTS

    def process_file(
        self,
        tenant_id: str,
        path: Path,
        weights: Optional[ScoringWeights] = None,
        options: Optional[BatchOptions] = None,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> Iterator[Dict[str, Any]]:
        """Like process_batch, reading submissions from a CSV/Excel file.

        An unreadable file yields a start event followed by an error event.
        """
        try:
            submissions = read_submissions(path)
            if page is not None or page_size is not None:
                submissions = page_slice(submissions, page or 1, page_size or len(submissions) or 1)
        except BatchSetupError as e:
            logger.error("Batch setup failed", tenant_id=tenant_id, path=str(path), error=e.message)
            yield start_event(tenant_id, 0)
            yield error_event(describe_error(e))
            return
        yield from self.process_batch(tenant_id, submissions, weights, options)

    def process_batch(
        self,
        tenant_id: str,
        submissions: Iterable[CandidateSubmission],
        weights: Optional[ScoringWeights] = None,
        options: Optional[BatchOptions] = None,
    ) -> Iterator[Dict[str, Any]]:
        """
        Process submissions in order, yielding batch events.

        Events: one ``start``, one ``item`` per processed submission (index
        from 1), then ``complete``. Invalid weights or tenant end the stream
        with ``error`` right after ``start``; no item is touched.
        """
        submissions = list(submissions)
        options = options or BatchOptions()
        self._cancelled.clear()

        yield start_event(tenant_id, len(submissions))
        try:
            if not tenant_id or not str(tenant_id).strip():
                raise BatchSetupError("tenant_id is required")
            weights = self._resolve_weights(tenant_id, weights)
        except IntakeError as e:
            logger.error("Batch aborted before processing", tenant_id=tenant_id, error=e.message, kind=e.kind)
            yield error_event(describe_error(e))
            return

        as_of = self._clock().date()
        logger.info(
            "Batch started",
            tenant_id=tenant_id,
            total=len(submissions),
            force_reenrich=options.force_reenrich,
        )

        processed = successful = failed = matched_existing = newly_created = 0
        cancelled = False
        for index, submission in enumerate(submissions, start=1):
            if self._cancelled.is_set():
                cancelled = True
                logger.warning("Batch cancelled", tenant_id=tenant_id, processed=processed, total=len(submissions))
                break

            event, match = self._process_item(tenant_id, index, submission, weights, options, as_of)
            processed += 1
            if event["success"]:
                successful += 1
                if match.is_match:
                    matched_existing += 1
                else:
                    newly_created += 1
                logger.record_item(True)
            else:
                failed += 1
                logger.record_item(False, event["error"]["kind"])
            yield event

        logger.info(
            "Batch finished",
            tenant_id=tenant_id,
            successful=successful,
            failed=failed,
            cancelled=cancelled,
        )
        logger.log_metrics_summary()
        yield complete_event(
            total=len(submissions),
            processed=processed,
            successful=successful,
            failed=failed,
            matched_existing=matched_existing,
            newly_created=newly_created,
            cancelled=cancelled,
        )

    def _merge_and_score(
        self,
        tenant_id: str,
        match: MatchResult,
        submission: CandidateSubmission,
        enriched,
        weights: ScoringWeights,
        options: BatchOptions,
        as_of,
    ) -> Tuple[CandidateRecord, List[FieldChange], Optional[ScoringResult]]:
        record, changes = merge(
            match.candidate,
            submission,
            enriched,
            tenant_id=tenant_id,
            matched_by=match.matched_by,
            enrichment_attempted=True,
            now=self._clock(),
        )

        if enriched is None and options.require_enrichment_for_scoring:
            record.clear_scoring()
            return record, changes, None

        scoring = self.scoring_engine.score(
            record, enriched, weights, as_of=as_of, job_description=options.job_description
        )
        record.apply_scoring(scoring)
        return record, changes, scoring

    def _rematch(
        self,
        tenant_id: str,
        submission: CandidateSubmission,
        record: CandidateRecord,
        existing: CandidateRecord,
    ) -> MatchResult:
        """Resolve again with the merged identity; falls back to the conflicting record."""
        match = self.resolver.resolve(
            tenant_id, replace(submission, profile_handle=record.profile_handle or submission.profile_handle)
        )
        if match.is_match:
            return match
        same_email = bool(record.email) and normalize_email(existing.email) == record.email
        return MatchResult(existing.id, MatchedBy.EMAIL if same_email else MatchedBy.PROFILE, existing)

    def _process_item(
        self,
        tenant_id: str,
        index: int,
        submission: CandidateSubmission,
        weights: ScoringWeights,
        options: BatchOptions,
        as_of,
    ) -> Tuple[Dict[str, Any], Optional[MatchResult]]:
        partial = None
        try:
            errors = validate_submission(submission)
            if errors:
                raise ValidationError("; ".join(errors))

            match = self.resolver.resolve(tenant_id, submission)
            if match.is_match and not options.force_reenrich:
                payload = build_payload(match.candidate, match, False, None, [], saved=True, fast_path=True)
                return item_event(index, True, result=payload), match

            existing = match.candidate
            criteria = LookupCriteria(
                name=submission.name,
                company=submission.company or (existing.company if existing else None),
                title=submission.title or (existing.title if existing else None),
                location=submission.location or (existing.location if existing else None),
                profile_handle=submission.profile_handle or (existing.profile_handle if existing else None),
            )
            enriched = self.gateway.lookup(criteria, use_cache=not options.force_reenrich)

            record, changes, scoring = self._merge_and_score(
                tenant_id, match, submission, enriched, weights, options, as_of
            )

            try:
                try:
                    stored = self.store.upsert(tenant_id, record)
                except IdentityConflictError as conflict:
                    if match.is_match:
                        raise
                    # the enriched handle or a concurrent writer points at a stored candidate
                    match = self._rematch(tenant_id, submission, record, conflict.existing)
                    record, changes, scoring = self._merge_and_score(
                        tenant_id, match, submission, enriched, weights, options, as_of
                    )
                    stored = self.store.upsert(tenant_id, record)
            except PersistenceError:
                partial = build_payload(record, match, enriched is not None, scoring, changes, saved=False)
                raise

            payload = build_payload(stored, match, enriched is not None, scoring, changes, saved=True)
            logger.info(
                "Candidate processed",
                index=index,
                candidate_id=stored.id,
                matched_by=match.matched_by,
                enriched=enriched is not None,
                score=stored.score,
            )
            return item_event(index, True, result=payload), match
        except Exception as e:
            info = describe_error(e)
            info["candidateName"] = submission.name
            if isinstance(e, IntakeError):
                logger.error("Item failed", index=index, name=submission.name, kind=info["kind"], error=info["message"])
            else:
                logger.error("Item failed unexpectedly", index=index, name=submission.name, error=repr(e))
            return item_event(index, False, result=partial, error=info), None
