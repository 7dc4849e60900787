"""
Three-way merge of stored record, new submission and enriched profile.

For every field the enriched profile wins, then the new submission, then the
stored record; a lower source only fills a field that every higher source
left empty. List fields are replaced wholesale, never concatenated.
"""

from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from .models import (
    TRACKED_FIELDS,
    CandidateRecord,
    CandidateSubmission,
    ChangeLog,
    EnrichedProfile,
    EnrichmentStatus,
    FieldChange,
    MatchedBy,
)
from .normalize import normalize_email, normalize_profile_handle

# enriched profile attribute -> record field
ENRICHED_FIELDS = {
    "name": "name",
    "current_title": "title",
    "headline": "headline",
    "current_company": "current_company",
    "location": "location",
    "summary": "summary",
    "skills": "skills",
    "job_history": "experience",
    "education": "education",
    "certifications": "certifications",
    "connections": "connections",
    "open_to_work": "open_to_work",
    "last_active": "last_active",
    "recent_activity": "recent_activity",
    "profile_handle": "profile_handle",
}

SUBMISSION_FIELDS = (
    "name",
    "email",
    "phone",
    "company",
    "title",
    "location",
    "profile_handle",
    "summary",
    "skills",
    "experience",
    "education",
    "certifications",
)

LIST_FIELDS = {"skills", "experience", "education", "certifications", "recent_activity"}


def is_present(value: Any) -> bool:
    """None, blank strings and empty collections count as absent."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    return True


def diff_dict(old: Dict[str, Any], new: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    changed = {}
    keys = set(old.keys()) | set(new.keys())
    for k in keys:
        ov = old.get(k)
        nv = new.get(k)
        if ov != nv and (is_present(ov) or is_present(nv)):
            changed[k] = {"old": ov, "new": nv}
    return changed


def _snapshot(record: Optional[CandidateRecord]) -> Dict[str, Any]:
    if record is None:
        return {}
    return {f: getattr(record, f) for f in TRACKED_FIELDS}


def merge(
    existing: Optional[CandidateRecord],
    submission: CandidateSubmission,
    enriched: Optional[EnrichedProfile],
    *,
    tenant_id: Optional[str] = None,
    matched_by: str = MatchedBy.NONE,
    enrichment_attempted: bool = False,
    now: Optional[datetime] = None,
) -> Tuple[CandidateRecord, ChangeLog]:
    """
    Produce the merged record and the list of fields that changed.

    Args:
        existing: Stored record, or None for a new candidate
        submission: What the caller sent
        enriched: Profile obtained in this call, or None
        tenant_id: Owner of a new record (ignored when existing is given)
        matched_by: How existing was found; a profile match with a new email
            keeps the old email as alternate_email
        enrichment_attempted: Whether the gateway was asked in this call
        now: Timestamp used for last_enriched_at
    """
    if existing is None and not tenant_id:
        raise ValueError("tenant_id is required when merging a new candidate")

    if existing is not None:
        record = replace(existing)
    else:
        record = CandidateRecord(tenant_id=tenant_id, name="")

    enriched_values = {}
    if enriched is not None:
        for attr, target in ENRICHED_FIELDS.items():
            enriched_values[target] = getattr(enriched, attr)

    targets = set(SUBMISSION_FIELDS) | set(ENRICHED_FIELDS.values())
    for target in sorted(targets):
        if target == "email":
            continue
        sources = [
            enriched_values.get(target),
            getattr(submission, target, None),
            getattr(existing, target, None) if existing is not None else None,
        ]
        value = next((v for v in sources if is_present(v)), None)
        if value is None:
            value = [] if target in LIST_FIELDS else None
        elif target in LIST_FIELDS:
            value = list(value)
        setattr(record, target, value)

    new_email = normalize_email(submission.email)
    old_email = normalize_email(existing.email) if existing is not None else None
    if new_email:
        if matched_by == MatchedBy.PROFILE and old_email and old_email != new_email:
            record.alternate_email = old_email
        record.email = new_email
    else:
        record.email = old_email

    record.profile_handle = normalize_profile_handle(record.profile_handle)
    record.name = record.name or ""

    if enriched is not None:
        record.enrichment_status = EnrichmentStatus.COMPLETED
        record.last_enriched_at = now or datetime.now()
    elif enrichment_attempted:
        record.enrichment_status = EnrichmentStatus.FAILED

    changes = diff_dict(_snapshot(existing), _snapshot(record))
    changelog: ChangeLog = [
        FieldChange(f, changes[f]["old"], changes[f]["new"])
        for f in TRACKED_FIELDS
        if f in changes
    ]
    return record, changelog
