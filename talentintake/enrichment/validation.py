"""Advisory check that an enriched profile plausibly belongs to the person
we looked up. The result is logged and attached to the profile; it never
changes what gets merged."""

from typing import Optional

from rapidfuzz import fuzz

from ..models import EnrichedProfile, LookupCriteria
from ..normalize import normalize_company

LOW_CONFIDENCE = 0.6
NAME_WEIGHT = 0.7
COMPANY_WEIGHT = 0.3


def name_similarity(a: Optional[str], b: Optional[str]) -> float:
    if not a or not b:
        return 0.0
    return fuzz.token_sort_ratio(a.lower(), b.lower()) / 100


def company_agreement(company: Optional[str], profile: EnrichedProfile) -> float:
    """Best similarity between the looked-up company and any employer on the profile."""
    if not company:
        return 0.0
    employers = [profile.current_company] + [j.get("company") for j in profile.job_history]
    target = normalize_company(company)
    scores = [
        fuzz.token_set_ratio(target, normalize_company(e)) / 100
        for e in employers
        if e
    ]
    return max(scores, default=0.0)


def assess_profile_match(criteria: LookupCriteria, profile: EnrichedProfile) -> float:
    """Confidence in 0-1 that profile describes the person in criteria."""
    name_score = name_similarity(criteria.name, profile.name)
    if not criteria.company:
        return round(name_score, 3)
    return round(
        NAME_WEIGHT * name_score + COMPANY_WEIGHT * company_agreement(criteria.company, profile),
        3,
    )
