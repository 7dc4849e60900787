"""
Candidate scoring.

Five sub-scores on a 0-10 scale (company difference is a 0/1 bonus that
counts as 10 when set) are blended with tenant weights into an overall score
on 0-100, bucketed into a priority tier. A separate hireability assessment
estimates how likely the candidate is to move.

Every recency signal is measured against an explicit ``as_of`` date, so the
same inputs and provider response always give the same result.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from .analysis import AnalysisProvider
from .logger import get_logger
from .models import (
    CandidateRecord,
    EnrichedProfile,
    HireabilityAssessment,
    ScoringResult,
    ScoringWeights,
)
from .normalize import companies_differ
from .stability import job_stability_score

logger = get_logger()

HIGH_PRIORITY_THRESHOLD = 70
MEDIUM_PRIORITY_THRESHOLD = 40

HIGH_POTENTIAL_THRESHOLD = 70
MEDIUM_POTENTIAL_THRESHOLD = 50

OVERALL_HIREABILITY_SHARE = 0.4
COMPANY_CHANGE_BONUS = 20
OPEN_TO_WORK_BONUS = 20
RECENT_ACTIVITY_BONUS = 10
SKILLS_AVAILABLE_BONUS = 10
RECENT_ACTIVITY_DAYS = 30

# Free-text availability signals, used only when no open-to-work flag is set
OPEN_PHRASES = (
    "immediate joiner",
    "immediately available",
    "available immediately",
    "open for opportunity",
    "open to opportunity",
    "open to opportunities",
    "seeking new opportunity",
    "seeking new opportunities",
    "looking for new",
    "open to work",
    "ready to join",
    "actively seeking",
    "job seeking",
    "career change",
    "new opportunities",
    "open for roles",
    "exploring opportunities",
)
URGENT_PHRASES = ("immediate", "asap", "urgent", "available now", "right away")
PASSIVE_PHRASES = ("open to discuss", "interested in hearing", "would consider", "might be interested")
TEXT_SIGNAL_CAP = 8.0


def _clamp(value: float, low: float = 0.0, high: float = 10.0) -> float:
    return min(high, max(low, value))


def priority_tier(overall: float) -> str:
    if overall >= HIGH_PRIORITY_THRESHOLD:
        return "High"
    if overall >= MEDIUM_PRIORITY_THRESHOLD:
        return "Medium"
    return "Low"


def potential_to_join(score: float) -> str:
    if score >= HIGH_POTENTIAL_THRESHOLD:
        return "High"
    if score >= MEDIUM_POTENTIAL_THRESHOLD:
        return "Medium"
    return "Low"


def _has_open_flag(record: CandidateRecord, enriched: Optional[EnrichedProfile]) -> bool:
    if enriched is not None:
        return bool(enriched.open_to_work)
    return bool(record.open_to_work)


def text_availability_score(text: str) -> float:
    lowered = text.lower()
    score = 0.0
    score += 2 * sum(1 for p in OPEN_PHRASES if p in lowered)
    score += 1 * sum(1 for p in URGENT_PHRASES if p in lowered)
    score += 0.5 * sum(1 for p in PASSIVE_PHRASES if p in lowered)
    return round(min(TEXT_SIGNAL_CAP, score), 2)


def open_to_work_score(record: CandidateRecord, enriched: Optional[EnrichedProfile]) -> float:
    """10 for an explicit flag, a smaller free-text signal otherwise, 0 with neither."""
    if _has_open_flag(record, enriched):
        return 10.0
    parts = [record.summary, record.headline]
    if enriched is not None:
        parts += [enriched.summary, enriched.headline]
    text = " ".join(p for p in parts if p)
    return text_availability_score(text) if text else 0.0


def _days_since(last_active: Optional[date], as_of: date) -> Optional[int]:
    if last_active is None:
        return None
    return max(0, (as_of - last_active).days)


def _recency_points(days: int) -> int:
    if days <= 7:
        return 10
    if days <= 30:
        return 8
    if days <= 90:
        return 6
    if days <= 180:
        return 4
    return 2


def _connection_points(connections: int) -> int:
    if connections >= 500:
        return 10
    if connections >= 200:
        return 8
    if connections >= 100:
        return 6
    if connections >= 50:
        return 4
    return 2


def _activity_points(text_length: int) -> int:
    if text_length > 500:
        return 10
    if text_length > 200:
        return 8
    if text_length > 100:
        return 6
    if text_length > 0:
        return 4
    return 0


def _completeness_points(record: CandidateRecord) -> float:
    points = 0
    if record.summary and len(record.summary) > 50:
        points += 3
    if record.experience:
        points += 3
    if record.skills:
        points += 2
    if record.email:
        points += 2
    return float(points)


def engagement_score(record: CandidateRecord, as_of: date) -> float:
    """Recency 40%, connections 20%, posted activity 20%, completeness 20%.

    Missing signals contribute nothing.
    """
    score = 0.0
    days = _days_since(record.last_active, as_of)
    if days is not None:
        score += _recency_points(days) * 0.4
    if record.connections is not None:
        score += _connection_points(record.connections) * 0.2
    activity_length = sum(len(a) for a in record.recent_activity or [])
    score += _activity_points(activity_length) * 0.2
    score += _completeness_points(record) * 0.2
    return round(_clamp(score), 2)


def company_difference(record: CandidateRecord, enriched: Optional[EnrichedProfile]) -> int:
    if enriched is None:
        return 0
    return 1 if companies_differ(record.company, enriched.current_company) else 0


def recently_active(record: CandidateRecord, as_of: date) -> bool:
    days = _days_since(record.last_active, as_of)
    return days is not None and days <= RECENT_ACTIVITY_DAYS


def overall_score(components: Dict[str, float], weights: ScoringWeights) -> float:
    """Weighted blend of 0-10 components, reported on 0-100."""
    weighted = sum(components[name] * getattr(weights, name) for name in components)
    return round(_clamp(weighted / 100 * 10, 0, 100), 2)


def assess_hireability(
    overall: float,
    changed_company: bool,
    open_flag: bool,
    active: bool,
    has_skills: bool,
) -> HireabilityAssessment:
    factors: List[Dict[str, Any]] = [
        {"factor": "overall_score", "points": round(overall * OVERALL_HIREABILITY_SHARE, 2)}
    ]
    score = overall * OVERALL_HIREABILITY_SHARE
    if changed_company:
        score += COMPANY_CHANGE_BONUS
        factors.append({"factor": "company_change", "points": COMPANY_CHANGE_BONUS})
    if open_flag:
        score += OPEN_TO_WORK_BONUS
        factors.append({"factor": "open_to_work", "points": OPEN_TO_WORK_BONUS})
    if active:
        score += RECENT_ACTIVITY_BONUS
        factors.append({"factor": "recent_activity", "points": RECENT_ACTIVITY_BONUS})
    if has_skills:
        score += SKILLS_AVAILABLE_BONUS
        factors.append({"factor": "skills_available", "points": SKILLS_AVAILABLE_BONUS})
    score = round(_clamp(score, 0, 100), 2)
    return HireabilityAssessment(score, potential_to_join(score), tuple(factors))


def analysis_fields(record: CandidateRecord) -> Dict[str, Any]:
    """The candidate fields sent to the analysis provider."""
    return {
        "name": record.name,
        "title": record.title,
        "headline": record.headline,
        "company": record.company,
        "current_company": record.current_company,
        "summary": record.summary,
        "skills": list(record.skills or []),
        "experience": list(record.experience or []),
        "education": list(record.education or []),
        "certifications": list(record.certifications or []),
    }


class ScoringEngine:
    def __init__(self, analysis_provider: AnalysisProvider):
        self.analysis_provider = analysis_provider

    def score(
        self,
        record: CandidateRecord,
        enriched: Optional[EnrichedProfile],
        weights: ScoringWeights,
        *,
        as_of: date,
        job_description: Optional[str] = None,
    ) -> ScoringResult:
        """
        Score a merged record.

        ``enriched`` is the profile obtained in this call (None if enrichment
        was skipped or found nothing). Analysis provider errors propagate.
        """
        weights = weights.validated()
        analysis = self.analysis_provider.analyze(analysis_fields(record), job_description)

        otw = open_to_work_score(record, enriched)
        skill = round(_clamp(analysis.skill_match), 2)
        stability = job_stability_score(record.experience, as_of)
        engagement = engagement_score(record, as_of)
        changed = company_difference(record, enriched)

        overall = overall_score(
            {
                "open_to_work": otw,
                "skill_match": skill,
                "job_stability": stability,
                "engagement": engagement,
                "company_difference": changed * 10.0,
            },
            weights,
        )
        hireability = assess_hireability(
            overall,
            changed_company=bool(changed),
            open_flag=_has_open_flag(record, enriched),
            active=recently_active(record, as_of),
            has_skills=bool(record.skills),
        )
        result = ScoringResult(
            open_to_work=otw,
            skill_match=skill,
            job_stability=stability,
            engagement=engagement,
            company_difference=changed,
            overall=overall,
            priority_tier=priority_tier(overall),
            hireability=hireability,
            insights=tuple(analysis.insights),
        )
        logger.debug(
            "Scored candidate",
            candidate_id=record.id,
            overall=overall,
            tier=result.priority_tier,
        )
        return result
