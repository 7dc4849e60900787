"""
Data model for candidate intake.

Submissions are immutable snapshots of what a caller sent us. Records are the
mutable, persisted view of a person inside one tenant. Enriched profiles are
what an external provider returned for a lookup.
"""

import math
from dataclasses import asdict, dataclass, field, fields
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from .errors import WeightsValidationError


class EnrichmentStatus:
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    ALL = (PENDING, IN_PROGRESS, COMPLETED, FAILED)


class MatchedBy:
    EMAIL_AND_PROFILE = "email_and_profile"
    EMAIL = "email"
    PROFILE = "profile"
    NONE = "none"

    ALL = (EMAIL_AND_PROFILE, EMAIL, PROFILE, NONE)


# camelCase keys accepted from API-style payloads
_SUBMISSION_ALIASES = {
    "profileHandle": "profile_handle",
    "profileUrl": "profile_handle",
    "linkedinUrl": "profile_handle",
    "linkedin_url": "profile_handle",
    "linkedin": "profile_handle",
}


@dataclass(frozen=True)
class CandidateSubmission:
    name: str
    email: Optional[str] = None
    company: Optional[str] = None
    title: Optional[str] = None
    location: Optional[str] = None
    profile_handle: Optional[str] = None
    summary: Optional[str] = None
    phone: Optional[str] = None
    skills: Tuple[str, ...] = ()
    experience: Tuple[Dict[str, Any], ...] = ()
    education: Tuple[Dict[str, Any], ...] = ()
    certifications: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CandidateSubmission":
        """Build a submission from a loose dict (snake_case or camelCase keys).

        Unknown keys are ignored. List-like values are frozen into tuples.
        """
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            key = _SUBMISSION_ALIASES.get(key, key)
            if key in known and value is not None:
                kwargs[key] = value
        for key in ("skills", "experience", "education", "certifications"):
            if key in kwargs:
                kwargs[key] = tuple(kwargs[key])
        kwargs.setdefault("name", "")
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ("skills", "experience", "education", "certifications"):
            data[key] = list(data[key])
        return data


@dataclass
class EnrichedProfile:
    """Normalized profile returned by an enrichment back-end."""

    name: Optional[str] = None
    headline: Optional[str] = None
    current_company: Optional[str] = None
    current_title: Optional[str] = None
    location: Optional[str] = None
    summary: Optional[str] = None
    skills: List[str] = field(default_factory=list)
    connections: Optional[int] = None
    open_to_work: bool = False
    job_history: List[Dict[str, Any]] = field(default_factory=list)
    education: List[Dict[str, Any]] = field(default_factory=list)
    certifications: List[str] = field(default_factory=list)
    last_active: Optional[date] = None
    recent_activity: List[str] = field(default_factory=list)
    profile_handle: Optional[str] = None
    source: Optional[str] = None
    match_confidence: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.last_active is not None:
            data["last_active"] = self.last_active.isoformat()
        return data


@dataclass(frozen=True)
class LookupCriteria:
    name: str
    company: Optional[str] = None
    title: Optional[str] = None
    location: Optional[str] = None
    profile_handle: Optional[str] = None

    def cache_key(self) -> str:
        if self.profile_handle:
            return f"handle:{self.profile_handle}"
        parts = [self.name, self.company or "", self.title or "", self.location or ""]
        return "search:" + "|".join(p.strip().lower() for p in parts)


@dataclass
class CandidateRecord:
    """A stored candidate. ``id`` is None until the record is first persisted."""

    tenant_id: str
    name: str
    id: Optional[str] = None
    email: Optional[str] = None
    alternate_email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    current_company: Optional[str] = None
    title: Optional[str] = None
    headline: Optional[str] = None
    location: Optional[str] = None
    profile_handle: Optional[str] = None
    summary: Optional[str] = None
    skills: List[str] = field(default_factory=list)
    experience: List[Dict[str, Any]] = field(default_factory=list)
    education: List[Dict[str, Any]] = field(default_factory=list)
    certifications: List[str] = field(default_factory=list)
    connections: Optional[int] = None
    open_to_work: Optional[bool] = None
    last_active: Optional[date] = None
    recent_activity: List[str] = field(default_factory=list)
    score: Optional[float] = None
    priority_tier: Optional[str] = None
    sub_scores: Dict[str, float] = field(default_factory=dict)
    hireability_score: Optional[float] = None
    potential_to_join: Optional[str] = None
    hireability_factors: List[Dict[str, Any]] = field(default_factory=list)
    insights: List[str] = field(default_factory=list)
    enrichment_status: str = EnrichmentStatus.PENDING
    last_enriched_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def apply_scoring(self, result: "ScoringResult") -> None:
        self.score = result.overall
        self.priority_tier = result.priority_tier
        self.sub_scores = result.sub_scores()
        self.hireability_score = result.hireability.score
        self.potential_to_join = result.hireability.potential_to_join
        self.hireability_factors = list(result.hireability.factors)
        self.insights = list(result.insights)

    def clear_scoring(self) -> None:
        """Drop every score derived from an earlier run."""
        self.score = None
        self.priority_tier = None
        self.sub_scores = {}
        self.hireability_score = None
        self.potential_to_join = None
        self.hireability_factors = []
        self.insights = []

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ("last_active", "last_enriched_at", "created_at", "updated_at"):
            value = getattr(self, key)
            data[key] = value.isoformat() if value is not None else None
        return data


# Fields whose changes are reported in a ChangeLog. Scores are derived and
# timestamps always move, so neither is tracked.
TRACKED_FIELDS = (
    "name",
    "email",
    "alternate_email",
    "phone",
    "company",
    "current_company",
    "title",
    "headline",
    "location",
    "profile_handle",
    "summary",
    "skills",
    "experience",
    "education",
    "certifications",
    "connections",
    "open_to_work",
    "last_active",
    "recent_activity",
    "enrichment_status",
)


@dataclass(frozen=True)
class FieldChange:
    field: str
    old_value: Any
    new_value: Any

    def to_dict(self) -> Dict[str, Any]:
        def _plain(value):
            return value.isoformat() if isinstance(value, (date, datetime)) else value
        return {"field": self.field, "old": _plain(self.old_value), "new": _plain(self.new_value)}


ChangeLog = List[FieldChange]


@dataclass(frozen=True)
class MatchResult:
    matched_candidate_id: Optional[str]
    matched_by: str
    candidate: Optional[CandidateRecord] = None

    def __post_init__(self):
        if self.matched_by not in MatchedBy.ALL:
            raise ValueError(f"Unknown match kind: {self.matched_by}")
        if (self.matched_by == MatchedBy.NONE) != (self.matched_candidate_id is None):
            raise ValueError("matched_by is 'none' exactly when there is no matched candidate")

    @property
    def is_match(self) -> bool:
        return self.matched_candidate_id is not None


WEIGHT_FIELDS = ("open_to_work", "skill_match", "job_stability", "engagement", "company_difference")


@dataclass(frozen=True)
class ScoringWeights:
    open_to_work: float = 30.0
    skill_match: float = 25.0
    job_stability: float = 15.0
    engagement: float = 15.0
    company_difference: float = 15.0

    def total(self) -> float:
        return sum(getattr(self, name) for name in WEIGHT_FIELDS)

    def validated(self) -> "ScoringWeights":
        """Return self, or raise WeightsValidationError."""
        for name in WEIGHT_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise WeightsValidationError(f"Weight '{name}' must be a number")
            if not math.isfinite(value):
                raise WeightsValidationError(f"Weight '{name}' must be finite (got {value})")
            if value < 0:
                raise WeightsValidationError(f"Weight '{name}' must not be negative (got {value})")
        total = self.total()
        if abs(total - 100) > 0.1:
            raise WeightsValidationError(f"Scoring weights must sum to 100 (got {total:g})")
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoringWeights":
        """Build explicit weights. All five must be given; camelCase accepted."""
        values = {}
        for name in WEIGHT_FIELDS:
            camel = _camel(name)
            if name in data:
                values[name] = data[name]
            elif camel in data:
                values[name] = data[camel]
            else:
                raise WeightsValidationError(f"Missing scoring weight: {name}")
        unknown = set(data) - set(WEIGHT_FIELDS) - {_camel(n) for n in WEIGHT_FIELDS}
        if unknown:
            raise WeightsValidationError(f"Unknown scoring weights: {', '.join(sorted(unknown))}")
        return cls(**values).validated()

    def to_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in WEIGHT_FIELDS}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass(frozen=True)
class HireabilityAssessment:
    score: float
    potential_to_join: str
    factors: Tuple[Dict[str, Any], ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "potentialToJoin": self.potential_to_join,
            "factors": [dict(f) for f in self.factors],
        }


@dataclass(frozen=True)
class ScoringResult:
    open_to_work: float
    skill_match: float
    job_stability: float
    engagement: float
    company_difference: int
    overall: float
    priority_tier: str
    hireability: HireabilityAssessment
    insights: Tuple[str, ...] = ()

    def sub_scores(self) -> Dict[str, float]:
        return {
            "open_to_work": self.open_to_work,
            "skill_match": self.skill_match,
            "job_stability": self.job_stability,
            "engagement": self.engagement,
            "company_difference": self.company_difference,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subScores": self.sub_scores(),
            "overall": self.overall,
            "priorityTier": self.priority_tier,
            "hireability": self.hireability.to_dict(),
            "insights": list(self.insights),
        }
