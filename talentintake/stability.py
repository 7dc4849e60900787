"""
Job-stability scoring from a candidate's job history.

Five signals, each banded to 0-100 and blended with fixed weights:
average tenure of the two most recent roles, longest tenure, number of job
changes in the last five years, largest employment gap and field continuity
across titles. The blend is reported on a 0-10 scale.
"""

import math
import re
from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, date, datetime
from typing import Any, Dict, Iterable, List, Optional

AVERAGE_TENURE_WEIGHT = 0.30
LONGEST_TENURE_WEIGHT = 0.20
JOB_CHANGES_WEIGHT = 0.25
GAP_WEIGHT = 0.15
CONTINUITY_WEIGHT = 0.10

DAYS_PER_MONTH = 30.44
RECENT_WINDOW_YEARS = 5
MIN_GAP_MONTHS = 2

FIELD_CATEGORIES = {
    "tech": ("engineer", "developer", "programmer", "software", "data", "devops", "architect", "scientist"),
    "management": ("manager", "director", "head", "vp", "chief", "lead", "president"),
    "design": ("designer", "ux", "ui", "creative", "art director"),
    "sales": ("sales", "account", "business development", "marketing"),
}

_YEAR_MONTH = re.compile(r"^(\d{4})-(\d{1,2})$")
_MONTH_YEAR = re.compile(r"^(\d{1,2})/(\d{4})$")
_YEAR = re.compile(r"^(\d{4})$")
_CURRENT = {"present", "current", "now", "today"}


@dataclass(frozen=True)
class Job:
    title: str
    start: date
    end: date

    @property
    def months(self) -> int:
        return tenure_months(self.start, self.end)


@dataclass(frozen=True)
class StabilityReport:
    score: float
    average_tenure_months: float = 0.0
    longest_tenure_months: int = 0
    recent_job_changes: int = 0
    largest_gap_months: float = 0.0
    continuity: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "averageTenureMonths": self.average_tenure_months,
            "longestTenureMonths": self.longest_tenure_months,
            "recentJobChanges": self.recent_job_changes,
            "largestGapMonths": self.largest_gap_months,
            "continuity": self.continuity,
        }


def parse_job_date(value: Any, as_of: date) -> Optional[date]:
    """Parse the date formats seen in resumes and profiles.

    Accepts date objects, ISO dates, YYYY-MM, MM/YYYY, "Jan 2020",
    a bare year, and present/current (meaning ``as_of``).
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    if text.lower() in _CURRENT:
        return as_of

    m = _YEAR_MONTH.match(text)
    if m:
        return _safe_date(int(m.group(1)), int(m.group(2)))
    m = _MONTH_YEAR.match(text)
    if m:
        return _safe_date(int(m.group(2)), int(m.group(1)))
    m = _YEAR.match(text)
    if m:
        return _safe_date(int(m.group(1)), 1)
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    for fmt in ("%b %Y", "%B %Y"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _safe_date(year: int, month: int) -> Optional[date]:
    if not 1 <= month <= 12 or not MINYEAR <= year <= MAXYEAR:
        return None
    return date(year, month, 1)


def tenure_months(start: date, end: date) -> int:
    days = (end - start).days
    if days <= 0:
        return 0
    return math.ceil(days / DAYS_PER_MONTH)


def _field(entry: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if entry.get(key) not in (None, ""):
            return entry[key]
    return None


def parse_jobs(experience: Iterable[Dict[str, Any]], as_of: date) -> List[Job]:
    """Jobs with a parseable start date, most recent first.

    A missing end date means the role is ongoing.
    """
    jobs = []
    for entry in experience or []:
        if not isinstance(entry, dict):
            continue
        start = parse_job_date(_field(entry, "start_date", "startDate", "start"), as_of)
        if start is None:
            continue
        end = parse_job_date(_field(entry, "end_date", "endDate", "end"), as_of) or as_of
        if end < start:
            end = start
        title = str(_field(entry, "title", "position") or "")
        jobs.append(Job(title=title, start=start, end=end))
    jobs.sort(key=lambda j: j.start, reverse=True)
    return jobs


def _band_average_tenure(months: float) -> int:
    if months >= 24:
        return 100
    if months >= 18:
        return 75
    if months >= 12:
        return 50
    if months >= 6:
        return 25
    return 0


def _band_longest_tenure(months: int) -> int:
    if months >= 60:
        return 100
    if months >= 36:
        return 80
    if months >= 24:
        return 60
    if months >= 12:
        return 40
    return 20


def _band_job_changes(changes: int) -> int:
    return {0: 100, 1: 100, 2: 80, 3: 60, 4: 40}.get(changes, 20)


def _band_gap(months: float) -> int:
    if months <= 0:
        return 100
    if months <= 6:
        return 70
    if months <= 12:
        return 40
    return 20


def _years_before(d: date, years: int) -> date:
    try:
        return d.replace(year=d.year - years)
    except ValueError:  # Feb 29
        return d.replace(year=d.year - years, day=28)


def recent_job_changes(jobs: List[Job], as_of: date) -> int:
    cutoff = _years_before(as_of, RECENT_WINDOW_YEARS)
    recent = [j for j in jobs if j.start >= cutoff]
    return max(0, len(recent) - 1)


def largest_gap_months(jobs: List[Job]) -> float:
    """Largest gap between consecutive roles; gaps up to two months are ignored."""
    ordered = sorted(jobs, key=lambda j: j.start)
    largest = 0.0
    covered_until = None
    for job in ordered:
        if covered_until is not None and job.start > covered_until:
            gap = round((job.start - covered_until).days / DAYS_PER_MONTH, 1)
            if gap > MIN_GAP_MONTHS:
                largest = max(largest, gap)
        covered_until = job.end if covered_until is None else max(covered_until, job.end)
    return largest


def categorize_title(title: str) -> Optional[str]:
    lowered = title.lower()
    for category, keywords in FIELD_CATEGORIES.items():
        if any(re.search(rf"\b{re.escape(k)}\b", lowered) for k in keywords):
            return category
    return None


def field_continuity(jobs: List[Job]) -> int:
    if len(jobs) <= 1:
        return 100
    counts: Dict[str, int] = {}
    for job in jobs:
        category = categorize_title(job.title)
        if category:
            counts[category] = counts.get(category, 0) + 1
    share = max(counts.values()) / len(jobs) if counts else 0
    if share >= 0.7:
        return 100
    if share >= 0.5:
        return 70
    if share >= 0.3:
        return 40
    return 20


def assess_job_stability(experience: Iterable[Dict[str, Any]], as_of: date) -> StabilityReport:
    jobs = parse_jobs(experience, as_of)
    if not jobs:
        return StabilityReport(score=0.0)

    recent_two = jobs[:2]
    average = sum(j.months for j in recent_two) / len(recent_two)
    longest = max(j.months for j in jobs)
    changes = recent_job_changes(jobs, as_of)
    gap = largest_gap_months(jobs)
    continuity = field_continuity(jobs)

    blended = (
        AVERAGE_TENURE_WEIGHT * _band_average_tenure(average)
        + LONGEST_TENURE_WEIGHT * _band_longest_tenure(longest)
        + JOB_CHANGES_WEIGHT * _band_job_changes(changes)
        + GAP_WEIGHT * _band_gap(gap)
        + CONTINUITY_WEIGHT * continuity
    )
    return StabilityReport(
        score=round(blended / 10, 2),
        average_tenure_months=round(average, 1),
        longest_tenure_months=longest,
        recent_job_changes=changes,
        largest_gap_months=gap,
        continuity=continuity,
    )


def job_stability_score(experience: Iterable[Dict[str, Any]], as_of: date) -> float:
    return assess_job_stability(experience, as_of).score
