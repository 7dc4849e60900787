"""Lookup by profile handle through a profile-scraper API."""

import math
import re
import time
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from ..errors import NotFoundError
from ..models import EnrichedProfile, LookupCriteria
from ..normalize import clean_str, normalize_profile_handle, strip_html
from .common import post_json


def _year_month(value: Any) -> Optional[str]:
    """Scraper dates come as strings or as {"year": .., "month": ..} dicts."""
    if isinstance(value, dict):
        year = value.get("year")
        if not year:
            return None
        year, month = _as_int(year), _as_int(value.get("month"))
        if year is None or not 1 <= year <= 9999:
            return None
        # an unusable month still leaves the year
        if month is None or not 1 <= month <= 12:
            return f"{year:04d}"
        return f"{year:04d}-{month:02d}"
    return clean_str(value)


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _parse_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(value) else None
    digits = re.sub(r"[^\d]", "", str(value))
    return int(digits) if digits else None


def _parse_day(value: Any) -> Optional[date]:
    if value in (None, ""):
        return None
    if isinstance(value, (int, float)):
        # epoch milliseconds
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _names(items: Any, *keys: str) -> List[str]:
    names = []
    for item in items or []:
        if isinstance(item, str):
            value = clean_str(item)
        elif isinstance(item, dict):
            value = next((clean_str(item.get(k)) for k in keys if clean_str(item.get(k))), None)
        else:
            value = None
        if value and value not in names:
            names.append(value)
    return names


def _position(raw: Dict[str, Any]) -> Dict[str, Any]:
    period = raw.get("timePeriod") or {}
    start = raw.get("startDate") or period.get("startDate")
    end = raw.get("endDate") or period.get("endDate")
    return {
        "title": clean_str(raw.get("title")),
        "company": clean_str(raw.get("companyName") or raw.get("company")),
        "start_date": _year_month(start),
        "end_date": _year_month(end) or "Present",
        "description": strip_html(raw.get("description")),
    }


def _education(raw: Dict[str, Any]) -> Dict[str, Any]:
    period = raw.get("timePeriod") or {}
    return {
        "school": clean_str(raw.get("schoolName") or raw.get("school")),
        "degree": clean_str(raw.get("degreeName") or raw.get("degree")),
        "field": clean_str(raw.get("fieldOfStudy") or raw.get("field")),
        "start_date": _year_month(raw.get("startDate") or period.get("startDate")),
        "end_date": _year_month(raw.get("endDate") or period.get("endDate")),
    }


def transform_profile(raw: Dict[str, Any], handle: Optional[str], source: str) -> EnrichedProfile:
    """Map a scraper payload onto EnrichedProfile."""
    name = clean_str(raw.get("fullName")) or clean_str(
        " ".join(p for p in (raw.get("firstName"), raw.get("lastName")) if p)
    )
    positions = [_position(p) for p in raw.get("positions") or raw.get("experiences") or [] if isinstance(p, dict)]
    current = next((p for p in positions if p["end_date"] == "Present"), positions[0] if positions else None)

    location = raw.get("location")
    if isinstance(location, dict):
        location = location.get("linkedinText") or location.get("default")
    location = clean_str(raw.get("addressWithCountry")) or clean_str(location)

    posts = []
    for post in raw.get("posts") or raw.get("activities") or []:
        text = strip_html(post.get("text") if isinstance(post, dict) else post)
        if text:
            posts.append(text)

    return EnrichedProfile(
        name=name,
        headline=strip_html(raw.get("headline")),
        current_company=clean_str(raw.get("companyName")) or (current or {}).get("company"),
        current_title=clean_str(raw.get("jobTitle")) or (current or {}).get("title"),
        location=location,
        summary=strip_html(raw.get("about") or raw.get("summary")),
        skills=_names(raw.get("skills"), "name", "title"),
        connections=_parse_int(raw.get("connectionsCount", raw.get("connections"))),
        open_to_work=bool(raw.get("openToWork") or raw.get("isOpenToWork")),
        job_history=positions,
        education=[_education(e) for e in raw.get("schools") or raw.get("educations") or [] if isinstance(e, dict)],
        certifications=_names(raw.get("certifications"), "name", "title"),
        last_active=_parse_day(raw.get("lastActivityTime") or raw.get("lastActive")),
        recent_activity=posts,
        profile_handle=normalize_profile_handle(raw.get("profileUrl") or raw.get("linkedinUrl")) or handle,
        source=source,
    )


class ProfileScraperBackend:
    """Fetches a full profile for a known profile URL."""

    name = "profile-scraper"

    def __init__(
        self,
        endpoint: str,
        token: Optional[str] = None,
        timeout: float = 15.0,
        max_retries: int = 2,
        session: Optional[requests.Session] = None,
        sleep=time.sleep,
    ):
        self.endpoint = endpoint
        self.token = token
        self.timeout = timeout
        self.max_retries = max_retries
        self.session = session or requests.Session()
        self._sleep = sleep

    def lookup(self, criteria: LookupCriteria) -> EnrichedProfile:
        """
        Raises:
            NotFoundError: the provider has nothing for this handle
        """
        handle = normalize_profile_handle(criteria.profile_handle)
        if not handle:
            raise NotFoundError("No profile handle to look up")
        data = post_json(
            self.session,
            self.endpoint,
            {"profileUrl": handle},
            provider=self.name,
            timeout=self.timeout,
            max_retries=self.max_retries,
            token=self.token,
            sleep=self._sleep,
        )
        # Some scrapers return a dataset (list of items) rather than one object
        if isinstance(data, list):
            data = data[0] if data else None
        if isinstance(data, dict) and isinstance(data.get("data"), dict):
            data = data["data"]
        if not isinstance(data, dict) or not data:
            raise NotFoundError(f"No profile found for {handle}")
        return transform_profile(data, handle, source=self.name)
