"""Lookup without a handle: search by name/title/company, pick the best hit,
then fetch its full profile."""

import time
from dataclasses import replace
from typing import Any, Dict, List, Optional

import requests
from rapidfuzz import fuzz

from ..errors import NotFoundError
from ..logger import get_logger
from ..models import EnrichedProfile, LookupCriteria
from .common import post_json
from .profiles import ProfileScraperBackend

logger = get_logger()

SINGLE_RESULT_MIN_SCORE = 5.0

# Tie-break weights when several results share the top provider score
FIELD_WEIGHTS = {"name": 3.0, "title": 2.0, "company": 2.0, "location": 1.0}
SNIPPET_WEIGHTS = {"name": 0.5, "company": 0.3, "title": 0.2}


def _similarity(a: Optional[str], b: Optional[str]) -> float:
    if not a or not b:
        return 0.0
    return fuzz.token_set_ratio(a.lower(), b.lower()) / 100


def field_match_score(result: Dict[str, Any], criteria: LookupCriteria) -> float:
    """How well a search hit agrees with what we know about the person."""
    wanted = {
        "name": criteria.name,
        "title": criteria.title,
        "company": criteria.company,
        "location": criteria.location,
    }
    score = 0.0
    for field, weight in FIELD_WEIGHTS.items():
        score += weight * _similarity(wanted[field], result.get(field))

    snippet = " ".join(str(result.get(k) or "") for k in ("title", "snippet")).lower()
    for field, weight in SNIPPET_WEIGHTS.items():
        value = wanted[field]
        if value and value.lower() in snippet:
            score += weight
    return round(score, 4)


def _provider_score(result: Dict[str, Any]) -> float:
    try:
        return float(result.get("score") or 0)
    except (TypeError, ValueError):
        return 0.0


def select_best_match(results: List[Dict[str, Any]], criteria: LookupCriteria) -> Optional[Dict[str, Any]]:
    """
    Choose one search hit.

    A lone hit must reach SINGLE_RESULT_MIN_SCORE. Otherwise the highest
    provider score wins, and ties go to the hit whose fields agree best
    with the criteria (first one on a full tie).
    """
    candidates = [r for r in results if isinstance(r, dict) and r.get("url")]
    if not candidates:
        return None
    if len(candidates) == 1:
        only = candidates[0]
        return only if _provider_score(only) >= SINGLE_RESULT_MIN_SCORE else None

    top = max(_provider_score(r) for r in candidates)
    tied = [r for r in candidates if _provider_score(r) == top]
    if len(tied) == 1:
        return tied[0]
    return max(tied, key=lambda r: field_match_score(r, criteria))


class ProfileSearchBackend:
    """Finds a profile URL through a search API, then scrapes it."""

    name = "profile-search"

    def __init__(
        self,
        endpoint: str,
        profiles: ProfileScraperBackend,
        token: Optional[str] = None,
        timeout: float = 15.0,
        max_retries: int = 2,
        max_results: int = 5,
        session: Optional[requests.Session] = None,
        sleep=time.sleep,
    ):
        self.endpoint = endpoint
        self.profiles = profiles
        self.token = token
        self.timeout = timeout
        self.max_retries = max_retries
        self.max_results = max_results
        self.session = session or requests.Session()
        self._sleep = sleep

    def search(self, criteria: LookupCriteria) -> List[Dict[str, Any]]:
        payload = {
            "name": criteria.name,
            "title": criteria.title,
            "company": criteria.company,
            "location": criteria.location,
            "max_results": self.max_results,
        }
        data = post_json(
            self.session,
            self.endpoint,
            payload,
            provider=self.name,
            timeout=self.timeout,
            max_retries=self.max_retries,
            token=self.token,
            sleep=self._sleep,
        )
        if isinstance(data, dict):
            data = data.get("results") or []
        return data if isinstance(data, list) else []

    def lookup(self, criteria: LookupCriteria) -> EnrichedProfile:
        """
        Raises:
            NotFoundError: no acceptable search hit, or the hit has no profile
        """
        results = self.search(criteria)
        best = select_best_match(results, criteria)
        if best is None:
            raise NotFoundError(f"No confident search match for {criteria.name}")
        logger.debug("Search match selected", name=criteria.name, url=best["url"], score=best.get("score"))
        return self.profiles.lookup(replace(criteria, profile_handle=best["url"]))
