"""
Pytest configuration and shared fixtures.
"""

import os

# Keep test runs from writing dated log files into the working directory
os.environ.setdefault("INTAKE_LOG_FILE", "0")

import json
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict

import pytest
import requests

from talentintake.analysis import AnalysisProvider, AnalysisResult
from talentintake.models import CandidateSubmission, EnrichedProfile
from talentintake.orchestrator import BatchOrchestrator
from talentintake.scoring import ScoringEngine
from talentintake.storage import CandidateStore

AS_OF = date(2026, 6, 1)
NOW = datetime(2026, 6, 1, 9, 30)


def make_response(status: int, payload: Any = None, text: str = None) -> requests.Response:
    """Build a real requests.Response with a JSON (or raw) body."""
    resp = requests.Response()
    resp.status_code = status
    resp.url = "https://provider.test/api"
    if text is not None:
        resp._content = text.encode("utf-8")
    else:
        resp._content = json.dumps(payload if payload is not None else {}).encode("utf-8")
    return resp


class FakeGateway:
    """In-memory gateway keyed by candidate name."""

    def __init__(self, profiles=None, errors=None):
        self.profiles = dict(profiles or {})
        self.errors = dict(errors or {})
        self.calls = []

    def lookup(self, criteria, use_cache=True):
        self.calls.append(criteria)
        if criteria.name in self.errors:
            raise self.errors[criteria.name]
        return self.profiles.get(criteria.name)


class StubAnalysisProvider(AnalysisProvider):
    name = "stub"

    def __init__(self, skill_match=7.0, insights=("Solid backend experience",), error=None):
        self.skill_match = skill_match
        self.insights = tuple(insights)
        self.error = error
        self.calls = []

    def analyze(self, candidate_fields, job_description=None):
        self.calls.append((candidate_fields, job_description))
        if self.error is not None:
            raise self.error
        return AnalysisResult(self.skill_match, self.insights)


@pytest.fixture
def db_path(tmp_path) -> Path:
    return tmp_path / "candidates.db"


@pytest.fixture
def store(db_path):
    store = CandidateStore(db_path)
    yield store
    store.close()


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def analysis_provider() -> StubAnalysisProvider:
    return StubAnalysisProvider()


@pytest.fixture
def scoring_engine(analysis_provider) -> ScoringEngine:
    return ScoringEngine(analysis_provider)


@pytest.fixture
def orchestrator(store, fake_gateway, scoring_engine) -> BatchOrchestrator:
    return BatchOrchestrator(store, fake_gateway, scoring_engine, clock=lambda: NOW)


@pytest.fixture
def valid_submission_data() -> Dict[str, Any]:
    return {
        "name": "Jane Doe",
        "email": "Jane.Doe@Example.com",
        "company": "Acme Corp",
        "title": "Backend Engineer",
        "location": "Berlin",
        "profile_handle": "https://www.linkedin.com/in/janedoe",
        "skills": ["Python", "PostgreSQL"],
    }


@pytest.fixture
def submission(valid_submission_data) -> CandidateSubmission:
    return CandidateSubmission.from_dict(valid_submission_data)


@pytest.fixture
def enriched_profile() -> EnrichedProfile:
    """Profile a scraper would return for Jane Doe."""
    return EnrichedProfile(
        name="Jane Doe",
        headline="Senior Backend Engineer at Globex",
        current_company="Globex",
        current_title="Senior Backend Engineer",
        location="Berlin, Germany",
        summary="Backend engineer focused on data platforms.",
        skills=["Python", "Go", "Kafka"],
        connections=650,
        open_to_work=True,
        job_history=[
            {"title": "Senior Backend Engineer", "company": "Globex", "start_date": "2024-03", "end_date": "Present"},
            {"title": "Backend Engineer", "company": "Acme Corp", "start_date": "2020-01", "end_date": "2024-02"},
        ],
        last_active=date(2026, 5, 28),
        recent_activity=["Shipped our new streaming pipeline this week."],
        profile_handle="https://www.linkedin.com/in/janedoe/",
        source="profile-scraper",
    )
