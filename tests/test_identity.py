"""
Tests for identity resolution precedence.
"""

import pytest

from talentintake.identity import IdentityResolver
from talentintake.models import CandidateRecord, CandidateSubmission, MatchedBy


@pytest.fixture
def resolver(store):
    return IdentityResolver(store)


@pytest.fixture
def jane(store):
    return store.upsert("t1", CandidateRecord(
        tenant_id="t1",
        name="Jane Doe",
        email="jane@example.com",
        profile_handle="https://www.linkedin.com/in/janedoe/",
    ))


class TestResolve:
    def test_email_and_profile(self, resolver, jane):
        """Both identities on one record match as email_and_profile."""
        result = resolver.resolve("t1", CandidateSubmission(
            name="J. Doe", email="JANE@example.com", profile_handle="linkedin.com/in/janedoe",
        ))
        assert result.matched_by == MatchedBy.EMAIL_AND_PROFILE
        assert result.matched_candidate_id == jane.id
        assert result.candidate.name == "Jane Doe"

    def test_email_only(self, resolver, jane):
        """Same email with a different handle matches by email."""
        result = resolver.resolve("t1", CandidateSubmission(
            name="Jane", email="jane@example.com", profile_handle="https://linkedin.com/in/someone-else",
        ))
        assert result.matched_by == MatchedBy.EMAIL
        assert result.matched_candidate_id == jane.id

    def test_profile_only_after_email_change(self, resolver, jane):
        """A new email with the known handle still finds the person."""
        result = resolver.resolve("t1", CandidateSubmission(
            name="Jane", email="jane@newjob.com", profile_handle="https://www.linkedin.com/in/janedoe",
        ))
        assert result.matched_by == MatchedBy.PROFILE
        assert result.matched_candidate_id == jane.id

    def test_no_match(self, resolver, jane):
        """Unknown identities give none."""
        result = resolver.resolve("t1", CandidateSubmission(name="Jane Doe", email="other@example.com"))
        assert result.matched_by == MatchedBy.NONE
        assert result.matched_candidate_id is None

    def test_name_never_matches(self, resolver, jane):
        """Identical name without email/handle is a new person."""
        result = resolver.resolve("t1", CandidateSubmission(name="Jane Doe"))
        assert result.matched_by == MatchedBy.NONE

    def test_tenant_isolation(self, resolver, jane):
        """A record in another tenant is invisible."""
        result = resolver.resolve("t2", CandidateSubmission(name="Jane", email="jane@example.com"))
        assert result.matched_by == MatchedBy.NONE
