"""
Identity resolution: is this submission someone the tenant already knows?

Only exact, normalized email and profile-handle equality participate. Names
are never used for identity.
"""

from .logger import get_logger
from .models import CandidateSubmission, MatchedBy, MatchResult
from .normalize import normalize_email, normalize_profile_handle

logger = get_logger()


class IdentityResolver:
    def __init__(self, store):
        self.store = store

    def resolve(self, tenant_id: str, submission: CandidateSubmission) -> MatchResult:
        """
        Match a submission against the tenant's stored candidates.

        Precedence, first hit wins: email and handle on one record, email
        alone, handle alone. A person whose email changed but whose handle
        did not is still found through the handle.
        """
        email = normalize_email(submission.email)
        handle = normalize_profile_handle(submission.profile_handle)

        attempts = []
        if email and handle:
            attempts.append((MatchedBy.EMAIL_AND_PROFILE, {"email": email, "profile_handle": handle}))
        if email:
            attempts.append((MatchedBy.EMAIL, {"email": email}))
        if handle:
            attempts.append((MatchedBy.PROFILE, {"profile_handle": handle}))

        for matched_by, criteria in attempts:
            candidate = self.store.find_by_identity(tenant_id, **criteria)
            if candidate is not None:
                logger.debug(
                    "Matched existing candidate",
                    tenant_id=tenant_id,
                    candidate_id=candidate.id,
                    matched_by=matched_by,
                )
                return MatchResult(candidate.id, matched_by, candidate)

        return MatchResult(None, MatchedBy.NONE)
