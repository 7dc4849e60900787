"""
Error taxonomy for the intake pipeline.

Every failure that can end a single item carries a stable ``kind`` and a
``retryable`` hint so callers can decide whether to resubmit the item later.
Only BatchSetupError and WeightsValidationError abort a whole batch.
"""

from typing import Any, Dict, Optional


class IntakeError(Exception):
    """Base class for all pipeline errors."""

    kind = "IntakeError"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(IntakeError):
    """A submission or configuration value is malformed."""

    kind = "ValidationError"


class WeightsValidationError(ValidationError):
    """Explicit scoring weights are negative or do not sum to 100."""

    kind = "WeightsValidationError"


class NotFoundError(IntakeError):
    """The enrichment provider has no profile for the lookup criteria."""

    kind = "NotFoundError"


class ProviderError(IntakeError):
    """Failure reported by an external provider (enrichment or analysis)."""

    kind = "ProviderError"

    def __init__(self, message: str, provider: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status = status


class RateLimitError(ProviderError):
    kind = "RateLimitError"
    retryable = True


class ServiceUnavailableError(ProviderError):
    kind = "ServiceUnavailableError"
    retryable = True


class CircuitOpenError(ServiceUnavailableError):
    """Raised without calling the provider while its circuit is open."""

    kind = "CircuitOpenError"


class AuthorizationError(ProviderError):
    """Credentials were rejected. Needs operator attention, not a retry."""

    kind = "AuthorizationError"


class PersistenceError(IntakeError):
    kind = "PersistenceError"
    retryable = True


class IdentityConflictError(PersistenceError):
    """A new record collides with a stored candidate's email or handle."""

    kind = "IdentityConflictError"
    retryable = False

    def __init__(self, message: str, existing=None):
        super().__init__(message)
        self.existing = existing


class BatchSetupError(IntakeError):
    """The batch cannot start (unreadable input, bad options)."""

    kind = "BatchSetupError"


def describe_error(exc: BaseException) -> Dict[str, Any]:
    """Return a JSON-friendly ``{kind, message, retryable}`` description."""
    if isinstance(exc, IntakeError):
        info = {"kind": exc.kind, "message": exc.message, "retryable": exc.retryable}
        provider = getattr(exc, "provider", None)
        if provider:
            info["provider"] = provider
        return info
    return {
        "kind": "UnexpectedError",
        "message": str(exc) or exc.__class__.__name__,
        "retryable": False,
    }
