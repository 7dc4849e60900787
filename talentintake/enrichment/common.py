"""Shared plumbing for enrichment back-ends: HTTP error mapping and the
rate-limit/cache context owned by a gateway."""

import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

import requests

from ..errors import (
    AuthorizationError,
    NotFoundError,
    ProviderError,
    RateLimitError,
    ServiceUnavailableError,
)
from ..logger import get_logger
from ..models import EnrichedProfile
from ..retry import CircuitBreaker, RetryError, exponential_backoff, is_transient_error, should_retry_http_status

logger = get_logger()


class EnrichmentContext:
    """
    Rate-limit budget, profile cache and circuit breaker for one provider.

    Created by the caller and handed to the gateway; orchestrators that share
    a provider account share one context.
    """

    def __init__(
        self,
        min_interval: float = 2.0,
        cache_ttl: float = 3600.0,
        breaker: Optional[CircuitBreaker] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval = min_interval
        self.cache_ttl = cache_ttl
        self.breaker = breaker or CircuitBreaker(
            name="enrichment",
            failure_threshold=5,
            recovery_timeout=60.0,
            expected_exception=ServiceUnavailableError,
            clock=clock,
        )
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_request: Optional[float] = None
        self._cache: Dict[str, Tuple[float, EnrichedProfile]] = {}

    def wait_turn(self) -> None:
        """Block until min_interval has passed since the previous request."""
        with self._lock:
            if self._last_request is not None:
                wait = self.min_interval - (self._clock() - self._last_request)
                if wait > 0:
                    self._sleep(wait)
            self._last_request = self._clock()

    def cached(self, key: str) -> Optional[EnrichedProfile]:
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            stored_at, profile = entry
            if self._clock() - stored_at > self.cache_ttl:
                del self._cache[key]
                return None
            return profile

    def remember(self, key: str, profile: EnrichedProfile) -> None:
        with self._lock:
            self._cache[key] = (self._clock(), profile)


def post_json(
    session: requests.Session,
    url: str,
    payload: Dict[str, Any],
    provider: str,
    timeout: float = 15.0,
    max_retries: int = 2,
    token: Optional[str] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Any:
    """POST a JSON payload and return the decoded JSON body.

    Timeouts and connection errors are retried with backoff. Everything else
    is mapped onto the error taxonomy.

    Raises:
        NotFoundError: 404
        RateLimitError: 429
        AuthorizationError: 401/403
        ServiceUnavailableError: 5xx, timeouts, connection failures, bad JSON
        ProviderError: any other rejected request
    """
    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"

    def _log_retry(attempt, error, delay):
        logger.warning(f"{provider} request failed, retrying", attempt=attempt, delay=delay, error=str(error))

    send = exponential_backoff(
        max_retries=max_retries,
        base_delay=1.0,
        exceptions=(requests.exceptions.Timeout, requests.exceptions.ConnectionError),
        on_retry=_log_retry,
        sleep=sleep,
    )(session.post)

    logger.record_api_call()
    try:
        resp = send(url, json=payload, headers=headers, timeout=timeout)
        resp.raise_for_status()
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else 0
        if status == 404:
            raise NotFoundError(f"{provider}: no profile found")
        if status == 429:
            logger.warning(f"{provider} rate limit hit", url=url)
            raise RateLimitError(f"{provider} rate limit exceeded", provider=provider, status=429)
        if status in (401, 403):
            raise AuthorizationError(f"{provider} rejected credentials ({status})", provider=provider, status=status)
        if status >= 500 or should_retry_http_status(status):
            logger.error(f"{provider} unavailable", url=url, status=status)
            raise ServiceUnavailableError(f"{provider} unavailable ({status})", provider=provider, status=status)
        raise ProviderError(f"{provider} rejected request ({status})", provider=provider, status=status)
    except RetryError as e:
        logger.error(f"{provider} unreachable", url=url, error=str(e))
        raise ServiceUnavailableError(f"{provider} unreachable: {e}", provider=provider) from e
    except requests.exceptions.RequestException as e:
        if is_transient_error(e):
            raise ServiceUnavailableError(f"{provider} request error: {e}", provider=provider) from e
        raise ProviderError(f"{provider} request error: {e}", provider=provider) from e

    try:
        return resp.json()
    except ValueError as e:
        raise ServiceUnavailableError(f"{provider} returned malformed JSON", provider=provider) from e
