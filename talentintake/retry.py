"""
Backoff and circuit-breaking for calls to external providers.

Enrichment and analysis providers are slow, rate limited and occasionally
down. Request-level retries absorb short network blips; the circuit breaker
stops a batch from hammering a provider that is clearly failing.
"""

import functools
import re
import time
from typing import Callable, Iterator, Optional, Tuple, Type

from .errors import CircuitOpenError


class RetryError(Exception):
    """The wrapped call kept failing; ``__cause__`` holds the last failure."""


def backoff_delays(base_delay: float, max_delay: float, factor: float) -> Iterator[float]:
    """Yield base_delay, base_delay*factor, ... with each value capped at max_delay."""
    delay = base_delay
    while True:
        yield min(delay, max_delay)
        delay *= factor


def exponential_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable] = None,
    sleep: Callable[[float], None] = time.sleep,
):
    """
    Retry the decorated call on ``exceptions``, sleeping longer each time.

    The call runs at most ``max_retries + 1`` times. ``on_retry`` is called
    as ``on_retry(attempt, exception, delay)`` before each sleep. Exceptions
    not listed propagate immediately.

        post = exponential_backoff(max_retries=2, exceptions=(Timeout,))(session.post)
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            delays = backoff_delays(base_delay, max_delay, exponential_base)
            attempt = 0
            while True:
                attempt += 1
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt > max_retries:
                        raise RetryError(f"Failed after {attempt} attempts: {e}") from e
                    wait = next(delays)
                    if on_retry:
                        on_retry(attempt, e, wait)
                    sleep(wait)

        return wrapper
    return decorator


class CircuitBreaker:
    """
    Fails fast once a provider has failed ``failure_threshold`` times in a row.

    closed: calls go through. open: calls raise CircuitOpenError until
    ``recovery_timeout`` seconds have passed since the last failure.
    half_open: a single trial call either closes the circuit or reopens it.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        name: str = "provider",
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        expected_exception: Type[Exception] = Exception,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception
        self._clock = clock
        self.reset()

    def reset(self):
        """Close the circuit and forget past failures."""
        self.state = self.CLOSED
        self.failure_count = 0
        self.opened_at: Optional[float] = None

    def call(self, func: Callable, *args, **kwargs):
        """Run ``func`` unless the circuit is open; count expected_exception as a failure."""
        if self.state == self.OPEN:
            remaining = self.recovery_timeout - (self._clock() - self.opened_at)
            if remaining > 0:
                raise CircuitOpenError(
                    f"Circuit for {self.name} is open. Retry after {remaining:.0f}s",
                    provider=self.name,
                )
            self.state = self.HALF_OPEN

        try:
            result = func(*args, **kwargs)
        except self.expected_exception:
            self._record_failure()
            raise

        self.state = self.CLOSED
        self.failure_count = 0
        return result

    def _record_failure(self):
        self.failure_count += 1
        if self.state == self.HALF_OPEN or self.failure_count >= self.failure_threshold:
            self.state = self.OPEN
            self.opened_at = self._clock()


_TRANSIENT = re.compile(
    r"time(d )?out|connection|temporary failure|service unavailable|bad gateway|\b50[234]\b"
)

RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


def is_transient_error(exception: Exception) -> bool:
    """True if the message reads like a network blip or gateway hiccup."""
    return bool(_TRANSIENT.search(str(exception).lower()))


def should_retry_http_status(status_code: int) -> bool:
    """True for request timeouts, 429 and 5xx gateway statuses."""
    return status_code in RETRYABLE_STATUSES
