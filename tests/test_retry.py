"""
Tests for provider backoff and the circuit breaker.
"""

import itertools

import pytest

from talentintake.errors import CircuitOpenError, ServiceUnavailableError
from talentintake.retry import (
    CircuitBreaker,
    RetryError,
    backoff_delays,
    exponential_backoff,
    is_transient_error,
    should_retry_http_status,
)


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FlakyProvider:
    """Raises the queued errors in order, then answers."""

    def __init__(self, *errors, answer="profile"):
        self.errors = list(errors)
        self.answer = answer
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.answer


def no_sleep(seconds):
    pass


class TestBackoff:
    def test_first_answer_is_returned(self):
        """A provider that answers at once is called once."""
        provider = FlakyProvider()

        assert exponential_backoff(max_retries=3, sleep=no_sleep)(provider)() == "profile"
        assert provider.calls == 1

    def test_recovers_after_blips(self):
        """Two connection resets are absorbed by retries."""
        provider = FlakyProvider(ConnectionError("reset"), ConnectionError("reset"))

        assert exponential_backoff(max_retries=3, sleep=no_sleep)(provider)() == "profile"
        assert provider.calls == 3

    def test_gives_up_with_cause(self):
        """After max_retries the last failure is chained onto RetryError."""
        provider = FlakyProvider(*[TimeoutError("slow")] * 5)

        with pytest.raises(RetryError, match="Failed after 3 attempts") as exc_info:
            exponential_backoff(max_retries=2, sleep=no_sleep)(provider)()

        assert provider.calls == 3
        assert isinstance(exc_info.value.__cause__, TimeoutError)

    def test_unlisted_exception_is_not_retried(self):
        """Errors outside ``exceptions`` propagate on the first call."""
        provider = FlakyProvider(KeyError("name"))
        wrapped = exponential_backoff(max_retries=3, exceptions=(ConnectionError,), sleep=no_sleep)(provider)

        with pytest.raises(KeyError):
            wrapped()
        assert provider.calls == 1

    def test_sleeps_follow_capped_schedule(self):
        """Each wait multiplies the last until max_delay is reached."""
        slept = []
        provider = FlakyProvider(*[ConnectionError("down")] * 10)
        wrapped = exponential_backoff(
            max_retries=4, base_delay=1.0, max_delay=5.0, exponential_base=3.0, sleep=slept.append,
        )(provider)

        with pytest.raises(RetryError):
            wrapped()

        assert slept == [1.0, 3.0, 5.0, 5.0]

    def test_on_retry_sees_each_attempt(self):
        """The callback gets the attempt number, the error and the wait."""
        seen = []
        provider = FlakyProvider(ConnectionError("reset"), ConnectionError("reset"), ConnectionError("reset"))
        wrapped = exponential_backoff(
            max_retries=2,
            base_delay=0.5,
            on_retry=lambda attempt, exc, delay: seen.append((attempt, str(exc), delay)),
            sleep=no_sleep,
        )(provider)

        with pytest.raises(RetryError):
            wrapped()

        assert seen == [(1, "reset", 0.5), (2, "reset", 1.0)]

    def test_backoff_delays(self):
        """The delay generator is unbounded and capped."""
        assert list(itertools.islice(backoff_delays(2.0, 10.0, 2.0), 5)) == [2.0, 4.0, 8.0, 10.0, 10.0]


class TestCircuitBreaker:
    @staticmethod
    def outage():
        raise ServiceUnavailableError("provider down", provider="profile-search")

    def trip(self, breaker, times):
        for _ in range(times):
            with pytest.raises(ServiceUnavailableError):
                breaker.call(self.outage)

    def test_passes_calls_while_closed(self):
        """A fresh breaker is closed and returns the call's result."""
        breaker = CircuitBreaker(failure_threshold=3)

        assert breaker.call(lambda: 42) == 42
        assert breaker.state == CircuitBreaker.CLOSED

    def test_fails_fast_once_open(self):
        """After the threshold the provider is no longer called."""
        breaker = CircuitBreaker(name="enrichment", failure_threshold=3, recovery_timeout=60, clock=FakeClock())
        provider = FlakyProvider(*[ServiceUnavailableError("down", provider="x")] * 5)

        for _ in range(3):
            with pytest.raises(ServiceUnavailableError):
                breaker.call(provider)
        assert breaker.state == CircuitBreaker.OPEN

        with pytest.raises(CircuitOpenError, match="enrichment is open") as exc_info:
            breaker.call(provider)
        assert provider.calls == 3
        assert exc_info.value.provider == "enrichment"

    def test_success_resets_the_count(self):
        """Failures must be consecutive to open the circuit."""
        breaker = CircuitBreaker(failure_threshold=2)

        self.trip(breaker, 1)
        breaker.call(lambda: "ok")
        self.trip(breaker, 1)

        assert breaker.state == CircuitBreaker.CLOSED
        assert breaker.failure_count == 1

    def test_other_exceptions_are_not_counted(self):
        """Only expected_exception counts toward opening."""
        breaker = CircuitBreaker(failure_threshold=1, expected_exception=ServiceUnavailableError)

        with pytest.raises(KeyError):
            breaker.call(FlakyProvider(KeyError("x")))

        assert breaker.state == CircuitBreaker.CLOSED

    def test_trial_call_closes_after_recovery(self):
        """Once the timeout passes a successful trial closes the circuit."""
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=30, clock=clock)
        self.trip(breaker, 2)

        clock.advance(31)

        assert breaker.call(lambda: "back") == "back"
        assert breaker.state == CircuitBreaker.CLOSED
        assert breaker.failure_count == 0

    def test_trial_failure_reopens(self):
        """A failed trial opens the circuit for another full window."""
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=30, clock=clock)
        self.trip(breaker, 2)
        clock.advance(31)

        self.trip(breaker, 1)
        assert breaker.state == CircuitBreaker.OPEN

        clock.advance(20)
        with pytest.raises(CircuitOpenError):
            breaker.call(lambda: "too soon")

    def test_reset(self):
        """reset() closes an open circuit."""
        breaker = CircuitBreaker(failure_threshold=2)
        self.trip(breaker, 2)

        breaker.reset()

        assert breaker.state == CircuitBreaker.CLOSED
        assert breaker.failure_count == 0


class TestTransientClassification:
    @pytest.mark.parametrize("message", [
        "Connection timeout",
        "Connection reset by peer",
        "503 Service Unavailable",
        "upstream answered 502",
        "Read timed out",
    ])
    def test_transient_messages(self, message):
        """Network blips and gateway errors are transient."""
        assert is_transient_error(Exception(message))

    @pytest.mark.parametrize("message", ["404 Not Found", "401 Unauthorized", "invalid profile handle"])
    def test_permanent_messages(self, message):
        """Client errors are not transient."""
        assert not is_transient_error(Exception(message))

    def test_retryable_statuses(self):
        """Timeouts, throttling and 5xx gateway statuses are retried."""
        assert [s for s in (200, 400, 401, 403, 404, 408, 429, 500, 502, 503, 504) if should_retry_http_status(s)] \
            == [408, 429, 500, 502, 503, 504]
