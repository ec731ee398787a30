from __future__ import annotations

import pytest
from tenacity import AsyncRetrying, RetryCallState, RetryError
from tenacity.retry import retry_if_exception_type

from sagespace_core.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitOpenError,
    CircuitState,
)
from sagespace_core.errors import TransientError
from sagespace_core.retry import (
    RetryBackoffPolicy,
    build_exponential_jitter_retrying,
    call_with_retry,
)
from tests.sagespace_core.support.fakes import FakeClock

pytestmark = pytest.mark.asyncio

_NO_WAIT = RetryBackoffPolicy(attempts=3, min_seconds=0.0, max_seconds=0.0)


async def _no_sleep(delay: float) -> None:
    _ = delay


@pytest.mark.parametrize(
    ("attempts", "min_seconds", "max_seconds", "message"),
    [
        (0, 0.0, 1.0, "attempts must be >= 1"),
        (1, -0.1, 1.0, "min_seconds must be >= 0"),
        (1, 0.1, -0.1, "max_seconds must be >= 0"),
        (1, 2.0, 1.0, "max_seconds must be >= min_seconds"),
    ],
)
async def test_retry_backoff_policy_validation(
    attempts: int,
    min_seconds: float,
    max_seconds: float,
    message: str,
) -> None:
    with pytest.raises(ValueError, match=message):
        RetryBackoffPolicy(
            attempts=attempts,
            min_seconds=min_seconds,
            max_seconds=max_seconds,
        )


async def test_build_retrying_without_optional_hooks() -> None:
    retrying = build_exponential_jitter_retrying(policy=_NO_WAIT)

    assert isinstance(retrying, AsyncRetrying)


async def test_build_retrying_with_before_sleep_and_reraise_disabled() -> None:
    before_sleep_calls: list[int] = []
    sleep_calls: list[float] = []

    async def _sleep(delay: float) -> None:
        sleep_calls.append(delay)

    def _before_sleep(state: RetryCallState) -> None:
        before_sleep_calls.append(state.attempt_number)

    retrying = build_exponential_jitter_retrying(
        retry=retry_if_exception_type(ValueError),
        policy=RetryBackoffPolicy(attempts=2, min_seconds=0.0, max_seconds=0.0),
        sleep=_sleep,
        before_sleep=_before_sleep,
        reraise=False,
    )

    with pytest.raises(RetryError):
        async for attempt in retrying:
            with attempt:
                raise ValueError("boom")

    assert before_sleep_calls == [1]
    assert len(sleep_calls) == 1


async def test_call_with_retry_recovers_from_transient_errors(
    fake_clock: FakeClock,
) -> None:
    breaker = CircuitBreaker("groq", clock=fake_clock)
    attempts = 0

    async def _flaky(prompt: str) -> str:
        nonlocal attempts
        attempts += 1
        if attempts < 3:
            raise TransientError("429 rate limited")
        return prompt.upper()

    result = await call_with_retry(
        breaker, _flaky, "hello", policy=_NO_WAIT, sleep=_no_sleep
    )

    assert result == "HELLO"
    assert attempts == 3
    assert breaker.snapshot.failure_count == 2


async def test_call_with_retry_does_not_retry_permanent_errors(
    fake_clock: FakeClock,
) -> None:
    breaker = CircuitBreaker("groq", clock=fake_clock)
    attempts = 0

    async def _bad_request() -> None:
        nonlocal attempts
        attempts += 1
        raise ValueError("400 invalid model")

    with pytest.raises(ValueError, match="invalid model"):
        await call_with_retry(breaker, _bad_request, policy=_NO_WAIT, sleep=_no_sleep)

    assert attempts == 1


async def test_call_with_retry_stops_once_breaker_opens(
    fake_clock: FakeClock,
) -> None:
    breaker = CircuitBreaker(
        "gateway",
        config=CircuitBreakerConfig(failure_threshold=2),
        clock=fake_clock,
    )
    attempts = 0

    async def _down() -> None:
        nonlocal attempts
        attempts += 1
        raise TransientError("503 unavailable")

    with pytest.raises(CircuitOpenError):
        await call_with_retry(
            breaker,
            _down,
            policy=RetryBackoffPolicy(attempts=5, min_seconds=0.0, max_seconds=0.0),
            sleep=_no_sleep,
        )

    assert attempts == 2
    assert breaker.get_state() == CircuitState.OPEN


async def test_call_with_retry_reraises_last_transient_error(
    fake_clock: FakeClock,
) -> None:
    breaker = CircuitBreaker("supabase", clock=fake_clock)

    async def _timeout() -> None:
        raise TransientError("timeout")

    with pytest.raises(TransientError, match="timeout"):
        await call_with_retry(breaker, _timeout, policy=_NO_WAIT, sleep=_no_sleep)

    assert breaker.snapshot.failure_count == 3
    assert breaker.get_state() == CircuitState.CLOSED
