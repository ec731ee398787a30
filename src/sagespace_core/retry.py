from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    stop_after_attempt,
    stop_never,
    wait_exponential_jitter,
)
from tenacity.retry import (
    retry_base,
    retry_if_exception_type,
    retry_if_not_exception_type,
)

from sagespace_core.circuit_breaker import CircuitBreaker, CircuitOpenError
from sagespace_core.errors import TransientError

T = TypeVar("T")

RETRY_TRANSIENT_ERRORS: retry_base = retry_if_exception_type(
    TransientError
) & retry_if_not_exception_type(CircuitOpenError)


@dataclass(frozen=True)
class RetryBackoffPolicy:
    """Configuration for retry attempt count and backoff boundaries."""

    attempts: int | None = 3
    min_seconds: float = 0.2
    max_seconds: float = 2.0

    def __post_init__(self) -> None:
        if self.attempts is not None and self.attempts < 1:
            raise ValueError("attempts must be >= 1 when provided")
        if self.min_seconds < 0:
            raise ValueError("min_seconds must be >= 0")
        if self.max_seconds < 0:
            raise ValueError("max_seconds must be >= 0")
        if self.max_seconds < self.min_seconds:
            raise ValueError("max_seconds must be >= min_seconds")


def build_exponential_jitter_retrying(
    *,
    retry: retry_base = RETRY_TRANSIENT_ERRORS,
    policy: RetryBackoffPolicy,
    sleep: Callable[[float], Awaitable[None]] | None = None,
    before_sleep: Callable[[RetryCallState], None] | None = None,
    reraise: bool = True,
) -> AsyncRetrying:
    """Build an ``AsyncRetrying`` with exponential jitter backoff."""
    stop = (
        stop_never if policy.attempts is None else stop_after_attempt(policy.attempts)
    )
    options: dict[str, Any] = {
        "retry": retry,
        "wait": wait_exponential_jitter(
            initial=policy.min_seconds,
            max=policy.max_seconds,
        ),
        "stop": stop,
        "reraise": reraise,
    }
    if sleep is not None:
        options["sleep"] = sleep
    if before_sleep is not None:
        options["before_sleep"] = before_sleep
    return AsyncRetrying(**options)


async def call_with_retry(
    breaker: CircuitBreaker,
    func: Callable[..., Awaitable[T]],
    *args: Any,
    policy: RetryBackoffPolicy | None = None,
    sleep: Callable[[float], Awaitable[None]] | None = None,
    **kwargs: Any,
) -> T:
    """Run ``func`` through ``breaker``, retrying transient provider errors.

    Every attempt is a separate breaker call, so failed attempts count toward
    tripping it. Once the breaker opens the ``CircuitOpenError`` ends the
    retry loop immediately.
    """
    retrying = build_exponential_jitter_retrying(
        policy=RetryBackoffPolicy() if policy is None else policy,
        sleep=sleep,
    )
    async for attempt in retrying:
        with attempt:
            return await breaker.execute(func, *args, **kwargs)
    raise AssertionError("retry loop exited without a result")
