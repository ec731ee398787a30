"""Core circuit breaker implementation."""

import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import ParamSpec, TypeVar

from sagespace_core.circuit_breaker.exceptions import CircuitOpenError
from sagespace_core.circuit_breaker.metrics import BreakerListener
from sagespace_core.circuit_breaker.state import (
    BreakerSnapshot,
    CircuitState,
    apply_failure,
    apply_success,
    resolve_snapshot,
    retry_after,
)

T = TypeVar("T")
P = ParamSpec("P")

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CircuitBreakerConfig:
    """Circuit breaker configuration values.

    Attributes:
        failure_threshold: Failures inside ``window`` required to open.
        success_threshold: Consecutive half-open successes required to close.
        timeout: Seconds to stay ``OPEN`` after the last failure.
        window: Rolling window, in seconds, over which failures are counted.
        expected_exceptions: Exceptions that count as failures.
        excluded_exceptions: Exceptions that must not count as failures.
    """

    failure_threshold: int = 5
    success_threshold: int = 2
    timeout: float = 60.0
    window: float = 60.0
    expected_exceptions: tuple[type[Exception], ...] = (Exception,)
    excluded_exceptions: tuple[type[Exception], ...] = ()

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.success_threshold < 1:
            raise ValueError("success_threshold must be >= 1")
        if self.timeout < 0:
            raise ValueError("timeout must be >= 0")
        if self.window <= 0:
            raise ValueError("window must be > 0")


class CircuitBreaker:
    """Stateful guard around a dangerous async operation.

    State lives in memory for the life of the process. There is no background
    timer: ``OPEN`` becomes ``HALF_OPEN`` on the first read after the timeout.
    """

    def __init__(
        self,
        name: str,
        *,
        config: CircuitBreakerConfig | None = None,
        listeners: Sequence[BreakerListener] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Build a circuit breaker with optional custom dependencies.

        Args:
            name: Breaker name used in errors, logs and metrics.
            config: Breaker behavior configuration. Defaults to
                ``CircuitBreakerConfig()``.
            listeners: Optional listener hooks for breaker events.
            clock: Monotonic clock in seconds, injectable for tests.
        """
        self.name = name
        self.config = CircuitBreakerConfig() if config is None else config
        self._listeners = tuple(listeners) if listeners is not None else ()
        self._clock = clock
        self._snapshot = BreakerSnapshot(name=name)

    def _notify(self, hook: str, *args: object) -> None:
        for listener in self._listeners:
            try:
                getattr(listener, hook)(self.name, *args)
            except Exception:
                _logger.warning(
                    "Circuit breaker listener failed; continuing",
                    exc_info=True,
                    extra={"breaker": self.name, "hook": hook},
                )

    def _store(self, updated: BreakerSnapshot) -> BreakerSnapshot:
        previous = self._snapshot.state
        self._snapshot = updated
        if previous != updated.state:
            self._notify("on_state_change", previous, updated.state)
        return updated

    def _refresh(self) -> BreakerSnapshot:
        current = self._snapshot
        resolved = resolve_snapshot(current, self._clock(), self.config.timeout)
        if resolved is current:
            return current
        return self._store(resolved)

    @property
    def snapshot(self) -> BreakerSnapshot:
        """Return the current snapshot with time-based transitions applied."""
        return self._refresh()

    def get_state(self) -> CircuitState:
        """Return the current state, moving ``OPEN`` to ``HALF_OPEN`` if due."""
        return self._refresh().state

    def reset(self) -> None:
        """Force the breaker back to a clean ``CLOSED`` state."""
        self._store(BreakerSnapshot(name=self.name))

    async def execute(
        self,
        func: Callable[P, Awaitable[T]],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        """Invoke an async callable under circuit breaker protection.

        Args:
            func: Dangerous async callable to execute.
            *args: Positional arguments forwarded to ``func``.
            **kwargs: Keyword arguments forwarded to ``func``.

        Returns:
            The result of ``func`` when allowed and successful.

        Raises:
            CircuitOpenError: When the circuit is open and the call is rejected.
            Exception: The original exception from ``func`` when it is attempted
                and fails.
        """
        snapshot = self._refresh()
        if snapshot.state == CircuitState.OPEN:
            self._notify("on_call_rejected")
            raise CircuitOpenError(
                self.name,
                retry_after=retry_after(snapshot, self._clock(), self.config.timeout),
            )

        start = time.perf_counter()
        try:
            result = await func(*args, **kwargs)
        except self.config.excluded_exceptions:
            raise
        except self.config.expected_exceptions as exc:
            elapsed = max(time.perf_counter() - start, 0.0)
            self._notify("on_call_failed", exc, elapsed)
            self._store(
                apply_failure(
                    self._snapshot,
                    self._clock(),
                    failure_threshold=self.config.failure_threshold,
                    window_seconds=self.config.window,
                )
            )
            raise
        else:
            elapsed = max(time.perf_counter() - start, 0.0)
            self._store(
                apply_success(
                    self._snapshot,
                    success_threshold=self.config.success_threshold,
                )
            )
            self._notify("on_call_succeeded", elapsed)
            return result
