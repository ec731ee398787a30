"""Circuit breaker state primitives.

Transitions are pure functions of ``(snapshot, now, config values)`` so the
breaker itself only has to hold the latest snapshot and emit events.
"""

from dataclasses import dataclass, replace
from enum import StrEnum


class CircuitState(StrEnum):
    """Circuit breaker state values."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


@dataclass(frozen=True)
class BreakerSnapshot:
    """Point-in-time view of breaker internals useful for metrics/logging.

    Attributes:
        name: Breaker name.
        state: Stored breaker state. ``OPEN`` may be stale until resolved.
        failure_window: Monotonic timestamps of failures still in the window.
        success_count: Successful probes since entering ``HALF_OPEN``.
        last_failure_at: Monotonic timestamp of the last failure, if any.
    """

    name: str
    state: CircuitState = CircuitState.CLOSED
    failure_window: tuple[float, ...] = ()
    success_count: int = 0
    last_failure_at: float | None = None

    @property
    def failure_count(self) -> int:
        """Number of failures currently held in the rolling window."""
        return len(self.failure_window)


def prune_window(
    window: tuple[float, ...], now: float, window_seconds: float
) -> tuple[float, ...]:
    """Drop failure timestamps that have aged out of the rolling window."""
    return tuple(stamp for stamp in window if now - stamp < window_seconds)


def resolve_snapshot(
    snapshot: BreakerSnapshot, now: float, timeout: float
) -> BreakerSnapshot:
    """Return the snapshot with the lazy ``OPEN -> HALF_OPEN`` move applied.

    The same object is returned when nothing changes.
    """
    if snapshot.state != CircuitState.OPEN or snapshot.last_failure_at is None:
        return snapshot
    if now - snapshot.last_failure_at > timeout:
        return replace(snapshot, state=CircuitState.HALF_OPEN, success_count=0)
    return snapshot


def apply_failure(
    snapshot: BreakerSnapshot,
    now: float,
    *,
    failure_threshold: int,
    window_seconds: float,
) -> BreakerSnapshot:
    """Account one failed call.

    A failure while ``HALF_OPEN`` re-opens immediately. While ``CLOSED`` the
    breaker opens once the pruned window reaches ``failure_threshold``. A
    failure observed while ``OPEN`` (a call that started before the trip)
    re-arms the open timer.
    """
    window = (*prune_window(snapshot.failure_window, now, window_seconds), now)
    if snapshot.state == CircuitState.CLOSED and len(window) < failure_threshold:
        state = CircuitState.CLOSED
    else:
        state = CircuitState.OPEN
    return replace(
        snapshot,
        state=state,
        failure_window=window,
        success_count=0,
        last_failure_at=now,
    )


def apply_success(
    snapshot: BreakerSnapshot, *, success_threshold: int
) -> BreakerSnapshot:
    """Account one successful call.

    Only ``HALF_OPEN`` reacts: enough consecutive successes close the breaker
    and clear every counter.
    """
    if snapshot.state != CircuitState.HALF_OPEN:
        return snapshot
    successes = snapshot.success_count + 1
    if successes >= success_threshold:
        return BreakerSnapshot(name=snapshot.name)
    return replace(snapshot, success_count=successes)


def retry_after(snapshot: BreakerSnapshot, now: float, timeout: float) -> float:
    """Seconds until an ``OPEN`` breaker will let a probe through."""
    opened_at = now if snapshot.last_failure_at is None else snapshot.last_failure_at
    return max(timeout - (now - opened_at), 0.0)
