from __future__ import annotations

from sagespace_core.circuit_breaker.state import (
    BreakerSnapshot,
    CircuitState,
    apply_failure,
    apply_success,
    prune_window,
    resolve_snapshot,
    retry_after,
)


def test_prune_window_drops_stale_timestamps() -> None:
    assert prune_window((0.0, 30.0, 59.0, 60.0), 100.0, 60.0) == (59.0, 60.0)


def test_resolve_snapshot_is_identity_when_not_due() -> None:
    snapshot = BreakerSnapshot(
        name="groq",
        state=CircuitState.OPEN,
        failure_window=(10.0,),
        last_failure_at=10.0,
    )

    assert resolve_snapshot(snapshot, 70.0, 60.0) is snapshot


def test_resolve_snapshot_moves_open_to_half_open_after_timeout() -> None:
    snapshot = BreakerSnapshot(
        name="groq",
        state=CircuitState.OPEN,
        failure_window=(10.0,),
        success_count=1,
        last_failure_at=10.0,
    )

    resolved = resolve_snapshot(snapshot, 70.5, 60.0)

    assert resolved.state == CircuitState.HALF_OPEN
    assert resolved.success_count == 0
    assert resolved.last_failure_at == 10.0


def test_resolve_snapshot_ignores_closed_breaker() -> None:
    snapshot = BreakerSnapshot(name="groq")

    assert resolve_snapshot(snapshot, 1_000_000.0, 0.0) is snapshot


def test_apply_failure_opens_at_threshold() -> None:
    snapshot = BreakerSnapshot(name="groq", failure_window=(1.0, 2.0))

    updated = apply_failure(snapshot, 3.0, failure_threshold=3, window_seconds=60.0)

    assert updated.state == CircuitState.OPEN
    assert updated.failure_window == (1.0, 2.0, 3.0)
    assert updated.last_failure_at == 3.0


def test_apply_failure_below_threshold_stays_closed() -> None:
    snapshot = BreakerSnapshot(name="groq", failure_window=(1.0,))

    updated = apply_failure(snapshot, 100.0, failure_threshold=2, window_seconds=60.0)

    assert updated.state == CircuitState.CLOSED
    assert updated.failure_window == (100.0,)


def test_apply_failure_in_half_open_reopens_immediately() -> None:
    snapshot = BreakerSnapshot(
        name="groq",
        state=CircuitState.HALF_OPEN,
        success_count=1,
        last_failure_at=0.0,
    )

    updated = apply_failure(snapshot, 80.0, failure_threshold=5, window_seconds=60.0)

    assert updated.state == CircuitState.OPEN
    assert updated.success_count == 0
    assert updated.last_failure_at == 80.0


def test_apply_success_only_counts_in_half_open() -> None:
    closed = BreakerSnapshot(name="groq", failure_window=(5.0,))

    assert apply_success(closed, success_threshold=2) is closed


def test_apply_success_closes_after_threshold() -> None:
    snapshot = BreakerSnapshot(
        name="groq",
        state=CircuitState.HALF_OPEN,
        failure_window=(1.0, 2.0),
        last_failure_at=2.0,
    )

    first = apply_success(snapshot, success_threshold=2)
    second = apply_success(first, success_threshold=2)

    assert first.state == CircuitState.HALF_OPEN
    assert first.success_count == 1
    assert second == BreakerSnapshot(name="groq")


def test_retry_after_counts_down_from_last_failure() -> None:
    snapshot = BreakerSnapshot(
        name="groq", state=CircuitState.OPEN, last_failure_at=100.0
    )

    assert retry_after(snapshot, 110.0, 60.0) == 50.0
    assert retry_after(snapshot, 500.0, 60.0) == 0.0


def test_half_open_serializes_with_hyphen() -> None:
    assert str(CircuitState.HALF_OPEN) == "half-open"
