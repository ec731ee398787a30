"""Observability hooks for circuit breakers."""

from __future__ import annotations

from typing import Protocol

import structlog

from sagespace_core.circuit_breaker.state import CircuitState
from sagespace_core.logging import StructuredLogger, log_info, log_warning
from sagespace_core.metrics import MetricsStore


class BreakerListener(Protocol):
    """Listener protocol for circuit breaker events.

    Notes:
        Hooks run synchronously inside the breaker. ``OPEN -> HALF_OPEN`` is
        emitted from whichever read first notices the timeout has elapsed.
    """

    def on_state_change(self, name: str, old: CircuitState, new: CircuitState) -> None:
        """Handle circuit state transitions."""

    def on_call_rejected(self, name: str) -> None:
        """Handle call rejection while the circuit is open."""

    def on_call_succeeded(self, name: str, elapsed: float) -> None:
        """Handle successful protected call completion."""

    def on_call_failed(self, name: str, exc: Exception, elapsed: float) -> None:
        """Handle failed protected call completion."""


class MetricsBreakerListener:
    """Feed breaker outcomes into the process metrics registry.

    Counters are named ``circuit.<breaker>.<event>`` and call latency is
    recorded under ``circuit.<breaker>.latency`` in milliseconds.
    """

    def __init__(self, metrics: MetricsStore) -> None:
        self._metrics = metrics

    def on_state_change(self, name: str, old: CircuitState, new: CircuitState) -> None:
        _ = old
        if new == CircuitState.OPEN:
            self._metrics.increment(f"circuit.{name}.opened")

    def on_call_rejected(self, name: str) -> None:
        self._metrics.increment(f"circuit.{name}.rejected")

    def on_call_succeeded(self, name: str, elapsed: float) -> None:
        self._metrics.increment(f"circuit.{name}.success")
        self._metrics.record_latency(f"circuit.{name}.latency", elapsed * 1000)

    def on_call_failed(self, name: str, exc: Exception, elapsed: float) -> None:
        _ = exc
        self._metrics.increment(f"circuit.{name}.failure")
        self._metrics.record_latency(f"circuit.{name}.latency", elapsed * 1000)


class LoggingBreakerListener:
    """Log breaker transitions; rejections are left to the caller's logs."""

    def __init__(self, logger: StructuredLogger | None = None) -> None:
        self._logger: StructuredLogger = (
            structlog.stdlib.get_logger(__name__) if logger is None else logger
        )

    def on_state_change(self, name: str, old: CircuitState, new: CircuitState) -> None:
        fields: dict[str, object] = {
            "breaker": name,
            "old_state": str(old),
            "new_state": str(new),
        }
        if new == CircuitState.CLOSED:
            log_info(self._logger, "circuit_breaker.state_change", **fields)
            return
        log_warning(self._logger, "circuit_breaker.state_change", **fields)

    def on_call_rejected(self, name: str) -> None:
        """No-op for this listener."""
        _ = name

    def on_call_succeeded(self, name: str, elapsed: float) -> None:
        """No-op for this listener."""
        _ = (name, elapsed)

    def on_call_failed(self, name: str, exc: Exception, elapsed: float) -> None:
        log_warning(
            self._logger,
            "circuit_breaker.call_failed",
            breaker=name,
            error_type=exc.__class__.__name__,
            elapsed_ms=round(elapsed * 1000, 3),
        )
