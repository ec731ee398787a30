from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from sagespace_core.circuit_breaker import (
    BreakerRegistry,
    LoggingBreakerListener,
    MetricsBreakerListener,
    build_breaker_registry,
)
from sagespace_core.load_monitor import LoadMonitor
from sagespace_core.metrics import MetricsStore
from sagespace_core.settings import CoreSettings


@dataclass(frozen=True)
class ServiceContext:
    """Process-wide monitoring state shared by every request handler."""

    settings: CoreSettings
    metrics: MetricsStore
    breakers: BreakerRegistry
    load_monitor: LoadMonitor


def build_service_context(
    settings: CoreSettings | None = None,
    *,
    clock: Callable[[], float] = time.monotonic,
) -> ServiceContext:
    """Wire metrics, breakers and the load monitor from settings."""
    resolved = CoreSettings() if settings is None else settings
    metrics = MetricsStore()
    breakers = build_breaker_registry(
        resolved.breaker_name_list(),
        config=resolved.breaker_config(),
        listeners=[MetricsBreakerListener(metrics), LoggingBreakerListener()],
        clock=clock,
    )
    load_monitor = LoadMonitor(
        metrics,
        policy=resolved.load_policy(),
        interval_seconds=resolved.load_check_interval_seconds,
    )
    return ServiceContext(
        settings=resolved,
        metrics=metrics,
        breakers=breakers,
        load_monitor=load_monitor,
    )
