"""Process-wide metrics registry.

Named counters and latency series kept in memory and rendered as an ad hoc
JSON snapshot by the status endpoint. Nothing here is exported or persisted.
"""

from __future__ import annotations

import math
import time
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field

MAX_LATENCY_SAMPLES = 100


@dataclass(frozen=True)
class LatencySummary:
    """Aggregate view over one latency series, in milliseconds."""

    count: int
    avg: float
    min: float
    max: float
    p50: float
    p95: float
    p99: float

    def as_dict(self) -> dict[str, float | int]:
        return asdict(self)


@dataclass
class _LatencySeries:
    count: int = 0
    total: float = 0.0
    minimum: float = math.inf
    maximum: float = 0.0
    samples: deque[float] = field(
        default_factory=lambda: deque(maxlen=MAX_LATENCY_SAMPLES)
    )

    def add(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.minimum = min(self.minimum, value)
        self.maximum = max(self.maximum, value)
        self.samples.append(value)


def _percentile(ordered: list[float], quantile: float) -> float:
    if not ordered:
        return 0.0
    return ordered[math.floor(len(ordered) * quantile)]


class MetricsStore:
    """In-memory counters and latency timers keyed by dotted metric name."""

    def __init__(self) -> None:
        self._counters: dict[str, float] = {}
        self._latencies: dict[str, _LatencySeries] = {}

    def increment(self, metric: str, value: float = 1) -> None:
        self._counters[metric] = self._counters.get(metric, 0) + value

    def get_counter(self, metric: str) -> float:
        return self._counters.get(metric, 0)

    def record_latency(self, metric: str, latency_ms: float) -> None:
        """Add one latency sample; only the newest samples feed percentiles."""
        if latency_ms < 0:
            raise ValueError("latency_ms must be >= 0")
        series = self._latencies.get(metric)
        if series is None:
            series = _LatencySeries()
            self._latencies[metric] = series
        series.add(latency_ms)

    def get_metrics(self, metric: str) -> LatencySummary | None:
        """Summarize one latency series, or ``None`` when nothing was recorded.

        Count, average, min and max cover every sample ever recorded while the
        percentiles are taken over the retained window of recent samples.
        """
        series = self._latencies.get(metric)
        if series is None or series.count == 0:
            return None
        ordered = sorted(series.samples)
        return LatencySummary(
            count=series.count,
            avg=series.total / series.count,
            min=series.minimum,
            max=series.maximum,
            p50=_percentile(ordered, 0.5),
            p95=_percentile(ordered, 0.95),
            p99=_percentile(ordered, 0.99),
        )

    def get_all_metrics(self) -> dict[str, object]:
        """Return a JSON-ready snapshot of every counter and latency series."""
        snapshot: dict[str, object] = dict(self._counters)
        for metric in self._latencies:
            summary = self.get_metrics(metric)
            snapshot[metric] = None if summary is None else summary.as_dict()
        return snapshot

    def reset(self) -> None:
        self._counters.clear()
        self._latencies.clear()


@contextmanager
def timed(metrics: MetricsStore, metric: str) -> Iterator[None]:
    """Record the wall-clock duration of the ``with`` block as a latency sample.

    The sample is recorded even when the block raises.
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = max(time.perf_counter() - start, 0.0) * 1000
        metrics.record_latency(metric, elapsed_ms)


@dataclass(frozen=True)
class SloTargets:
    """Latency and error-rate objectives for user-facing features."""

    playground_chat_p95_ms: float = 3000
    council_response_p95_ms: float = 7000
    error_rate_threshold: float = 0.01


SLOS = SloTargets()


def check_slo_violation(
    metric: str, value: float, *, slos: SloTargets = SLOS
) -> bool:
    """Return ``True`` when ``value`` breaks the objective for ``metric``.

    Metrics without an objective never violate.
    """
    if metric == "playground.chat.latency":
        return value > slos.playground_chat_p95_ms
    if metric == "council.response.latency":
        return value > slos.council_response_p95_ms
    if metric == "chat.error_rate":
        return value > slos.error_rate_threshold
    return False
