from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from contextlib import suppress
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType

from sagespace_core.logging import log_exception, log_info, log_warning
from sagespace_core.metrics import MetricsStore

AI_LATENCY_METRIC = "ai.groq.latency"
CHAT_SUCCESS_COUNTER = "chat.success"
CHAT_ERROR_COUNTER = "chat.error"

_logger = logging.getLogger(__name__)


class LoadMode(StrEnum):
    """Operating modes, from full features to heaviest shedding."""

    NORMAL = "normal"
    LIGHT = "light"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class FeatureLimits:
    """Feature caps that expensive code paths consult before running."""

    council_participant_limit: int
    max_response_length: int
    memory_summarization_enabled: bool


MODE_LIMITS: Mapping[LoadMode, FeatureLimits] = MappingProxyType(
    {
        LoadMode.NORMAL: FeatureLimits(5, 2000, True),
        LoadMode.LIGHT: FeatureLimits(4, 1500, True),
        LoadMode.DEGRADED: FeatureLimits(3, 1000, False),
    }
)


@dataclass(frozen=True)
class LoadPolicy:
    """Thresholds turning latency and error samples into a load mode."""

    ai_latency_p95_threshold_ms: float = 5000.0
    error_rate_threshold: float = 0.05

    def __post_init__(self) -> None:
        if self.ai_latency_p95_threshold_ms <= 0:
            raise ValueError("ai_latency_p95_threshold_ms must be > 0")
        if not 0.0 <= self.error_rate_threshold <= 1.0:
            raise ValueError("error_rate_threshold must be between 0 and 1")


@dataclass(frozen=True)
class LoadStatus:
    """Derived snapshot of load flags and the resulting feature caps."""

    mode: LoadMode
    ai_latency_high: bool
    error_rate_high: bool
    council_participant_limit: int
    max_response_length: int
    memory_summarization_enabled: bool


def chat_error_rate(metrics: MetricsStore) -> float:
    errors = metrics.get_counter(CHAT_ERROR_COUNTER)
    total = metrics.get_counter(CHAT_SUCCESS_COUNTER) + errors
    return errors / total if total > 0 else 0.0


def evaluate_load(metrics: MetricsStore, policy: LoadPolicy) -> LoadStatus:
    """Compute the current load status from recorded samples.

    High error rate wins over high latency: errors mean ``degraded``, slow AI
    responses alone mean ``light``.
    """
    latency = metrics.get_metrics(AI_LATENCY_METRIC)
    ai_latency_high = (
        latency is not None and latency.p95 > policy.ai_latency_p95_threshold_ms
    )
    error_rate_high = chat_error_rate(metrics) > policy.error_rate_threshold

    if error_rate_high:
        mode = LoadMode.DEGRADED
    elif ai_latency_high:
        mode = LoadMode.LIGHT
    else:
        mode = LoadMode.NORMAL

    limits = MODE_LIMITS[mode]
    return LoadStatus(
        mode=mode,
        ai_latency_high=ai_latency_high,
        error_rate_high=error_rate_high,
        council_participant_limit=limits.council_participant_limit,
        max_response_length=limits.max_response_length,
        memory_summarization_enabled=limits.memory_summarization_enabled,
    )


async def run_load_watch_loop(
    *,
    check_once: Callable[[], Awaitable[object]],
    stop_event: asyncio.Event,
    interval_seconds: float,
) -> None:
    """Run periodic load checks until shutdown is requested.

    A failing check is logged and the loop keeps polling.
    """
    interval = max(interval_seconds, 0.01)
    while not stop_event.is_set():
        try:
            await check_once()
        except Exception:
            log_exception(_logger, "load_monitor.check_failed")
        with suppress(TimeoutError):
            await asyncio.wait_for(stop_event.wait(), timeout=interval)


class LoadMonitor:
    """Advisory load monitor consulted by feature code before heavy work.

    Status is recomputed from the metrics registry on every read. The
    optional background watcher only exists to log mode changes when no
    request happens to read the status.
    """

    def __init__(
        self,
        metrics: MetricsStore,
        *,
        policy: LoadPolicy | None = None,
        interval_seconds: float = 30.0,
    ) -> None:
        """Initialize the monitor over a metrics registry.

        Args:
            metrics: Registry holding AI latency and chat outcome samples.
            policy: Thresholds for the latency and error-rate flags.
            interval_seconds: Background watcher polling interval in seconds.
        """
        self._metrics = metrics
        self._policy = LoadPolicy() if policy is None else policy
        self._interval_seconds = max(interval_seconds, 0.01)
        self._last_mode = LoadMode.NORMAL
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def policy(self) -> LoadPolicy:
        return self._policy

    def record_ai_latency(self, latency_ms: float) -> None:
        self._metrics.record_latency(AI_LATENCY_METRIC, latency_ms)

    def record_chat_outcome(self, *, ok: bool) -> None:
        self._metrics.increment(CHAT_SUCCESS_COUNTER if ok else CHAT_ERROR_COUNTER)

    def get_status(self) -> LoadStatus:
        status = evaluate_load(self._metrics, self._policy)
        self._observe(status)
        return status

    def _observe(self, status: LoadStatus) -> None:
        previous = self._last_mode
        if status.mode == previous:
            return
        self._last_mode = status.mode
        fields: dict[str, object] = {
            "old_mode": str(previous),
            "new_mode": str(status.mode),
            "ai_latency_high": status.ai_latency_high,
            "error_rate_high": status.error_rate_high,
            "council_participant_limit": status.council_participant_limit,
            "max_response_length": status.max_response_length,
        }
        if status.mode == LoadMode.NORMAL:
            log_info(_logger, "load_monitor.mode_change", **fields)
            return
        log_warning(_logger, "load_monitor.mode_change", **fields)

    async def check_once(self) -> LoadStatus:
        return self.get_status()

    async def start_background(self) -> None:
        """Start the background watcher if not already running."""
        if self._task is not None and not self._task.done():
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(
            run_load_watch_loop(
                check_once=self.check_once,
                stop_event=self._stop_event,
                interval_seconds=self._interval_seconds,
            ),
            name="load-monitor",
        )

    async def stop_background(self) -> None:
        """Stop the background watcher and await task completion."""
        self._stop_event.set()
        task = self._task
        if task is None:
            return
        grace_seconds = self._interval_seconds + 5.0
        try:
            await asyncio.wait_for(task, timeout=grace_seconds)
        except TimeoutError:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        self._task = None
