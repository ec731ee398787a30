"""In-process async circuit breaker for external providers.

This package implements the circuit breaker pattern from *Release It!*.

Key behavior notes:
  - Failures are counted over a rolling time window; stale failures age out
    and never keep a breaker tripped.
  - ``OPEN`` turns into ``HALF_OPEN`` lazily, on the first read after the
    timeout. No timer task is involved.
  - ``HALF_OPEN`` lets every call through as a probe. ``success_threshold``
    consecutive successes close the breaker; any failure re-opens it.
  - The breaker never retries. Retry policy lives above it
    (see ``sagespace_core.retry``).
"""

from sagespace_core.circuit_breaker.breaker import CircuitBreaker, CircuitBreakerConfig
from sagespace_core.circuit_breaker.exceptions import (
    CircuitBreakerError,
    CircuitOpenError,
    UnknownBreakerError,
)
from sagespace_core.circuit_breaker.metrics import (
    BreakerListener,
    LoggingBreakerListener,
    MetricsBreakerListener,
)
from sagespace_core.circuit_breaker.registry import (
    DEFAULT_BREAKER_NAMES,
    BreakerRegistry,
    build_breaker_registry,
)
from sagespace_core.circuit_breaker.state import BreakerSnapshot, CircuitState

__all__ = [
    "DEFAULT_BREAKER_NAMES",
    "BreakerListener",
    "BreakerRegistry",
    "BreakerSnapshot",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitOpenError",
    "CircuitState",
    "LoggingBreakerListener",
    "MetricsBreakerListener",
    "UnknownBreakerError",
    "build_breaker_registry",
]
