"""Named breaker registry, one breaker per guarded dependency."""

import time
from collections.abc import Callable, Iterable, Iterator, Sequence

from sagespace_core.circuit_breaker.breaker import CircuitBreaker, CircuitBreakerConfig
from sagespace_core.circuit_breaker.exceptions import UnknownBreakerError
from sagespace_core.circuit_breaker.metrics import BreakerListener
from sagespace_core.circuit_breaker.state import CircuitState

DEFAULT_BREAKER_NAMES = ("groq", "gateway", "supabase")


class BreakerRegistry:
    """Explicitly constructed set of breakers sharing config, listeners and clock."""

    def __init__(
        self,
        *,
        config: CircuitBreakerConfig | None = None,
        listeners: Sequence[BreakerListener] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = CircuitBreakerConfig() if config is None else config
        self._listeners = tuple(listeners) if listeners is not None else ()
        self._clock = clock
        self._breakers: dict[str, CircuitBreaker] = {}

    def register(
        self, name: str, *, config: CircuitBreakerConfig | None = None
    ) -> CircuitBreaker:
        """Create and store a breaker for ``name``.

        Raises:
            ValueError: If ``name`` is blank or already registered.
        """
        normalized = name.strip()
        if not normalized:
            raise ValueError("breaker name must be non-empty")
        if normalized in self._breakers:
            raise ValueError(f"circuit breaker already registered: {normalized}")
        breaker = CircuitBreaker(
            normalized,
            config=self._config if config is None else config,
            listeners=self._listeners,
            clock=self._clock,
        )
        self._breakers[normalized] = breaker
        return breaker

    def get(self, name: str) -> CircuitBreaker:
        try:
            return self._breakers[name]
        except KeyError:
            raise UnknownBreakerError(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._breakers

    def __iter__(self) -> Iterator[CircuitBreaker]:
        return iter(self._breakers.values())

    def __len__(self) -> int:
        return len(self._breakers)

    def states(self) -> dict[str, CircuitState]:
        """Return every breaker's current state, in registration order."""
        return {name: breaker.get_state() for name, breaker in self._breakers.items()}

    def reset_all(self) -> None:
        for breaker in self._breakers.values():
            breaker.reset()


def build_breaker_registry(
    names: Iterable[str] = DEFAULT_BREAKER_NAMES,
    *,
    config: CircuitBreakerConfig | None = None,
    listeners: Sequence[BreakerListener] | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> BreakerRegistry:
    """Build a registry pre-populated with one breaker per name."""
    registry = BreakerRegistry(config=config, listeners=listeners, clock=clock)
    for name in names:
        registry.register(name)
    return registry
