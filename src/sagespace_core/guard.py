"""Caller-side degradation helpers for breaker-guarded provider calls."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from sagespace_core.circuit_breaker import CircuitBreaker, CircuitOpenError
from sagespace_core.logging import log_info

T = TypeVar("T")

_logger = logging.getLogger(__name__)


async def call_with_fallback(
    breaker: CircuitBreaker,
    func: Callable[..., Awaitable[T]],
    fallback: T | None = None,
    *args: Any,
    fallback_factory: Callable[[], T] | None = None,
    **kwargs: Any,
) -> T | None:
    """Run ``func`` through ``breaker`` and degrade to ``fallback`` when open.

    Only ``CircuitOpenError`` is absorbed. Errors raised by ``func`` itself
    still propagate so callers can inspect provider-specific failures.
    ``fallback`` is returned as-is, even when it is callable. Pass
    ``fallback_factory`` instead to build the value lazily on rejection.
    """
    if fallback is not None and fallback_factory is not None:
        raise ValueError("pass either fallback or fallback_factory, not both")
    try:
        return await breaker.execute(func, *args, **kwargs)
    except CircuitOpenError as exc:
        log_info(
            _logger,
            "circuit_breaker.fallback",
            breaker=exc.breaker_name,
            retry_after=exc.retry_after,
        )
        if fallback_factory is not None:
            return fallback_factory()
        return fallback
