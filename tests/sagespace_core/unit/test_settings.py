from __future__ import annotations

from typing import Any, cast

import pytest
from pydantic import ValidationError

from sagespace_core.circuit_breaker import CircuitBreakerConfig
from sagespace_core.load_monitor import LoadPolicy
from sagespace_core.settings import CoreSettings


def _build_settings(**overrides: object) -> CoreSettings:
    return CoreSettings(**cast(Any, overrides))


def test_core_settings_defaults() -> None:
    settings = _build_settings()

    assert settings.log_level == "INFO"
    assert settings.breaker_name_list() == ("groq", "gateway", "supabase")
    assert settings.breaker_config() == CircuitBreakerConfig(
        failure_threshold=5,
        success_threshold=2,
        timeout=60.0,
        window=60.0,
    )
    assert settings.load_policy() == LoadPolicy(
        ai_latency_p95_threshold_ms=5000.0,
        error_rate_threshold=0.05,
    )
    assert settings.load_check_interval_seconds == 30.0


def test_core_settings_reads_prefixed_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("SAGESPACE_LOG_LEVEL", " debug ")
    monkeypatch.setenv("SAGESPACE_BREAKER_FAILURE_THRESHOLD", "3")
    monkeypatch.setenv("SAGESPACE_BREAKER_TIMEOUT_SECONDS", "15")
    monkeypatch.setenv("SAGESPACE_BREAKER_NAMES", "groq, openai ,")

    settings = CoreSettings()

    assert settings.log_level == "DEBUG"
    assert settings.breaker_config().failure_threshold == 3
    assert settings.breaker_config().timeout == 15.0
    assert settings.breaker_name_list() == ("groq", "openai")


def test_core_settings_reads_json_breaker_names_from_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("SAGESPACE_BREAKER_NAMES", '["groq", " supabase "]')

    settings = CoreSettings()

    assert settings.breaker_name_list() == ("groq", "supabase")


def test_core_settings_rejects_malformed_json_breaker_names(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("SAGESPACE_BREAKER_NAMES", '["groq", ')

    with pytest.raises(ValidationError):
        CoreSettings()


def test_core_settings_accepts_breaker_name_list() -> None:
    settings = _build_settings(breaker_names=["groq", "supabase"])

    assert settings.breaker_name_list() == ("groq", "supabase")


def test_core_settings_rejects_unknown_log_level() -> None:
    with pytest.raises(ValidationError):
        _build_settings(log_level="TRACE")


@pytest.mark.parametrize(
    "overrides",
    [
        {"breaker_failure_threshold": 0},
        {"breaker_success_threshold": 0},
        {"breaker_timeout_seconds": -1},
        {"breaker_window_seconds": 0},
        {"error_rate_threshold": 1.5},
        {"ai_latency_p95_threshold_ms": 0},
        {"load_check_interval_seconds": 0},
    ],
)
def test_core_settings_rejects_out_of_range_values(
    overrides: dict[str, object],
) -> None:
    with pytest.raises(ValidationError):
        _build_settings(**overrides)


def test_core_settings_rejects_empty_breaker_names() -> None:
    with pytest.raises(ValidationError, match="at least one"):
        _build_settings(breaker_names=" , ")


def test_core_settings_rejects_duplicate_breaker_names() -> None:
    with pytest.raises(ValidationError, match="duplicates"):
        _build_settings(breaker_names="groq,groq")
