from __future__ import annotations

import json

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sagespace_core.circuit_breaker import DEFAULT_BREAKER_NAMES, CircuitBreakerConfig
from sagespace_core.load_monitor import LoadPolicy
from sagespace_core.logging import get_log_level_value

ENV_PREFIX = "SAGESPACE_"


def prefixed_settings_config(prefix: str) -> SettingsConfigDict:
    """Build standard Pydantic settings config for prefixed environments."""
    return SettingsConfigDict(env_prefix=prefix, case_sensitive=False)


class CoreSettings(BaseSettings):
    """Settings for breakers, the load monitor and the status service."""

    model_config = prefixed_settings_config(ENV_PREFIX)

    log_level: str = "INFO"
    breaker_failure_threshold: int = Field(default=5, ge=1)
    breaker_success_threshold: int = Field(default=2, ge=1)
    breaker_timeout_seconds: float = Field(default=60.0, ge=0)
    breaker_window_seconds: float = Field(default=60.0, gt=0)
    breaker_names: str = ",".join(DEFAULT_BREAKER_NAMES)
    ai_latency_p95_threshold_ms: float = Field(default=5000.0, gt=0)
    error_rate_threshold: float = Field(default=0.05, ge=0, le=1)
    load_check_interval_seconds: float = Field(default=30.0, gt=0)

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        get_log_level_value(value)
        return value.strip().upper()

    @field_validator("breaker_names", mode="before")
    @classmethod
    def _normalize_breaker_names(cls, value: object) -> object:
        if isinstance(value, str) and value.strip().startswith("["):
            value = json.loads(value)
        if isinstance(value, (list, tuple)):
            value = ",".join(str(item) for item in value)
        if not isinstance(value, str):
            return value
        names = [name.strip() for name in value.split(",") if name.strip()]
        return ",".join(names)

    @model_validator(mode="after")
    def _validate_core_settings(self) -> CoreSettings:
        names = self.breaker_name_list()
        if not names:
            raise ValueError("breaker_names must name at least one breaker")
        if len(set(names)) != len(names):
            raise ValueError("breaker_names must not contain duplicates")
        return self

    def breaker_name_list(self) -> tuple[str, ...]:
        return tuple(name for name in self.breaker_names.split(",") if name)

    def breaker_config(self) -> CircuitBreakerConfig:
        """Build the shared breaker configuration."""
        return CircuitBreakerConfig(
            failure_threshold=self.breaker_failure_threshold,
            success_threshold=self.breaker_success_threshold,
            timeout=self.breaker_timeout_seconds,
            window=self.breaker_window_seconds,
        )

    def load_policy(self) -> LoadPolicy:
        return LoadPolicy(
            ai_latency_p95_threshold_ms=self.ai_latency_p95_threshold_ms,
            error_rate_threshold=self.error_rate_threshold,
        )
