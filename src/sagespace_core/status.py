"""System status models.

Contains the response schema for ``GET /api/system/status`` and the function
that assembles it from the shared service context.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sagespace_core.circuit_breaker import CircuitState
from sagespace_core.context import ServiceContext
from sagespace_core.load_monitor import LoadMode


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoadFlags(_CamelModel):
    """Which load signals are currently over threshold."""

    ai_latency_high: bool = Field(..., description="AI p95 latency over threshold")
    error_rate_high: bool = Field(..., description="Chat error rate over threshold")


class FeatureLimitsPayload(_CamelModel):
    """Feature caps in force for the current mode."""

    council_participants: int = Field(..., ge=1, examples=[5, 4, 3])
    max_response_length: int = Field(..., ge=1, examples=[2000, 1500, 1000])
    memory_summarization_enabled: bool


class SystemStatusResponse(_CamelModel):
    """Current load mode, feature caps, breaker states and metrics.

    Example:
        ```json
        {
            "status": "normal",
            "load": {"aiLatencyHigh": false, "errorRateHigh": false},
            "limits": {
                "councilParticipants": 5,
                "maxResponseLength": 2000,
                "memorySummarizationEnabled": true
            },
            "circuitBreakers": {"groq": "closed", "gateway": "closed"},
            "metrics": {"chat.success": 12}
        }
        ```
    """

    status: LoadMode
    load: LoadFlags
    limits: FeatureLimitsPayload
    circuit_breakers: dict[str, CircuitState]
    metrics: dict[str, Any]


def build_system_status(context: ServiceContext) -> SystemStatusResponse:
    status = context.load_monitor.get_status()
    return SystemStatusResponse(
        status=status.mode,
        load=LoadFlags(
            ai_latency_high=status.ai_latency_high,
            error_rate_high=status.error_rate_high,
        ),
        limits=FeatureLimitsPayload(
            council_participants=status.council_participant_limit,
            max_response_length=status.max_response_length,
            memory_summarization_enabled=status.memory_summarization_enabled,
        ),
        circuit_breakers=context.breakers.states(),
        metrics=context.metrics.get_all_metrics(),
    )
