"""FastAPI application exposing operational status for SageSpace.

Usage:
    uvicorn --factory sagespace_core.app:create_app --port 8000
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import cast

from fastapi import APIRouter, Depends, FastAPI, Request, Response

from sagespace_core.context import ServiceContext, build_service_context
from sagespace_core.logging import (
    bind_correlation_id,
    clear_correlation_id,
    configure_structlog,
    generate_correlation_id,
)
from sagespace_core.status import SystemStatusResponse, build_system_status

API_TITLE = "SageSpace Core"
API_VERSION = "0.1.0"
CORRELATION_HEADER = "x-correlation-id"

router = APIRouter(tags=["system"])


def get_service_context(request: Request) -> ServiceContext:
    return cast(ServiceContext, request.app.state.context)


@router.get("/api/system/status", response_model=SystemStatusResponse)
async def get_system_status(
    context: ServiceContext = Depends(get_service_context),
) -> SystemStatusResponse:
    """Return load mode, feature limits, breaker states and metrics."""
    return build_system_status(context)


async def correlation_id_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Bind a per-request correlation id and echo it back to the client."""
    correlation_id = request.headers.get(CORRELATION_HEADER) or (
        generate_correlation_id()
    )
    bind_correlation_id(correlation_id)
    try:
        response = await call_next(request)
    finally:
        clear_correlation_id()
    response.headers[CORRELATION_HEADER] = correlation_id
    return response


def create_app(
    context: ServiceContext | None = None,
    *,
    configure_logging: bool = True,
) -> FastAPI:
    """Build the status application around one shared service context.

    Args:
        context: Monitoring state to serve. Built from environment settings
            when omitted.
        configure_logging: Configure structlog on startup.
    """
    resolved = build_service_context() if context is None else context

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if configure_logging:
            configure_structlog(log_level=resolved.settings.log_level)
        await resolved.load_monitor.start_background()
        try:
            yield
        finally:
            await resolved.load_monitor.stop_background()

    app = FastAPI(title=API_TITLE, version=API_VERSION, lifespan=lifespan)
    app.state.context = resolved
    app.middleware("http")(correlation_id_middleware)
    app.include_router(router)
    return app
