"""Factory for creating FastAPI apps with standardized observability setup."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from services.common.health import HealthManager
from services.common.health_endpoints import HealthEndpoints
from services.common.metrics import MetricsRegistry
from services.common.middleware import ObservabilityMiddleware
from services.common.structured_logging import get_logger
from services.common.tracing import setup_service_tracing

logger = get_logger(__name__)


def create_service_app(
    service_name: str,
    service_version: str = "1.0.0",
    title: str | None = None,
    *,
    startup_callback: Callable[[], Any] | Callable[[], Awaitable[Any]] | None = None,
    shutdown_callback: Callable[[], Any] | Callable[[], Awaitable[Any]] | None = None,
    health_manager: HealthManager | None = None,
    metrics_registry: MetricsRegistry | None = None,
) -> FastAPI:
    """Create a FastAPI app wired for logging, tracing and metrics.

    The app gets a lifespan that runs the callbacks and flips readiness, the
    /health/live, /health/ready and /metrics routes, ``ObservabilityMiddleware``,
    and FastAPI tracing when ``OTEL_ENABLED=true``. Its collaborators are
    stored on ``app.state`` as ``tracing_manager``, ``health_manager`` and
    ``metrics_registry``.

    Args:
        service_name: Name reported in logs, spans and health responses.
        service_version: Version reported in the tracing resource.
        title: OpenAPI title; defaults to ``service_name``.
        startup_callback: Sync or async callable run before the service is
            marked ready. If it raises, the failure is recorded and
            /health/ready stays at 503.
        shutdown_callback: Sync or async callable run on shutdown.
        health_manager: Readiness tracker; a fresh one is created when omitted.
        metrics_registry: Timer registry; a fresh one is created when omitted.
    """

    # Provider before instrumentation
    tracing_manager = setup_service_tracing(service_name, service_version)
    health_manager = health_manager or HealthManager(service_name)
    metrics_registry = metrics_registry or MetricsRegistry()

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> Any:  # noqa: ARG001
        """Standardized lifespan handler with service-specific startup/shutdown."""
        try:
            if startup_callback:
                if inspect.iscoroutinefunction(startup_callback):
                    await startup_callback()
                else:
                    startup_callback()

            health_manager.mark_startup_complete()
            logger.info(f"{service_name}.startup_complete")
        except Exception as exc:
            logger.error(f"{service_name}.startup_failed", error=str(exc))
            health_manager.record_startup_failure(
                error=exc,
                component="startup_callback",
                is_critical=True,
            )

        yield

        if shutdown_callback:
            try:
                if inspect.iscoroutinefunction(shutdown_callback):
                    await shutdown_callback()
                else:
                    shutdown_callback()
            except Exception as exc:
                logger.error(f"{service_name}.shutdown_failed", error=str(exc))

        logger.info(f"{service_name}.shutdown")

    app = FastAPI(
        title=title or service_name,
        version=service_version,
        lifespan=lifespan,
    )

    tracing_manager.instrument_fastapi(app)

    app.state.service_name = service_name
    app.state.tracing_manager = tracing_manager
    app.state.health_manager = health_manager
    app.state.metrics_registry = metrics_registry

    health_endpoints = HealthEndpoints(service_name, health_manager, metrics_registry)
    app.include_router(health_endpoints.router)

    app.add_middleware(ObservabilityMiddleware)

    return app


__all__ = ["create_service_app"]
