"""FastAPI application for the FutureX course catalog gateway."""

from __future__ import annotations

import random

import httpx
from fastapi import APIRouter, FastAPI
from fastapi.responses import PlainTextResponse
from opentelemetry import trace

from services.catalog.config import CatalogConfig
from services.catalog.gateway import CatalogGateway
from services.common.app_factory import create_service_app
from services.common.metrics import MetricsRegistry
from services.common.structured_logging import get_logger

SERVICE_VERSION = "1.0.0"

# path -> CatalogGateway method
CATALOG_ROUTES: tuple[tuple[str, str], ...] = (
    ("/", "catalog_home"),
    ("/catalog", "catalog"),
    ("/firstcourse", "first_course"),
    ("/error-test", "error_test"),
    ("/stress-test", "stress_test"),
)

logger = get_logger(__name__)


def build_router(gateway: CatalogGateway) -> APIRouter:
    """Bind every catalog route to its gateway handler.

    Handlers are synchronous and run in the threadpool, so a blocked
    downstream call only holds its own worker thread.
    """
    router = APIRouter()
    for path, operation in CATALOG_ROUTES:
        router.add_api_route(
            path,
            getattr(gateway, operation),
            methods=["GET"],
            response_class=PlainTextResponse,
            name=operation,
        )
    return router


def create_app(
    config: CatalogConfig | None = None,
    *,
    http_client: httpx.Client | None = None,
    tracer: trace.Tracer | None = None,
    metrics_registry: MetricsRegistry | None = None,
    rng: random.Random | None = None,
) -> FastAPI:
    """Create the catalog gateway application.

    Collaborators default to production instances; tests pass their own.
    A client created here is closed on shutdown, a supplied one is left open.
    """
    if config is None:
        config = CatalogConfig()

    owns_client = http_client is None
    client = http_client if http_client is not None else httpx.Client(timeout=None)

    def _shutdown() -> None:
        if owns_client:
            client.close()

    app = create_service_app(
        config.service_name,
        SERVICE_VERSION,
        title="FutureX Course Catalog",
        shutdown_callback=_shutdown,
        metrics_registry=metrics_registry,
    )

    if tracer is None:
        tracer = app.state.tracing_manager.get_tracer()

    gateway = CatalogGateway(
        client,
        tracer,
        app.state.metrics_registry,
        config.course_service_url,
        service_name=config.service_name,
        stress_iterations=config.stress_iterations,
        stress_failure_rate=config.stress_failure_rate,
        rng=rng,
    )
    app.state.catalog_gateway = gateway
    app.include_router(build_router(gateway))

    logger.info(
        "catalog.app_created",
        course_service_url=config.course_service_url,
        routes=[path for path, _ in CATALOG_ROUTES],
    )
    return app


__all__ = ["CATALOG_ROUTES", "build_router", "create_app"]
