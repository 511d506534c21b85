"""Unified FastAPI middleware for observability (correlation IDs, logging, timing, metrics)."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import ClassVar

from fastapi import Request, Response
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

from services.common.correlation import (
    generate_correlation_id,
    reset_correlation_id,
    set_correlation_id,
    validate_correlation_id,
)
from services.common.metrics import MetricsRegistry
from services.common.structured_logging import get_logger

logger = get_logger(__name__)

HTTP_SERVER_TIMER = "http.server.requests"


def _outcome(status_code: int) -> str:
    if status_code < 200:
        return "INFORMATIONAL"
    if status_code < 300:
        return "SUCCESS"
    if status_code < 400:
        return "REDIRECTION"
    if status_code < 500:
        return "CLIENT_ERROR"
    return "SERVER_ERROR"


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path or "UNKNOWN"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Unified middleware for correlation IDs, request/response logging, and timing.

    This middleware combines:
    - Correlation ID extraction/generation and propagation
    - Request/response logging with timing
    - The ``http.server.requests`` timer, tagged by method, route, status and outcome

    An exception escaping a handler becomes a plain-text 500 that still carries
    the correlation header.
    """

    CORRELATION_HEADER = "X-Correlation-ID"
    # Paths to exclude from verbose logging and request timing
    EXCLUDED_PATHS: ClassVar[set[str]] = {"/health/live", "/health/ready", "/metrics"}

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        incoming = request.headers.get(self.CORRELATION_HEADER)
        is_valid, _ = validate_correlation_id(incoming)
        correlation_id = incoming if is_valid else generate_correlation_id()
        token = set_correlation_id(correlation_id)

        should_log = request.url.path not in self.EXCLUDED_PATHS
        start_time = time.perf_counter()
        registry: MetricsRegistry | None = getattr(
            request.app.state, "metrics_registry", None
        )

        if should_log:
            logger.info(
                "http.request.start",
                method=request.method,
                path=request.url.path,
                correlation_id=correlation_id,
                query_params=dict(request.query_params)
                if request.query_params
                else None,
            )

        try:
            response = await call_next(request)
        except Exception as exc:
            duration_seconds = time.perf_counter() - start_time
            if should_log:
                self._record(registry, request, 500, duration_seconds)
            # Handlers log their own failures at error level
            logger.warning(
                "http.request.failed",
                method=request.method,
                path=request.url.path,
                error=str(exc),
                error_type=type(exc).__name__,
                duration_ms=round(duration_seconds * 1000, 2),
                correlation_id=correlation_id,
            )
            return PlainTextResponse(
                "Internal Server Error",
                status_code=500,
                headers={self.CORRELATION_HEADER: correlation_id},
            )
        finally:
            reset_correlation_id(token)

        duration_seconds = time.perf_counter() - start_time
        if should_log:
            self._record(registry, request, response.status_code, duration_seconds)
            logger.info(
                "http.request.complete",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration_seconds * 1000, 2),
                correlation_id=correlation_id,
            )

        response.headers[self.CORRELATION_HEADER] = correlation_id
        return response

    @staticmethod
    def _record(
        registry: MetricsRegistry | None,
        request: Request,
        status_code: int,
        duration_seconds: float,
    ) -> None:
        if registry is None:
            return
        registry.timer(
            HTTP_SERVER_TIMER,
            "Inbound HTTP request duration",
            method=request.method,
            uri=_route_template(request),
            status=str(status_code),
            outcome=_outcome(status_code),
        ).record(duration_seconds)


__all__ = ["HTTP_SERVER_TIMER", "ObservabilityMiddleware"]
