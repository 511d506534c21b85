"""
Standard operational endpoints shared by services.

``HealthEndpoints`` exposes /health/live, /health/ready and the Prometheus
scrape endpoint /metrics on an APIRouter.
"""

from typing import Any

from fastapi import APIRouter, HTTPException, Response

from services.common.health import HealthManager
from services.common.metrics import MetricsRegistry


class HealthEndpoints:
    """Health and metrics endpoints for a service."""

    def __init__(
        self,
        service_name: str,
        health_manager: HealthManager,
        metrics_registry: MetricsRegistry,
    ) -> None:
        self.service_name = service_name
        self.health_manager = health_manager
        self.metrics_registry = metrics_registry
        self.router = APIRouter()

        self._register_endpoints()

    def _register_endpoints(self) -> None:
        """Register all endpoints with the router."""
        self.router.add_api_route("/health/live", self.health_live, methods=["GET"])
        self.router.add_api_route("/health/ready", self.health_ready, methods=["GET"])
        self.router.add_api_route(
            "/metrics", self.metrics, methods=["GET"], include_in_schema=False
        )

    async def health_live(self) -> dict[str, str]:
        """Liveness check - always returns 200 if the process is alive."""
        return {"status": "alive", "service": self.service_name}

    async def health_ready(self) -> dict[str, Any]:
        """Readiness check.

        Raises:
            HTTPException: 503 until startup completes, or after a critical
                startup failure.
        """
        if not self.health_manager.startup_complete:
            failure = self.health_manager.get_startup_failure()
            detail = f"Service {self.service_name} not ready - startup not complete"
            if failure:
                detail += f" ({failure['error_type']}: {failure['error']})"
            raise HTTPException(status_code=503, detail=detail)

        return {
            "status": "ready",
            "service": self.service_name,
            "uptime_seconds": round(self.health_manager.uptime_seconds(), 3),
        }

    async def metrics(self) -> Response:
        """Prometheus text exposition of the service's timers."""
        body, content_type = self.metrics_registry.render()
        return Response(content=body, media_type=content_type)
