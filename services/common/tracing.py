"""OpenTelemetry tracing for catalog services.

Tracing is opt-in through ``OTEL_ENABLED=true``. When it is off, or when setup
fails, services get a no-op tracer and instrumentation is skipped, so handler
code never has to check.
"""

import os
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from .structured_logging import get_logger

logger = get_logger(__name__)

SERVICE_NAMESPACE = "futurex"
TRACES_PATH = "/v1/traces"


def tracing_enabled() -> bool:
    return os.getenv("OTEL_ENABLED", "false").lower() == "true"


def _traces_endpoint(raw: str) -> str:
    """Normalise ``OTEL_EXPORTER_OTLP_ENDPOINT`` into a full OTLP/HTTP traces URL."""
    endpoint = raw if raw.startswith(("http://", "https://")) else f"http://{raw}"
    endpoint = endpoint.rstrip("/")
    if not endpoint.endswith(TRACES_PATH):
        endpoint += TRACES_PATH
    return endpoint


class TracingManager:
    """Owns the tracer and instrumentation state of one service."""

    def __init__(self, service_name: str, service_version: str = "1.0.0"):
        self.service_name = service_name
        self.service_version = service_version
        self._tracer: trace.Tracer | None = None
        self._http_clients_instrumented = False

    @property
    def enabled(self) -> bool:
        return self._tracer is not None

    def setup_tracing(self) -> None:
        """Install an SDK tracer provider and exporter when tracing is enabled.

        An SDK provider installed earlier (by another service in the same
        process, or by a test) is reused rather than replaced.
        """
        if not tracing_enabled():
            logger.info("tracing.disabled", service=self.service_name)
            return

        try:
            provider = trace.get_tracer_provider()
            if not isinstance(provider, TracerProvider):
                provider = TracerProvider(
                    resource=Resource.create(
                        {
                            "service.name": self.service_name,
                            "service.version": self.service_version,
                            "service.namespace": SERVICE_NAMESPACE,
                        }
                    )
                )
                trace.set_tracer_provider(provider)
                self._attach_exporter(provider)

            self._tracer = trace.get_tracer(self.service_name, self.service_version)
            logger.info(
                "tracing.initialized",
                service=self.service_name,
                version=self.service_version,
            )
        except Exception as exc:
            logger.error("tracing.setup_failed", service=self.service_name, error=str(exc))
            self._tracer = None

    def _attach_exporter(self, provider: TracerProvider) -> None:
        raw_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
        if not raw_endpoint:
            logger.debug("tracing.no_exporter_configured", service=self.service_name)
            return

        endpoint = _traces_endpoint(raw_endpoint)
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
        logger.info("tracing.otlp_exporter_configured", endpoint=endpoint)

    def instrument_fastapi(self, app: Any) -> None:
        """Add server spans to every request of ``app``."""
        if not self.enabled:
            return
        try:
            FastAPIInstrumentor.instrument_app(app)
        except Exception as exc:
            logger.error(
                "tracing.fastapi_instrumentation_failed",
                service=self.service_name,
                error=str(exc),
            )

    def instrument_http_clients(self) -> None:
        """Add client spans and context propagation to outbound httpx calls."""
        if not self.enabled or self._http_clients_instrumented:
            return
        try:
            HTTPXClientInstrumentor().instrument()
            self._http_clients_instrumented = True
        except Exception as exc:
            logger.error(
                "tracing.http_instrumentation_failed",
                service=self.service_name,
                error=str(exc),
            )

    def get_tracer(self) -> trace.Tracer:
        return self._tracer if self._tracer is not None else trace.NoOpTracer()


_tracing_managers: dict[str, TracingManager] = {}


def get_tracing_manager(service_name: str, service_version: str = "1.0.0") -> TracingManager:
    if service_name not in _tracing_managers:
        _tracing_managers[service_name] = TracingManager(service_name, service_version)
    return _tracing_managers[service_name]


def setup_service_tracing(service_name: str, service_version: str = "1.0.0") -> TracingManager:
    """Set up tracing and outbound instrumentation for a service."""
    manager = get_tracing_manager(service_name, service_version)
    manager.setup_tracing()
    manager.instrument_http_clients()
    return manager


__all__ = [
    "TracingManager",
    "get_tracing_manager",
    "setup_service_tracing",
    "tracing_enabled",
]
