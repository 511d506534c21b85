"""Test fixtures for the catalog gateway."""

from collections.abc import Callable
from typing import Any

import httpx
import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from services.catalog.gateway import CatalogGateway
from services.common.metrics import MetricsRegistry

COURSE_SERVICE_URL = "http://courses.test/api"


class FakeCourseService:
    """In-process course service served through ``httpx.MockTransport``.

    Routes map a request path to response arguments or to an exception to raise.
    Unknown paths answer 404.
    """

    def __init__(self) -> None:
        self.routes: dict[str, dict[str, Any] | Exception] = {}
        self.requests: list[httpx.Request] = []

    def respond(self, path: str, **response_kwargs: Any) -> None:
        self.routes[path] = response_kwargs

    def fail(self, path: str, error: Exception) -> None:
        self.routes[path] = error

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.routes.get(request.url.path)
        if outcome is None:
            return httpx.Response(404, text="not found")
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(**outcome)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handle), timeout=None)


class FixedRandom:
    """Random source that always draws the same value."""

    def __init__(self, value: float) -> None:
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.fixture
def course_service_url() -> str:
    return COURSE_SERVICE_URL


@pytest.fixture
def course_service() -> FakeCourseService:
    return FakeCourseService()


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def tracer(span_exporter: InMemorySpanExporter) -> trace.Tracer:
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return provider.get_tracer("catalog-tests")


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    return MetricsRegistry()


@pytest.fixture
def make_gateway(
    course_service: FakeCourseService,
    tracer: trace.Tracer,
    metrics_registry: MetricsRegistry,
) -> Callable[..., CatalogGateway]:
    """Build a gateway wired to the fake course service and in-memory telemetry."""

    def _make(**overrides: Any) -> CatalogGateway:
        return CatalogGateway(
            course_service.client(),
            tracer,
            metrics_registry,
            COURSE_SERVICE_URL,
            **overrides,
        )

    return _make


@pytest.fixture
def fixed_random() -> Callable[[float], FixedRandom]:
    """Factory for random sources pinned to one value."""
    return FixedRandom
