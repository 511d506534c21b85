"""Catalog gateway operations.

Each operation forwards at most one request to the course service and wraps
the reply in a fixed sentence. Every invocation is traced with one span and
timed with one named timer; failures are logged and re-raised unchanged.
"""

from __future__ import annotations

import random
from collections.abc import Iterator
from contextlib import contextmanager

import httpx
from opentelemetry import trace

from services.catalog.config import DEFAULT_SERVICE_NAME
from services.catalog.models import Course
from services.common.metrics import MetricsRegistry
from services.common.structured_logging import get_logger

HOME_PREFIX = "Welcome to FutureX Course Catalog "
CATALOG_PREFIX = "Our courses are "
FIRST_COURSE_PREFIX = "Our first course is "
STRESS_TEST_PREFIX = "Prueba de estrés completada con resultado: "
ERROR_TEST_RESPONSE = "Errores generados para la tarea de ELK"

# Timer names are queried verbatim by dashboards
HOME_TIMER = "catalog.home.request"
CATALOG_TIMER = "catalog_courses_request_seconds"
FIRST_COURSE_TIMER = "catalog.firstcourse.request"
STRESS_TIMER = "catalog.stress.request"

DEFAULT_STRESS_ITERATIONS = 10_000_000
DEFAULT_STRESS_FAILURE_RATE = 0.3
ERROR_TEST_REPEATS = 3


class StressTestError(RuntimeError):
    """Synthetic failure injected by the stress test."""


class CatalogGateway:
    """Request handlers for the course catalog.

    Args:
        http_client: Client used for downstream calls. Calls are blocking and
            carry no timeout of their own.
        tracer: Tracer that receives one span per invocation.
        metrics_registry: Registry that receives one timer sample per invocation.
        course_service_url: Base URL of the course service.
        service_name: Reported on the error-test span.
        stress_iterations: Number of additions performed by the stress test.
        stress_failure_rate: Probability of the stress test failing on purpose.
        rng: Source of randomness for the stress test.
    """

    def __init__(
        self,
        http_client: httpx.Client,
        tracer: trace.Tracer,
        metrics_registry: MetricsRegistry,
        course_service_url: str,
        *,
        service_name: str = DEFAULT_SERVICE_NAME,
        stress_iterations: int = DEFAULT_STRESS_ITERATIONS,
        stress_failure_rate: float = DEFAULT_STRESS_FAILURE_RATE,
        rng: random.Random | None = None,
    ) -> None:
        self._http = http_client
        self._tracer = tracer
        self._metrics = metrics_registry
        self._course_service_url = course_service_url
        self._service_name = service_name
        self._stress_iterations = stress_iterations
        self._stress_failure_rate = stress_failure_rate
        self._rng = rng or random.Random()

    @contextmanager
    def _observed(
        self, span_name: str, timer_name: str | None = None, **tags: str
    ) -> Iterator[trace.Span]:
        """Trace and time one invocation.

        The span ends before the timer sample is recorded, on every exit path.
        """
        sample = self._metrics.start_sample() if timer_name else None
        try:
            with self._tracer.start_as_current_span(span_name) as span:
                yield span
        finally:
            if sample is not None:
                sample.stop(self._metrics.timer(timer_name, **tags))

    def _get(self, url: str) -> httpx.Response:
        response = self._http.get(url)
        response.raise_for_status()
        return response

    def catalog_home(self) -> str:
        get_logger(__name__).info("catalog.home.request_received")
        with self._observed("getCatalogHome", HOME_TIMER):
            log = get_logger(__name__)
            try:
                message = self._get(self._course_service_url).text
            except Exception:
                log.exception("catalog.home.request_failed", operation="getCatalogHome")
                raise
            log.info("catalog.home.response_ready")
            return HOME_PREFIX + message

    def catalog(self) -> str:
        get_logger(__name__).info("catalog.courses.request_received")
        with self._observed("getCatalog", CATALOG_TIMER, endpoint="/catalog"):
            log = get_logger(__name__)
            try:
                courses = self._get(self._course_service_url + "/courses").text
            except Exception:
                log.exception("catalog.courses.request_failed", operation="getCatalog")
                raise
            log.info("catalog.courses.response_ready")
            return CATALOG_PREFIX + courses

    def first_course(self) -> str:
        """Name of the first course.

        Raises ``pydantic.ValidationError`` when the record has no
        ``coursename``; the name is never defaulted.
        """
        get_logger(__name__).info("catalog.first_course.request_received")
        with self._observed("getSpecificCourse", FIRST_COURSE_TIMER):
            log = get_logger(__name__)
            try:
                response = self._get(self._course_service_url + "/1")
                course = Course.model_validate(response.json())
            except Exception:
                log.exception(
                    "catalog.first_course.request_failed",
                    operation="getSpecificCourse",
                )
                raise
            log.info("catalog.first_course.response_ready")
            return FIRST_COURSE_PREFIX + course.coursename

    def error_test(self) -> str:
        """Emit diagnostic error lines for log pipeline checks. Always succeeds."""
        get_logger(__name__).error(
            "catalog.error_test.triggered",
            detail="Este es un error de prueba en el servicio de catálogo",
        )
        with self._observed("testError") as span:
            span.set_attribute("service.name", self._service_name)
            span.set_attribute("log.level", "ERROR")

            log = get_logger(__name__)
            for attempt in range(ERROR_TEST_REPEATS):
                log.error(
                    "catalog.error_test.simulated_error",
                    attempt=attempt,
                    detail=(
                        f"Error #{attempt} en {self._service_name}: "
                        "Simulación de error para el taller de monitoreo"
                    ),
                )
            return ERROR_TEST_RESPONSE

    def stress_test(self) -> str:
        """Burn CPU on a fixed summation, failing at random on purpose.

        Raises:
            StressTestError: With probability ``stress_failure_rate``.
        """
        get_logger(__name__).info("catalog.stress_test.started")
        with self._observed("stressTest", STRESS_TIMER):
            log = get_logger(__name__)
            try:
                result = 0
                for i in range(self._stress_iterations):
                    result += i

                if self._rng.random() < self._stress_failure_rate:
                    log.error("catalog.stress_test.random_failure")
                    raise StressTestError("Error simulado durante la prueba de estrés")
            except Exception:
                log.exception("catalog.stress_test.failed", operation="stressTest")
                raise
            log.info("catalog.stress_test.completed", result=result)
            return f"{STRESS_TEST_PREFIX}{result}"


__all__ = [
    "CatalogGateway",
    "StressTestError",
]
