"""Configuration for the catalog gateway."""

from services.common.config import BaseConfig, FieldDefinition

DEFAULT_SERVICE_NAME = "fx-catalog-service"


class CatalogConfig(BaseConfig):
    """Catalog gateway settings.

    ``course_service_url`` is read once at startup and never validated beyond
    being present; a bad URL shows up as a request-time failure.
    """

    @classmethod
    def get_field_definitions(cls) -> list[FieldDefinition]:
        return [
            FieldDefinition(
                name="course_service_url",
                field_type=str,
                required=True,
                description="Base URL of the downstream course service",
                env_var="COURSE_SERVICE_URL",
            ),
            FieldDefinition(
                name="service_name",
                field_type=str,
                default=DEFAULT_SERVICE_NAME,
                description="Service name used in logs and span attributes",
                env_var="CATALOG_SERVICE_NAME",
            ),
            FieldDefinition(
                name="stress_iterations",
                field_type=int,
                default=10_000_000,
                description="Number of additions performed by /stress-test",
                env_var="STRESS_TEST_ITERATIONS",
                min_value=1,
            ),
            FieldDefinition(
                name="stress_failure_rate",
                field_type=float,
                default=0.3,
                description="Probability that /stress-test fails on purpose",
                env_var="STRESS_TEST_FAILURE_RATE",
                min_value=0.0,
                max_value=1.0,
            ),
        ]
