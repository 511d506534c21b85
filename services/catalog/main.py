"""Entrypoint for the catalog gateway."""

from __future__ import annotations

from services.catalog.config import CatalogConfig
from services.common.config import LoggingConfig, ServiceConfig
from services.common.structured_logging import configure_logging


def main() -> None:
    """Configure logging, build the app and serve it."""
    import uvicorn

    catalog_config = CatalogConfig()
    logging_config = LoggingConfig()
    service_config = ServiceConfig()

    configure_logging(
        logging_config.level,
        json_logs=logging_config.json_logs,
        service_name=catalog_config.service_name,
    )

    # Import app AFTER logging is configured
    from services.catalog.app import create_app

    # log_config=None keeps uvicorn from replacing the structlog handlers
    uvicorn.run(
        create_app(catalog_config),
        host=service_config.host,
        port=service_config.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
