"""Startup and readiness state for a service."""

from __future__ import annotations

import time
from typing import Any

from .structured_logging import get_logger


class HealthManager:
    """Remembers whether startup finished and, if not, what went wrong.

    A critical startup failure is sticky: once recorded, the service never
    reports ready for the lifetime of the process.
    """

    def __init__(self, service_name: str):
        self._service_name = service_name
        self._started_at = time.monotonic()
        self._startup_complete = False
        self._startup_failure: dict[str, Any] | None = None

    @property
    def service_name(self) -> str:
        return self._service_name

    @property
    def startup_complete(self) -> bool:
        return self._startup_complete

    def uptime_seconds(self) -> float:
        return time.monotonic() - self._started_at

    def record_startup_failure(
        self,
        error: Exception,
        component: str | None = None,
        is_critical: bool = True,
    ) -> None:
        self._startup_failure = {
            "error": str(error),
            "error_type": type(error).__name__,
            "component": component,
            "is_critical": is_critical,
        }
        log = get_logger(__name__, service_name=self._service_name)
        log_method = log.error if is_critical else log.warning
        log_method(
            "health.startup_failure_recorded",
            component=component,
            error_type=type(error).__name__,
            error=str(error),
            critical=is_critical,
        )

    def get_startup_failure(self) -> dict[str, Any] | None:
        return self._startup_failure

    def has_startup_failure(self) -> bool:
        """True if a critical startup failure was recorded."""
        return bool(self._startup_failure and self._startup_failure["is_critical"])

    def mark_startup_complete(self) -> None:
        log = get_logger(__name__, service_name=self._service_name)
        if self.has_startup_failure():
            log.warning("health.startup_complete_blocked", failure=self._startup_failure)
            return

        self._startup_complete = True
        log.info("health.startup_complete")
