"""structlog setup shared by the catalog services.

Everything, structlog events and plain stdlib records alike, is rendered by
one ``ProcessorFormatter`` so a single JSON line format reaches the log
shipper. Loggers returned by :func:`get_logger` carry the request correlation
ID and, inside a recording span, the trace and span IDs.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from collections.abc import Callable
from typing import IO, Any

import structlog
from opentelemetry import trace

from services.common.correlation import get_correlation_id

Processor = Callable[[Any, str, dict[str, Any]], dict[str, Any]]

# '172.18.0.15:46132 - "GET /health/ready HTTP/1.1" 503'
_ACCESS_LINE = re.compile(r'^(.+?):(\d+) - "(\w+) ([^"]+) (HTTP/\d\.\d)" (\d+)$')

_QUIET_LOGGERS = {
    "httpcore": logging.WARNING,
    "httpx": logging.WARNING,
    "opentelemetry.sdk.trace": logging.WARNING,
    "opentelemetry.exporter.otlp": logging.WARNING,
    "opentelemetry.instrumentation.dependencies": logging.ERROR,
}


def _numeric_level(level: str) -> int:
    value = logging.getLevelName((level or "").upper())
    return value if isinstance(value, int) else logging.INFO


def _add_service(service_name: str | None) -> Processor:
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        if service_name:
            event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def _wants_full_tracebacks(numeric_level: int, explicit: bool | None) -> bool:
    if explicit is not None:
        return explicit
    env_value = os.getenv("LOG_FULL_TRACEBACKS", "").lower()
    if env_value in ("true", "1", "yes"):
        return True
    if env_value in ("false", "0", "no"):
        return False
    return numeric_level <= logging.DEBUG


def _formatter(pre_chain: list[Any], json_logs: bool) -> structlog.stdlib.ProcessorFormatter:
    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )


def configure_logging(
    level: str = "INFO",
    *,
    json_logs: bool = True,
    service_name: str | None = None,
    stream: IO[str] | None = None,
    full_tracebacks: bool | None = None,
) -> None:
    """Configure structlog and the stdlib root logger for the process.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Unknown names mean INFO.
        json_logs: One JSON object per line when True, coloured console output otherwise.
        service_name: Added as ``service`` to every line that lacks one.
        stream: Destination; defaults to stdout. Tests pass a ``StringIO``.
        full_tracebacks: Structured ``dict_tracebacks`` when True, a formatted
            ``exception`` string when False. Unset, ``LOG_FULL_TRACEBACKS``
            decides, falling back to full tracebacks only at DEBUG.
    """
    numeric_level = _numeric_level(level)
    output = stream if stream is not None else sys.stdout

    exception_processor = (
        structlog.processors.dict_tracebacks
        if _wants_full_tracebacks(numeric_level, full_tracebacks)
        else structlog.processors.format_exc_info
    )
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
        _add_service(service_name),
        exception_processor,
    ]

    handler = logging.StreamHandler(output)
    handler.setFormatter(_formatter(shared_processors, json_logs))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(numeric_level)
    logging.captureWarnings(True)

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _route_access_log(output, json_logs, service_name)


def get_logger(
    name: str,
    *,
    correlation_id: str | None = None,
    service_name: str | None = None,
) -> structlog.stdlib.BoundLogger:
    """Return a logger bound with the current request and trace context.

    Call it where the context is live (inside the span, inside the request);
    module-level loggers see neither.
    """
    logger = structlog.stdlib.get_logger(name)

    span = trace.get_current_span()
    if span.is_recording():
        ctx = span.get_span_context()
        logger = logger.bind(
            trace_id=format(ctx.trace_id, "032x"),
            span_id=format(ctx.span_id, "016x"),
        )

    correlation_id = correlation_id or get_correlation_id()
    if correlation_id:
        logger = logger.bind(correlation_id=correlation_id)
    if service_name:
        logger = logger.bind(service=service_name)
    return logger


def _parse_access_line(message: str) -> dict[str, Any] | None:
    match = _ACCESS_LINE.match(message.strip())
    if match is None:
        return None
    client_ip, client_port, method, path, http_version, status_code = match.groups()
    return {
        "client_ip": client_ip,
        "client_port": int(client_port),
        "method": method,
        "path": path,
        "http_version": http_version,
        "status_code": int(status_code),
    }


def _access_fields(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Turn a raw uvicorn access line into ``uvicorn.access`` plus request fields."""
    message = event_dict.get("event")
    if isinstance(message, str) and "status_code" not in event_dict:
        parsed = _parse_access_line(message)
        if parsed is not None:
            event_dict["event"] = "uvicorn.access"
            event_dict.update(parsed)
    return event_dict


class HealthCheckFilter(logging.Filter):
    """Drop access lines for probes and scrapes that answered 200 or 503."""

    QUIET_PREFIXES = ("/health/", "/metrics")

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            parsed = _parse_access_line(record.getMessage())
        except (TypeError, ValueError):
            return True
        if parsed is None:
            return True
        quiet_path = parsed["path"].startswith(self.QUIET_PREFIXES)
        return not (quiet_path and parsed["status_code"] in (200, 503))


def _route_access_log(stream: IO[str], json_logs: bool, service_name: str | None) -> None:
    access_logger = logging.getLogger("uvicorn.access")
    access_logger.setLevel(logging.INFO)
    access_logger.propagate = False

    pre_chain = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
        _add_service(service_name),
        _access_fields,
    ]
    handler = logging.StreamHandler(stream)
    handler.setFormatter(_formatter(pre_chain, json_logs))
    handler.addFilter(HealthCheckFilter())
    access_logger.handlers = [handler]


__all__ = [
    "HealthCheckFilter",
    "configure_logging",
    "get_logger",
]
