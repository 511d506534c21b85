"""
Correlation ID handling for catalog services.

A correlation ID follows one inbound request through the gateway logs and is
echoed back to the caller. Incoming IDs are accepted when well formed;
otherwise a fresh one is generated.
"""

import re
import time
import uuid
from contextvars import ContextVar, Token

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_VALID_ID = re.compile(r"^[a-zA-Z0-9\-_]+$")


def _generate_unique_suffix() -> str:
    """Generate a short unique suffix to prevent collisions."""
    return str(uuid.uuid4())[:8]


def validate_correlation_id(correlation_id: str | None) -> tuple[bool, str]:
    """Validate correlation ID format and content.

    Args:
        correlation_id: The correlation ID to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not correlation_id or not isinstance(correlation_id, str):
        return False, "Correlation ID is required and must be a string"

    if len(correlation_id) < 8:
        return False, "Correlation ID too short (minimum 8 characters)"

    if len(correlation_id) > 200:
        return False, "Correlation ID too long (maximum 200 characters)"

    if not _VALID_ID.match(correlation_id):
        return (
            False,
            "Correlation ID contains invalid characters (only alphanumeric, hyphens, and underscores allowed)",
        )

    if correlation_id.endswith("-") or correlation_id.startswith("-"):
        return False, "Correlation ID cannot start or end with hyphen"

    return True, ""


def generate_correlation_id(prefix: str = "catalog") -> str:
    """Generate a correlation ID of the form ``{prefix}-{timestamp_ms}-{suffix}``."""
    timestamp_ms = int(time.time() * 1000)
    return f"{prefix}-{timestamp_ms}-{_generate_unique_suffix()}"


def get_correlation_id() -> str | None:
    """Get correlation ID from the current context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> Token[str | None]:
    """Set the correlation ID for the current context and return the reset token."""
    return _correlation_id.set(correlation_id)


def reset_correlation_id(token: Token[str | None]) -> None:
    _correlation_id.reset(token)


__all__ = [
    "generate_correlation_id",
    "get_correlation_id",
    "reset_correlation_id",
    "set_correlation_id",
    "validate_correlation_id",
]
