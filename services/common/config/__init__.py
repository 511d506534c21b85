"""Configuration system for catalog services.

Type-safe configuration classes loaded from environment variables with a
small validation framework.
"""

from .base import (
    BaseConfig,
    ConfigError,
    FieldDefinition,
    LoggingConfig,
    RequiredFieldError,
    ServiceConfig,
    ValidationError,
)


__all__ = [
    "BaseConfig",
    "ConfigError",
    "FieldDefinition",
    "LoggingConfig",
    "RequiredFieldError",
    "ServiceConfig",
    "ValidationError",
]
