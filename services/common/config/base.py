"""Typed configuration classes for catalog services.

A config class lists ``FieldDefinition`` entries. Values come from keyword
arguments, then from each field's environment variable (which wins), then
from the field default, and are checked before the object is usable.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

_TRUE_STRINGS = ("true", "1", "yes", "on")


class ConfigError(Exception):
    """Base exception for configuration-related errors."""


class ValidationError(ConfigError):
    """A value was present but unusable."""

    def __init__(self, field_name: str, value: Any, message: str) -> None:
        self.field = field_name
        self.value = value
        self.message = message
        super().__init__(f"Validation failed for field '{field_name}': {message}")


class RequiredFieldError(ConfigError):
    """A required field had no value from kwargs or the environment."""

    def __init__(self, field_name: str) -> None:
        self.field = field_name
        super().__init__(f"Required field '{field_name}' is missing")


@dataclass
class FieldDefinition:
    """One configuration field and its constraints."""

    name: str
    field_type: type[Any]
    default: Any = None
    required: bool = False
    description: str = ""
    env_var: str | None = None
    choices: list[str] | None = None
    min_value: int | float | None = None
    max_value: int | float | None = None

    def __post_init__(self) -> None:
        if self.required and self.default is not None:
            raise ValueError(
                f"Field '{self.name}' cannot be both required and have a default value"
            )
        if self.choices and self.default not in self.choices:
            raise ValueError(f"Field '{self.name}' default value not in choices")


class BaseConfig(ABC):
    """Configuration object whose fields are readable as attributes."""

    def __init__(self, **kwargs: Any) -> None:
        self._values: dict[str, Any] = {}
        for field_def in self.get_field_definitions():
            value = kwargs.get(field_def.name, field_def.default)
            if field_def.env_var and field_def.env_var in os.environ:
                value = self._from_env(field_def, os.environ[field_def.env_var])
            self._values[field_def.name] = self._check(field_def, value)

    @classmethod
    @abstractmethod
    def get_field_definitions(cls) -> list[FieldDefinition]:
        """Fields of this configuration class."""

    @staticmethod
    def _from_env(field_def: FieldDefinition, raw: str) -> Any:
        if field_def.field_type is bool:
            return raw.lower() in _TRUE_STRINGS
        if field_def.field_type in (int, float):
            try:
                return field_def.field_type(raw)
            except ValueError as exc:
                raise ValidationError(
                    field_def.name, raw, f"Cannot convert to {field_def.field_type.__name__}"
                ) from exc
        return raw

    @staticmethod
    def _check(field_def: FieldDefinition, value: Any) -> Any:
        """Validate ``value`` and return it, canonicalising string choices."""
        if value is None:
            if field_def.required:
                raise RequiredFieldError(field_def.name)
            return None

        if field_def.field_type is float and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        if not isinstance(value, field_def.field_type):
            raise ValidationError(
                field_def.name, value, f"Expected {field_def.field_type.__name__}"
            )

        if field_def.choices:
            by_upper = {choice.upper(): choice for choice in field_def.choices}
            canonical = by_upper.get(value.upper()) if isinstance(value, str) else None
            if canonical is None:
                raise ValidationError(
                    field_def.name, value, f"Must be one of {field_def.choices}"
                )
            value = canonical

        if field_def.min_value is not None and value < field_def.min_value:
            raise ValidationError(field_def.name, value, f"Must be >= {field_def.min_value}")
        if field_def.max_value is not None and value > field_def.max_value:
            raise ValidationError(field_def.name, value, f"Must be <= {field_def.max_value}")

        return value

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(f"Configuration field '{name}' not found") from None

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)


class LoggingConfig(BaseConfig):
    """Log level and output format."""

    @classmethod
    def get_field_definitions(cls) -> list[FieldDefinition]:
        return [
            FieldDefinition(
                name="level",
                field_type=str,
                default="INFO",
                description="Log level",
                env_var="LOG_LEVEL",
                choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            ),
            FieldDefinition(
                name="json_logs",
                field_type=bool,
                default=True,
                description="Use JSON logging format",
                env_var="LOG_JSON",
            ),
        ]


class ServiceConfig(BaseConfig):
    """Listen address for the HTTP server."""

    @classmethod
    def get_field_definitions(cls) -> list[FieldDefinition]:
        return [
            FieldDefinition(
                name="host",
                field_type=str,
                default="0.0.0.0",
                description="Service host",
                env_var="SERVICE_HOST",
            ),
            FieldDefinition(
                name="port",
                field_type=int,
                default=8080,
                description="Service port",
                env_var="SERVER_PORT",
                min_value=1,
                max_value=65535,
            ),
        ]
