"""Tests for the configuration primitives."""

import pytest

from services.common.config import (
    BaseConfig,
    FieldDefinition,
    LoggingConfig,
    RequiredFieldError,
    ServiceConfig,
    ValidationError,
)


class SampleConfig(BaseConfig):
    @classmethod
    def get_field_definitions(cls):
        return [
            FieldDefinition(name="url", field_type=str, required=True, env_var="SAMPLE_URL"),
            FieldDefinition(
                name="mode",
                field_type=str,
                default="fast",
                env_var="SAMPLE_MODE",
                choices=["fast", "slow"],
            ),
            FieldDefinition(
                name="retries", field_type=int, default=3, env_var="SAMPLE_RETRIES", max_value=5
            ),
            FieldDefinition(name="enabled", field_type=bool, default=False, env_var="SAMPLE_ENABLED"),
            FieldDefinition(
                name="ratio", field_type=float, default=0.5, min_value=0.0, max_value=1.0
            ),
        ]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in (
        "SAMPLE_URL",
        "SAMPLE_MODE",
        "SAMPLE_RETRIES",
        "SAMPLE_ENABLED",
        "LOG_LEVEL",
        "LOG_JSON",
        "SERVICE_HOST",
        "SERVER_PORT",
    ):
        monkeypatch.delenv(name, raising=False)


class TestFieldDefinition:
    """Field definitions reject contradictory settings."""

    @pytest.mark.unit
    def test_required_with_default_rejected(self):
        with pytest.raises(ValueError):
            FieldDefinition(name="x", field_type=str, required=True, default="y")

    @pytest.mark.unit
    def test_default_outside_choices_rejected(self):
        with pytest.raises(ValueError):
            FieldDefinition(name="x", field_type=str, default="z", choices=["a", "b"])


class TestBaseConfig:
    """Loading and validation."""

    @pytest.mark.unit
    def test_defaults_and_kwargs(self):
        config = SampleConfig(url="http://example")

        assert config.url == "http://example"
        assert config.mode == "fast"
        assert config.retries == 3
        assert config.enabled is False

    @pytest.mark.unit
    def test_missing_required(self):
        with pytest.raises(RequiredFieldError, match="url"):
            SampleConfig()

    @pytest.mark.unit
    def test_environment_wins_over_kwargs(self, monkeypatch):
        monkeypatch.setenv("SAMPLE_URL", "http://from-env")
        monkeypatch.setenv("SAMPLE_RETRIES", "5")
        monkeypatch.setenv("SAMPLE_ENABLED", "yes")

        config = SampleConfig(url="http://from-kwargs")

        assert config.url == "http://from-env"
        assert config.retries == 5
        assert config.enabled is True

    @pytest.mark.unit
    def test_choices_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("SAMPLE_MODE", "SLOW")

        assert SampleConfig(url="u").mode == "slow"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "overrides",
        [
            {"mode": "medium"},
            {"retries": 6},
            {"retries": "3"},
            {"ratio": 2},
            {"ratio": "0.5"},
        ],
    )
    def test_invalid_values(self, overrides):
        with pytest.raises(ValidationError):
            SampleConfig(url="u", **overrides)

    @pytest.mark.unit
    def test_integer_accepted_for_float(self):
        config = SampleConfig(url="u", ratio=1)

        assert config.ratio == 1.0
        assert isinstance(config.ratio, float)

    @pytest.mark.unit
    def test_unconvertible_environment_value(self, monkeypatch):
        monkeypatch.setenv("SAMPLE_RETRIES", "three")

        with pytest.raises(ValidationError) as exc_info:
            SampleConfig(url="u")

        assert exc_info.value.field == "retries"
        assert exc_info.value.value == "three"

    @pytest.mark.unit
    def test_unknown_attribute(self):
        with pytest.raises(AttributeError):
            SampleConfig(url="u").missing

    @pytest.mark.unit
    def test_to_dict(self):
        values = SampleConfig(url="u").to_dict()

        assert values["url"] == "u"
        assert values["retries"] == 3


class TestSharedConfigs:
    """Logging and listen address configuration."""

    @pytest.mark.unit
    def test_logging_defaults(self):
        config = LoggingConfig()

        assert config.level == "INFO"
        assert config.json_logs is True

    @pytest.mark.unit
    def test_logging_from_environment(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("LOG_JSON", "false")

        config = LoggingConfig()

        assert config.level == "DEBUG"
        assert config.json_logs is False

    @pytest.mark.unit
    def test_service_defaults(self):
        config = ServiceConfig()

        assert config.host == "0.0.0.0"
        assert config.port == 8080

    @pytest.mark.unit
    def test_service_port_range(self, monkeypatch):
        monkeypatch.setenv("SERVER_PORT", "70000")

        with pytest.raises(ValidationError):
            ServiceConfig()
