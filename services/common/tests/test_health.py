"""Tests for startup tracking and the operational endpoints."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from structlog.testing import capture_logs

from services.common.app_factory import create_service_app
from services.common.health import HealthManager
from services.common.health_endpoints import HealthEndpoints
from services.common.metrics import MetricsRegistry


class TestHealthManager:
    """Startup state transitions."""

    @pytest.mark.unit
    def test_not_ready_until_marked(self):
        manager = HealthManager("fx-catalog-service")

        assert manager.startup_complete is False
        manager.mark_startup_complete()
        assert manager.startup_complete is True

    @pytest.mark.unit
    def test_critical_failure_blocks_startup(self):
        manager = HealthManager("fx-catalog-service")

        with capture_logs():
            manager.record_startup_failure(RuntimeError("no route"), component="http_client")
            manager.mark_startup_complete()

        assert manager.startup_complete is False
        assert manager.has_startup_failure()
        failure = manager.get_startup_failure()
        assert failure["error_type"] == "RuntimeError"
        assert failure["component"] == "http_client"

    @pytest.mark.unit
    def test_non_critical_failure_allows_startup(self):
        manager = HealthManager("fx-catalog-service")

        with capture_logs() as logs:
            manager.record_startup_failure(RuntimeError("slow"), is_critical=False)
            manager.mark_startup_complete()

        assert manager.startup_complete is True
        assert not manager.has_startup_failure()
        assert logs[0]["log_level"] == "warning"

    @pytest.mark.unit
    def test_uptime(self):
        assert HealthManager("fx-catalog-service").uptime_seconds() >= 0


class TestHealthEndpoints:
    """Router-level behaviour."""

    @pytest.fixture
    def manager(self):
        return HealthManager("fx-catalog-service")

    @pytest.fixture
    def client(self, manager):
        app = FastAPI()
        app.include_router(HealthEndpoints("fx-catalog-service", manager, MetricsRegistry()).router)
        return TestClient(app)

    @pytest.mark.unit
    def test_live(self, client):
        response = client.get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive", "service": "fx-catalog-service"}

    @pytest.mark.unit
    def test_ready_transitions(self, client, manager):
        assert client.get("/health/ready").status_code == 503

        with capture_logs():
            manager.mark_startup_complete()
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["service"] == "fx-catalog-service"

    @pytest.mark.unit
    def test_ready_reports_failure(self, client, manager):
        with capture_logs():
            manager.record_startup_failure(ValueError("bad url"))

        response = client.get("/health/ready")

        assert response.status_code == 503
        assert "ValueError: bad url" in response.json()["detail"]


class TestServiceAppLifespan:
    """Startup and shutdown callbacks of ``create_service_app``."""

    @pytest.mark.unit
    def test_sync_and_async_callbacks(self):
        calls = []

        async def _startup():
            calls.append("startup")

        app = create_service_app(
            "fx-catalog-lifespan",
            startup_callback=_startup,
            shutdown_callback=lambda: calls.append("shutdown"),
        )

        with capture_logs():
            with TestClient(app) as client:
                assert client.get("/health/ready").status_code == 200

        assert calls == ["startup", "shutdown"]

    @pytest.mark.unit
    def test_failing_startup_keeps_service_unready(self):
        def _startup():
            raise RuntimeError("course service unreachable")

        app = create_service_app("fx-catalog-lifespan", startup_callback=_startup)

        with capture_logs():
            with TestClient(app) as client:
                response = client.get("/health/ready")

        assert response.status_code == 503
        assert "course service unreachable" in response.json()["detail"]
