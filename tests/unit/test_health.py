"""
Tests for health endpoints.
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.adapters.sqlite_db import ping
from src.components.newsletter.models import StoreError
from src.shell.http.health import check_store, router

# --- Test Fixtures ---


def healthy_ping() -> None:
    return None


def broken_ping() -> None:
    raise StoreError("ping the database", RuntimeError("disk I/O error"))


@pytest.fixture
def health_app() -> FastAPI:
    app = FastAPI(version="1.0.0-test")
    app.include_router(router)
    app.state.database_ping = healthy_ping
    return app


@pytest.fixture
def health_client(health_app: FastAPI) -> TestClient:
    return TestClient(health_app)


# --- Store check ---


class TestCheckStore:
    def test_reachable_when_ping_succeeds(self) -> None:
        result = check_store(healthy_ping)

        assert result.reachable is True
        assert result.latency_ms >= 0

    def test_unreachable_when_ping_raises_store_error(self) -> None:
        result = check_store(broken_ping)

        assert result.reachable is False
        assert "disk I/O error" in result.detail


# --- Endpoints ---


class TestHealthCheckEndpoint:
    def test_returns_200_with_empty_body(self, health_client: TestClient) -> None:
        response = health_client.get("/health_check")

        assert response.status_code == 200
        assert response.content == b""


class TestHealthEndpoint:
    def test_healthy_when_database_reachable(self, health_client: TestClient) -> None:
        response = health_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["version"] == "1.0.0-test"
        assert body["database"]["reachable"] is True

    def test_503_when_database_unusable(
        self, health_app: FastAPI, health_client: TestClient
    ) -> None:
        health_app.state.database_ping = broken_ping

        response = health_client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert response.json()["database"]["reachable"] is False


class TestAppHealth:
    def test_app_reports_database_healthy(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["database"]["reachable"] is True

    def test_app_reports_missing_tables(self, client: TestClient, tmp_path) -> None:
        client.app.state.database_ping = lambda: ping(str(tmp_path / "empty.db"))

        assert client.get("/health").status_code == 503

    def test_app_health_check(self, client: TestClient) -> None:
        assert client.get("/health_check").status_code == 200
