"""Integration tests for health check endpoints."""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from woodart.core.events import EventBroadcaster


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_returns_healthy_status(self, client: TestClient) -> None:
        """Test that /health endpoint returns healthy status."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["timestamp"] is not None
        assert data["version"] == "0.1.0"


class TestReadinessEndpoint:
    """Tests for /health/ready endpoint."""

    def test_readiness_returns_200_when_healthy(self, client: TestClient) -> None:
        response = client.get("/health/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert [check["name"] for check in data["checks"]] == ["database"]

    def test_readiness_reports_event_subscribers(self, client: TestClient, broadcaster: EventBroadcaster) -> None:
        broadcaster.subscribe()
        broadcaster.subscribe()

        response = client.get("/health/ready")

        assert response.json()["event_subscribers"] == 2

    def test_readiness_returns_503_when_database_down(self, client: TestClient) -> None:
        unhealthy = AsyncMock(return_value={"healthy": False, "error": "connection refused"})

        with patch("woodart.api.routes.health.check_database_connection", unhealthy):
            response = client.get("/health/ready")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["checks"][0]["error"] == "connection refused"


class TestLatencyEndpoint:
    """Tests for /health/latency endpoint."""

    def test_latency_stats_shape(self, client: TestClient) -> None:
        client.get("/health")

        response = client.get("/health/latency")

        assert response.status_code == 200
        assert set(response.json()) == {"overall", "by_path"}
