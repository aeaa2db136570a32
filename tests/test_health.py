"""Tests for health endpoints."""

from unittest.mock import MagicMock, patch

from fastapi import FastAPI
from fastapi.testclient import TestClient


def test_liveness(client: TestClient) -> None:
    """Test the liveness endpoint."""
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_readiness_without_database(client: TestClient) -> None:
    """Without a database connection the service is not ready."""
    response = client.get("/health/ready")
    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "not_ready"
    assert data["database"] is False
    assert data["services"] is False
    assert "environment" in data


def test_readiness_with_services(app: FastAPI, client: TestClient) -> None:
    """Connected database plus built services reports ready."""
    app.state.progress_service = MagicMock()
    with patch(
        "learnhub.health.router.AsyncCassandraConnection.is_connected",
        return_value=True,
    ):
        response = client.get("/health/ready")

    assert response.status_code == 200
    assert response.json()["status"] == "ready"


def test_health(client: TestClient) -> None:
    """Test the general health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["app_name"] == "learnhub"
    assert "version" in data
    assert "environment" in data


def test_root(client: TestClient) -> None:
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "LearnHub" in data["message"]
    assert "version" in data


def test_service_routes_unavailable_without_services(
    client: TestClient, student_headers: dict[str, str]
) -> None:
    """Routes answer 503 with the error body when services were not built."""
    response = client.get("/v1/enrollments/my", headers=student_headers)
    assert response.status_code == 503
    body = response.json()
    assert body["error"] is True
    assert body["kind"] == "internal"
    assert body["code"] == "http_503"
