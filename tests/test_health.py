"""
Health endpoint tests.
"""

import pytest
from fastapi.testclient import TestClient

from teleconsult.adapters.cache.memory_cache import InMemoryCacheService
from teleconsult.api.deps import get_cache_service, get_diagnosis_orchestrator
from teleconsult.app import app


class StubOrchestrator:
    def __init__(self, healthy):
        self.healthy = healthy

    async def health_check(self):
        return self.healthy


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    app.dependency_overrides[get_cache_service] = lambda: InMemoryCacheService()
    app.dependency_overrides[get_diagnosis_orchestrator] = lambda: StubOrchestrator(False)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_endpoint(client):
    """Test that the /health endpoint returns 200 OK."""
    response = client.get("/health/")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["data"]["status"] == "healthy"
    assert "timestamp" in data["data"]
    assert "version" in data["data"]
    assert "service" in data["data"]


def test_health_ready_reports_each_dependency(client):
    """Readiness without a database connection is degraded but still answers."""
    response = client.get("/health/ready")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "degraded"
    assert data["checks"]["database"] == "not_initialized"
    assert data["checks"]["cache"] == "ok"
    assert data["checks"]["diagnosis_service"] == "degraded"


def test_health_live_endpoint(client):
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "alive"


def test_root_endpoint(client):
    """Test that the root endpoint returns API information."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "service" in data
    assert "version" in data
    assert data["status"] == "running"


def test_request_id_is_echoed(client):
    response = client.get("/health/", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
    assert response.json()["request_id"] == "req-123"
    assert "X-Process-Time" in response.headers
