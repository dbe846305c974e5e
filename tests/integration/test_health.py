"""Integration tests for health endpoints."""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from mail_to_telegram.http.server import create_app


@pytest.fixture
def gateway():
    gateway = Mock()
    gateway.is_ready = True
    return gateway


@pytest.fixture
def client(gateway):
    """Create test client."""
    app = create_app(gateway)
    return TestClient(app)


@pytest.mark.integration
def test_liveness_endpoint(client):
    """Test liveness endpoint returns 200."""
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["check"] == "liveness"


@pytest.mark.integration
def test_readiness_endpoint(client):
    """Test readiness endpoint returns 200."""
    response = client.get("/health/ready")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["check"] == "readiness"


@pytest.mark.integration
def test_readiness_not_ready(client, gateway):
    """Test readiness endpoint returns 503 while the gateway is not serving."""
    gateway.is_ready = False

    response = client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["status"] == "unavailable"


@pytest.mark.integration
def test_readiness_without_gateway():
    response = TestClient(create_app()).get("/health/ready")

    assert response.status_code == 503


@pytest.mark.integration
def test_metrics_endpoint(client):
    """Test metrics endpoint returns Prometheus format."""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert b"relay_deliveries_total" in response.content
