"""
DocProof - Health & Readiness Tests
"""

import logging
import re

import pytest
from httpx import AsyncClient


@pytest.mark.anyio
async def test_healthz(client: AsyncClient):
    """Test basic health check endpoint."""
    response = await client.get("/healthz")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert re.match(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}", data["timestamp"])


@pytest.mark.anyio
async def test_readyz_reports_database(client: AsyncClient):
    """Readiness includes a database round trip."""
    response = await client.get("/readyz")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"]["database"] is True
    assert "database_latency_ms" in data["details"]
    assert data["details"]["scheduled_confirmations"] == 0
    assert data["uptime_seconds"] >= 0


@pytest.mark.anyio
async def test_probes_not_logged(client: AsyncClient, caplog):
    """Probes skip request logging; API calls do not."""
    with caplog.at_level(logging.INFO, logger="docproof.requests"):
        await client.get("/healthz")
        await client.get("/api/documents")
    assert not any("/healthz" in message for message in caplog.messages)
    assert any("/api/documents" in message for message in caplog.messages)


@pytest.mark.anyio
async def test_unknown_route_returns_404(client: AsyncClient):
    response = await client.get("/nonexistent-endpoint")
    assert response.status_code == 404
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "not_found"


@pytest.mark.anyio
async def test_method_not_allowed(client: AsyncClient):
    response = await client.delete("/healthz")
    assert response.status_code == 405
    assert response.json()["error"] == "method_not_allowed"
