"""
Tests for the health endpoint.
"""

import pytest


@pytest.mark.asyncio
async def test_health_reports_database(client, healthy_supervisor):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["database"] == "connected"

    healthy_supervisor.healthy = False
    response = await client.get("/health")
    assert response.json()["status"] == "degraded"
    assert response.json()["database"] == "unavailable"
