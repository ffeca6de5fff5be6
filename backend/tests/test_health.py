"""Health endpoint tests."""

from unittest.mock import AsyncMock, patch

import pytest

from wanderlust import __version__


@pytest.mark.asyncio
async def test_healthy(client):
    response = await client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"] == "connected"
    assert body["version"] == __version__
    assert body["uptime_seconds"] >= 0


@pytest.mark.asyncio
async def test_unhealthy_when_database_unreachable(client, context):
    with patch.object(context.database, "ping", AsyncMock(return_value=False)):
        response = await client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"
    assert response.json()["database"] == "disconnected"
