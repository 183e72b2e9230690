"""
Tests for the health check server.
"""
import json
import pytest
from unittest.mock import MagicMock
from aiohttp.test_utils import make_mocked_request

import discord

from gagwatch.services.health_check import HealthCheckServer


@pytest.fixture
def health_server(error_handler):
    """Create a health check server instance for testing."""
    return HealthCheckServer(host='127.0.0.1', port=8080, error_handler=error_handler)


class TestHealthCheckServer:
    """Test suite for HealthCheckServer class."""

    @pytest.mark.asyncio
    async def test_health_handler(self, health_server):
        response = await health_server.health_handler(make_mocked_request('GET', '/health'))

        assert response.status == 200
        body = json.loads(response.text)
        assert body["status"] == "healthy"
        assert "timestamp" in body

    @pytest.mark.asyncio
    async def test_health_handler_critical(self, health_server, error_handler):
        await error_handler.handle_error(discord.LoginFailure("Improper token has been passed."))

        response = await health_server.health_handler(make_mocked_request('GET', '/health'))

        assert response.status == 503
        assert json.loads(response.text)["status"] == "critical"

    @pytest.mark.asyncio
    async def test_status_handler(self, health_server, snapshot_store, make_snapshot, registered_user,
                                  user_repository):
        feed_client = MagicMock()
        feed_client.get_status.return_value = {"connected": True, "messages_accepted": 4}
        scheduler = MagicMock()
        scheduler.get_status.return_value = {"runs_completed": 2}
        snapshot_store.set(make_snapshot(seed=[("Carrot", 1)]))
        health_server.attach(feed_client=feed_client, snapshot_store=snapshot_store,
                             scheduler=scheduler, user_repository=user_repository)

        response = await health_server.status_handler(make_mocked_request('GET', '/status'))

        assert response.status == 200
        body = json.loads(response.text)
        assert body["system"]["status"] == "healthy"
        assert body["feed"]["connected"] is True
        assert body["snapshot"]["available"] is True
        assert body["matching"] == {"runs_completed": 2}
        assert body["users"] == 1
        assert body["errors"]["total_errors"] == 0

    @pytest.mark.asyncio
    async def test_status_handler_failure(self, health_server):
        feed_client = MagicMock()
        feed_client.get_status.side_effect = RuntimeError("boom")
        health_server.attach(feed_client=feed_client)

        response = await health_server.status_handler(make_mocked_request('GET', '/status'))

        assert response.status == 500
        assert json.loads(response.text)["message"] == "boom"

    def test_routes_registered(self, health_server):
        paths = {route.resource.canonical for route in health_server.app.router.routes()}
        assert {'/health', '/status'} <= paths
