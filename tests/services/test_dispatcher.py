"""
Tests for the Dispatcher.
"""
import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

import discord

from gagwatch.models.stock_data import DispatchTask
from gagwatch.services.dispatcher import Dispatcher


@pytest.fixture
def messenger():
    messenger = MagicMock()
    messenger.send_direct_message = AsyncMock()
    return messenger


@pytest.fixture
def dispatcher(messenger, error_handler):
    return Dispatcher(messenger, timeout=0.05, error_handler=error_handler)


class TestDispatcher:
    """Tests for Dispatcher."""

    @pytest.mark.asyncio
    async def test_send_success(self, dispatcher, messenger):
        assert await dispatcher.send("123", "hello") is True

        messenger.send_direct_message.assert_awaited_once_with("123", "hello", view=None)
        assert dispatcher.sent_count == 1

    @pytest.mark.asyncio
    async def test_send_failure_is_logged_and_dropped(self, dispatcher, messenger, error_handler):
        messenger.send_direct_message.side_effect = discord.Forbidden(
            MagicMock(status=403, reason="Forbidden"), "Cannot send messages to this user"
        )

        assert await dispatcher.send("123", "hello") is False

        assert dispatcher.failed_count == 1
        assert messenger.send_direct_message.await_count == 1
        assert error_handler.get_error_summary()["counts"] == {"delivery:Forbidden": 1}

    @pytest.mark.asyncio
    async def test_send_timeout(self, dispatcher, messenger, error_handler):
        async def hang(*args, **kwargs):
            await asyncio.sleep(10)

        messenger.send_direct_message.side_effect = hang

        assert await dispatcher.send("123", "hello") is False
        assert dispatcher.failed_count == 1
        assert error_handler.get_error_summary()["total_errors"] == 1

    @pytest.mark.asyncio
    async def test_dispatch_isolates_failures(self, dispatcher, messenger):
        async def send(recipient_id, content, view=None):
            if recipient_id == "2":
                raise ConnectionError("gateway gone")

        messenger.send_direct_message.side_effect = send
        tasks = [DispatchTask(recipient_id=r, rendered_text=f"msg {r}") for r in ("1", "2", "3")]

        summary = await dispatcher.dispatch(tasks)

        assert summary == {'sent': 2, 'failed': 1}
        assert messenger.send_direct_message.await_count == 3

    @pytest.mark.asyncio
    async def test_dispatch_empty(self, dispatcher, messenger):
        assert await dispatcher.dispatch([]) == {'sent': 0, 'failed': 0}
        messenger.send_direct_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_broadcast(self, dispatcher, messenger):
        summary = await dispatcher.broadcast(["1", "2"], "maintenance tonight")

        assert summary == {'sent': 2, 'failed': 0}
        messenger.send_direct_message.assert_any_await("2", "maintenance tonight", view=None)
