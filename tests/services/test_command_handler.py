"""
Tests for the direct message CommandHandler.
"""
import pytest

from gagwatch.discord_bot.views import RegistrationView
from gagwatch.models.stock_data import UserProfile
from gagwatch.services.command_handler import (
    CommandHandler, ADMIN_HELP_MESSAGE, MEMBER_HELP_MESSAGE, UNKNOWN_COMMAND_MESSAGE
)
from gagwatch.services.prompt_throttle import RegistrationPromptThrottle
from gagwatch.services.stock_query import StockQueryService, STOCK_UNAVAILABLE_MESSAGE

ADMIN_ID = "999"


@pytest.fixture
def handler(user_repository, mock_dispatcher, snapshot_store, fake_clock):
    return CommandHandler(
        user_repository,
        mock_dispatcher,
        StockQueryService(snapshot_store, fake_clock),
        RegistrationPromptThrottle(fake_clock),
        admin_id=ADMIN_ID,
        interface_url="https://example.com/register"
    )


@pytest.fixture
def admin(user_repository):
    profile, _ = user_repository.save_preferences(
        UserProfile(recipient_id=ADMIN_ID, display_name="Admin", gear=["Trowel"])
    )
    return profile


def _sent_texts(dispatcher):
    return [call.args[1] for call in dispatcher.send.await_args_list]


class TestRegistrationPrompt:
    """Tests for unregistered senders."""

    @pytest.mark.asyncio
    async def test_unregistered_user_prompted_once_within_window(self, handler, mock_dispatcher, fake_clock):
        assert await handler.handle_message("555", "stock") is False
        fake_clock.advance(minutes=1)
        assert await handler.handle_message("555", "hello?") is False

        assert mock_dispatcher.send.await_count == 1
        recipient_id, message = mock_dispatcher.send.await_args.args
        assert recipient_id == "555"
        assert message == "**Register to Use GAG DROP WATCH**\nCopy your UID: 555"
        view = mock_dispatcher.send.await_args.kwargs["view"]
        assert isinstance(view, RegistrationView)
        assert view.children[0].url == "https://example.com/register"

    @pytest.mark.asyncio
    async def test_prompt_repeats_after_window(self, handler, mock_dispatcher, fake_clock):
        await handler.handle_message("555", "hi")
        fake_clock.advance(minutes=5)
        await handler.handle_message("555", "hi")

        assert mock_dispatcher.send.await_count == 2

    @pytest.mark.asyncio
    async def test_no_view_without_interface_url(self, user_repository, mock_dispatcher,
                                                 snapshot_store, fake_clock):
        handler = CommandHandler(
            user_repository, mock_dispatcher, StockQueryService(snapshot_store, fake_clock),
            RegistrationPromptThrottle(fake_clock)
        )
        await handler.handle_message("555", "hi")

        assert mock_dispatcher.send.await_args.kwargs["view"] is None
        assert "/register" in mock_dispatcher.send.await_args.args[1]

    @pytest.mark.asyncio
    async def test_invalid_recipient_ignored(self, handler, mock_dispatcher):
        assert await handler.handle_message("abc", "stock") is False
        mock_dispatcher.send.assert_not_awaited()


class TestMemberCommands:
    """Tests for registered member commands."""

    @pytest.mark.asyncio
    async def test_stock_without_snapshot(self, handler, registered_user, mock_dispatcher):
        assert await handler.handle_message("123", "Stock") is True
        assert _sent_texts(mock_dispatcher) == [STOCK_UNAVAILABLE_MESSAGE]

    @pytest.mark.asyncio
    async def test_stock_with_snapshot(self, handler, registered_user, mock_dispatcher,
                                       snapshot_store, make_snapshot):
        snapshot_store.set(make_snapshot(seed=[("Carrot", 15, "🥕")]))

        await handler.handle_message("123", "stock")

        message = _sent_texts(mock_dispatcher)[0]
        assert message.startswith("📦 Stock Check for Juan at 6/15/2025, 3:05:00 PM:")
        assert "🥕 Carrot: x15" in message

    @pytest.mark.asyncio
    async def test_preference_and_uid(self, handler, registered_user, mock_dispatcher):
        await handler.handle_message("123", "preference")
        await handler.handle_message("123", "UID")

        preferences, uid = _sent_texts(mock_dispatcher)
        assert "🌱 Seeds: Carrot" in preferences
        assert uid.startswith("Your UID: 123")
        assert "https://example.com/register" in uid

    @pytest.mark.asyncio
    async def test_help_and_unknown(self, handler, registered_user, mock_dispatcher):
        await handler.handle_message("123", "help")
        await handler.handle_message("123", "dance")

        assert _sent_texts(mock_dispatcher) == [MEMBER_HELP_MESSAGE, UNKNOWN_COMMAND_MESSAGE]

    @pytest.mark.asyncio
    async def test_empty_message_is_silent(self, handler, registered_user, mock_dispatcher):
        assert await handler.handle_message("123", "   ") is True
        mock_dispatcher.send.assert_not_awaited()


class TestAdminCommands:
    """Tests for admin-only commands."""

    @pytest.mark.asyncio
    async def test_non_admin_cannot_run_admin_commands(self, handler, registered_user,
                                                       user_repository, mock_dispatcher):
        await handler.handle_message("123", "database -delete 123")

        assert user_repository.find_by_recipient_id("123") is not None
        assert _sent_texts(mock_dispatcher) == [UNKNOWN_COMMAND_MESSAGE]

    @pytest.mark.asyncio
    async def test_database_show(self, handler, admin, registered_user, mock_dispatcher):
        await handler.handle_message(ADMIN_ID, "Database -show")

        assert _sent_texts(mock_dispatcher) == [
            "📋 Database Users (Alphabetical by Name):\n\n"
            "UID: 999, Name: Admin\nUID: 123, Name: Juan"
        ]

    @pytest.mark.asyncio
    async def test_database_delete(self, handler, admin, registered_user, user_repository, mock_dispatcher):
        await handler.handle_message(ADMIN_ID, "database -delete 123")
        await handler.handle_message(ADMIN_ID, "database -delete 4242")

        assert user_repository.find_by_recipient_id("123") is None
        assert _sent_texts(mock_dispatcher) == [
            "✅ User Juan (UID: 123) deleted successfully.",
            "User with UID 4242 not found.",
        ]

    @pytest.mark.asyncio
    async def test_database_delete_unreadable_user(self, handler, admin, user_repository, temp_db,
                                                   mock_dispatcher):
        temp_db.execute(
            "INSERT INTO users (recipient_id, display_name, cooldown_ledger) VALUES (?, ?, ?)",
            ("555", "Broken", "not json")
        )
        temp_db.commit()

        await handler.handle_message(ADMIN_ID, "database -delete 555")

        assert _sent_texts(mock_dispatcher) == ["✅ User Broken (UID: 555) deleted successfully."]
        assert temp_db.execute("SELECT COUNT(*) FROM users WHERE recipient_id = ?", ("555",)).fetchone()[0] == 0

    @pytest.mark.asyncio
    async def test_message_global(self, handler, admin, registered_user, mock_dispatcher):
        await handler.handle_message(ADMIN_ID, "message -global Server restart at 9")

        mock_dispatcher.broadcast.assert_awaited_once_with(
            [ADMIN_ID, "123"], "📢 Admin Broadcast: Server restart at 9"
        )
        assert _sent_texts(mock_dispatcher) == ["✅ Broadcast sent to 2 users."]

    @pytest.mark.asyncio
    async def test_message_single_user(self, handler, admin, registered_user, mock_dispatcher):
        await handler.handle_message(ADMIN_ID, "message 123 hello there")

        assert [call.args for call in mock_dispatcher.send.await_args_list] == [
            ("123", "📩 Admin Message: hello there"),
            (ADMIN_ID, "✅ Message sent to Juan (UID: 123)."),
        ]

    @pytest.mark.asyncio
    async def test_admin_help_and_member_fallthrough(self, handler, admin, mock_dispatcher):
        await handler.handle_message(ADMIN_ID, "adminhelp")
        await handler.handle_message(ADMIN_ID, "help")

        assert _sent_texts(mock_dispatcher) == [ADMIN_HELP_MESSAGE, MEMBER_HELP_MESSAGE]
