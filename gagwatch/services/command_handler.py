"""
Text command handling for direct messages sent to the bot.
"""
import logging
from typing import Optional

from .dispatcher import Dispatcher
from .formatting import build_preferences_message, DEFAULT_BRAND_NAME
from .prompt_throttle import RegistrationPromptThrottle
from .stock_query import StockQueryService
from ..database.user_repository import UserRepository
from ..discord_bot.views import RegistrationView
from ..models.stock_data import UserProfile, is_valid_recipient_id

UNKNOWN_COMMAND_MESSAGE = "Unknown command. Type 'Help' for a list of available commands."

MEMBER_HELP_MESSAGE = (
    "📋 Available Commands:\n\n"
    "Stock: Show the latest stock list.\n"
    "Preference: Show your saved preferences.\n"
    "Uid: Show your UID and the registration link.\n"
    "Help: Show this list."
)

ADMIN_HELP_MESSAGE = (
    "📋 Admin Commands:\n\n"
    "Database -show: Show all user IDs and names (alphabetical).\n"
    "Database -delete [id]: Delete a user by their UID.\n"
    "Message -global [message]: Send a message to all users.\n"
    "Message [id] [message]: Send a message to a specific user.\n"
    "AdminHelp: Show this list."
)


class CommandHandler:
    """Routes an inbound direct message to the matching member or admin command."""

    def __init__(self, user_repository: UserRepository, dispatcher: Dispatcher,
                 stock_query: StockQueryService, throttle: RegistrationPromptThrottle,
                 admin_id: Optional[str] = None, interface_url: Optional[str] = None,
                 brand_name: str = DEFAULT_BRAND_NAME):
        self.user_repository = user_repository
        self.dispatcher = dispatcher
        self.stock_query = stock_query
        self.throttle = throttle
        self.admin_id = str(admin_id) if admin_id else None
        self.interface_url = interface_url or None
        self.brand_name = brand_name
        self.logger = logging.getLogger(__name__)

    def is_admin(self, recipient_id: str) -> bool:
        return self.admin_id is not None and recipient_id == self.admin_id

    async def handle_message(self, recipient_id: str, text: str) -> bool:
        """
        Handle one direct message.

        Returns True when the sender was recognized (registered user), False
        when the message was ignored or answered with a registration prompt.
        """
        if not is_valid_recipient_id(recipient_id):
            self.logger.error(f"Ignoring message from invalid recipient id: {recipient_id!r}")
            return False

        user = self.user_repository.find_by_recipient_id(recipient_id)
        if user is None:
            await self.send_registration_prompt(recipient_id)
            return False

        text = (text or "").strip()
        if not text:
            return True

        if self.is_admin(recipient_id) and await self.handle_admin_command(recipient_id, text):
            return True

        reply = self.handle_member_command(user, text)
        await self.dispatcher.send(recipient_id, reply if reply is not None else UNKNOWN_COMMAND_MESSAGE)
        return True

    async def send_registration_prompt(self, recipient_id: str) -> bool:
        """Send the registration prompt unless one went out within the cooldown."""
        if not is_valid_recipient_id(recipient_id):
            self.logger.error(f"Invalid recipient id for registration prompt: {recipient_id!r}")
            return False
        if not self.throttle.try_prompt(recipient_id):
            return False

        view = RegistrationView(self.interface_url) if self.interface_url else None
        return await self.dispatcher.send(recipient_id, self.build_registration_message(recipient_id), view=view)

    def build_registration_message(self, recipient_id: str) -> str:
        message = f"**Register to Use {self.brand_name}**\nCopy your UID: {recipient_id}"
        if not self.interface_url:
            message += "\n\nUse /register to choose the items you want alerts for."
        return message

    def build_uid_message(self, recipient_id: str) -> str:
        if self.interface_url:
            return f"Your UID: {recipient_id}\n\nVisit {self.interface_url} to update your preferences."
        return f"Your UID: {recipient_id}\n\nUse /register to update your preferences."

    def handle_member_command(self, user: UserProfile, text: str) -> Optional[str]:
        """Reply text for a member command, None if the command is unknown."""
        command = text.strip().lower()

        if command == "stock":
            return self.stock_query.build_stock_report(user.display_name)
        if command in ("preference", "preferences"):
            return build_preferences_message(user)
        if command == "uid":
            return self.build_uid_message(user.recipient_id)
        if command == "help":
            return MEMBER_HELP_MESSAGE
        return None

    async def handle_admin_command(self, recipient_id: str, text: str) -> bool:
        """Run an admin command; returns False if the text is not one."""
        if not self.is_admin(recipient_id):
            return False

        args = text.split()
        command = args[0].lower()
        sub_command = args[1].lower() if len(args) > 1 else None

        if command == "database":
            if sub_command == "-show":
                await self._show_users(recipient_id)
                return True
            if sub_command == "-delete" and len(args) > 2:
                await self._delete_user(recipient_id, args[2])
                return True
        elif command == "message":
            if sub_command == "-global" and len(args) > 2:
                await self._broadcast(recipient_id, " ".join(args[2:]))
                return True
            if len(args) > 2:
                await self._message_user(recipient_id, args[1], " ".join(args[2:]))
                return True
        elif command == "adminhelp":
            await self.dispatcher.send(recipient_id, ADMIN_HELP_MESSAGE)
            return True

        return False

    async def _show_users(self, admin_id: str) -> None:
        users = self.user_repository.list_users()
        if not users:
            await self.dispatcher.send(admin_id, "No users found in the database.")
            return
        user_list = "\n".join(f"UID: {u.recipient_id}, Name: {u.display_name}" for u in users)
        await self.dispatcher.send(admin_id, f"📋 Database Users (Alphabetical by Name):\n\n{user_list}")

    async def _delete_user(self, admin_id: str, target_id: str) -> None:
        deleted_name = self.user_repository.delete_user(target_id)
        if deleted_name is None:
            await self.dispatcher.send(admin_id, f"User with UID {target_id} not found.")
            return
        self.logger.info(f"Admin {admin_id} deleted user {target_id}")
        await self.dispatcher.send(
            admin_id, f"✅ User {deleted_name} (UID: {target_id}) deleted successfully."
        )

    async def _broadcast(self, admin_id: str, message: str) -> None:
        users = self.user_repository.list_users()
        summary = await self.dispatcher.broadcast(
            [u.recipient_id for u in users], f"📢 Admin Broadcast: {message}"
        )
        self.logger.info(f"Admin broadcast: {summary['sent']} sent, {summary['failed']} failed")
        await self.dispatcher.send(admin_id, f"✅ Broadcast sent to {len(users)} users.")

    async def _message_user(self, admin_id: str, target_id: str, message: str) -> None:
        user = self.user_repository.find_by_recipient_id(target_id)
        if user is None:
            await self.dispatcher.send(admin_id, f"User with UID {target_id} not found.")
            return
        await self.dispatcher.send(target_id, f"📩 Admin Message: {message}")
        await self.dispatcher.send(admin_id, f"✅ Message sent to {user.display_name} (UID: {target_id}).")
