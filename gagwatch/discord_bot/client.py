"""
Discord bot client implementation.
"""
import logging
from typing import Optional

import discord
from discord import Interaction, app_commands, errors, ui

from ..config.config_manager import ConfigManager
from ..models.interfaces import IMessenger
from ..models.stock_data import is_valid_recipient_id
from ..services.formatting import build_preferences_message, split_message
from ..services.preference_service import PreferenceValidationError


class DiscordBotClient(discord.Client, IMessenger):
    """Discord client delivering alerts by direct message and serving slash commands."""

    def __init__(self, config_manager: ConfigManager):
        """Initialize Discord bot client."""
        intents = discord.Intents.default()
        intents.message_content = True
        intents.dm_messages = True
        super().__init__(intents=intents)

        self.config_manager = config_manager
        self.logger = logging.getLogger(__name__)
        self.tree = app_commands.CommandTree(self)
        self._command_handler = None
        self._preference_service = None
        self._stock_query = None

    def set_command_handler(self, command_handler) -> None:
        """Set the handler for direct message commands."""
        self._command_handler = command_handler

    def set_preference_service(self, preference_service) -> None:
        self._preference_service = preference_service

    def set_stock_query(self, stock_query) -> None:
        self._stock_query = stock_query

    async def setup_hook(self) -> None:
        """Set up the bot before it connects to the gateway."""
        await self.setup_commands()

    async def on_ready(self) -> None:
        """Called when the bot is ready."""
        self.logger.info(f"Bot is ready! Logged in as {self.user} ({getattr(self.user, 'id', '?')})")

    async def on_message(self, message: discord.Message) -> None:
        """Route direct messages to the command handler."""
        if message.author.bot or (self.user is not None and message.author.id == self.user.id):
            return
        if message.guild is not None:
            return
        if self._command_handler is None:
            self.logger.warning("Direct message received before command handler was set")
            return

        try:
            await self._command_handler.handle_message(str(message.author.id), message.content)
        except Exception as e:
            self.logger.exception(f"Error handling direct message from {message.author.id}: {e}")

    async def send_direct_message(self, recipient_id: str, content: str,
                                  view: Optional[ui.View] = None) -> None:
        """
        Send a direct message to a user, splitting text over Discord's length limit.

        The view, if any, is attached to the last chunk. Errors propagate to the caller.
        """
        if not is_valid_recipient_id(recipient_id):
            raise ValueError(f"Invalid recipient id: {recipient_id!r}")

        user = self.get_user(int(recipient_id))
        if user is None:
            user = await self.fetch_user(int(recipient_id))

        chunks = split_message(content)
        for index, chunk in enumerate(chunks):
            if view is not None and index == len(chunks) - 1:
                await user.send(chunk, view=view)
            else:
                await user.send(chunk)

    async def setup_commands(self) -> None:
        """Set up Discord slash commands."""
        self.logger.info("Setting up Discord slash commands")

        @self.tree.command(name="register", description="Register or update the items you want stock alerts for")
        @app_commands.describe(
            seeds="Comma separated seed names (e.g. Carrot, Strawberry)",
            gear="Comma separated gear names",
            eggs="Comma separated egg names",
            travelingmerchant="Comma separated traveling merchant item names",
            name="Name to use in alerts (defaults to your Discord name)"
        )
        async def register_command(interaction: Interaction, seeds: Optional[str] = None,
                                   gear: Optional[str] = None, eggs: Optional[str] = None,
                                   travelingmerchant: Optional[str] = None,
                                   name: Optional[str] = None):
            await self._run_command(interaction, self._handle_register(
                interaction, seeds, gear, eggs, travelingmerchant, name
            ))

        @self.tree.command(name="stock", description="Show the latest stock list")
        async def stock_command(interaction: Interaction):
            await self._run_command(interaction, self._handle_stock(interaction))

        @self.tree.command(name="preferences", description="Show your saved preferences")
        async def preferences_command(interaction: Interaction):
            await self._run_command(interaction, self._handle_preferences(interaction))

        @self.tree.command(name="uid", description="Show your UID")
        async def uid_command(interaction: Interaction):
            await self._run_command(interaction, self._handle_uid(interaction))

        if self.config_manager.get('discord.sync_commands', True):
            try:
                self.logger.info("Syncing commands with Discord")
                await self.tree.sync()
                self.logger.info("Commands synced successfully")
            except errors.HTTPException as e:
                self.logger.error(f"Error syncing commands: {e}")

    async def _run_command(self, interaction: Interaction, handler) -> None:
        """Await a slash command handler, replying with an error message if it fails."""
        try:
            await handler
        except errors.DiscordException as e:
            self.logger.error(f"Discord API error in command {interaction.command.name}: {e}")
            await self._send_error(interaction, "An error occurred while communicating with Discord.")
        except Exception as e:
            self.logger.exception(f"Unexpected error in command {interaction.command.name}: {e}")
            await self._send_error(interaction, "An unexpected error occurred. Please try again later.")

    async def _send_error(self, interaction: Interaction, message: str) -> None:
        try:
            if interaction.response.is_done():
                await interaction.followup.send(message, ephemeral=True)
            else:
                await interaction.response.send_message(message, ephemeral=True)
        except errors.DiscordException as e:
            self.logger.error(f"Could not report command error: {e}")

    async def _handle_register(self, interaction: Interaction, seeds: Optional[str], gear: Optional[str],
                               eggs: Optional[str], travelingmerchant: Optional[str],
                               name: Optional[str]) -> None:
        if self._preference_service is None:
            await interaction.response.send_message("Registration is not available right now.", ephemeral=True)
            return

        recipient_id = str(interaction.user.id)
        display_name = name or interaction.user.display_name
        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            result = await self._preference_service.save_preferences(
                recipient_id, display_name, seeds, gear, eggs, travelingmerchant
            )
        except PreferenceValidationError as e:
            await interaction.followup.send(str(e), ephemeral=True)
            return

        await interaction.followup.send(
            f"Preferences saved ({result.mode}).\n\n{build_preferences_message(result.profile)}",
            ephemeral=True
        )

    async def _handle_stock(self, interaction: Interaction) -> None:
        user = self._find_registered_user(interaction)
        if user is None:
            await self._reply_unregistered(interaction)
            return
        report = self._stock_query.build_stock_report(user.display_name)
        await self._send_chunks(interaction, report)

    async def _handle_preferences(self, interaction: Interaction) -> None:
        user = self._find_registered_user(interaction)
        if user is None:
            await self._reply_unregistered(interaction)
            return
        await interaction.response.send_message(build_preferences_message(user), ephemeral=True)

    async def _handle_uid(self, interaction: Interaction) -> None:
        message = self._command_handler.build_uid_message(str(interaction.user.id))
        await interaction.response.send_message(message, ephemeral=True)

    def _find_registered_user(self, interaction: Interaction):
        if self._command_handler is None:
            return None
        return self._command_handler.user_repository.find_by_recipient_id(str(interaction.user.id))

    async def _reply_unregistered(self, interaction: Interaction) -> None:
        await interaction.response.send_message(
            "You are not registered yet. Use /register to choose the items you want alerts for.",
            ephemeral=True
        )

    async def _send_chunks(self, interaction: Interaction, content: str) -> None:
        chunks = split_message(content)
        await interaction.response.send_message(chunks[0], ephemeral=True)
        for chunk in chunks[1:]:
            await interaction.followup.send(chunk, ephemeral=True)
