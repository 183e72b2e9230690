"""
Discord UI components (Views, Buttons, etc.) for the bot.
"""
import discord
from discord import ui


class RegistrationView(ui.View):
    """Link button pointing unregistered users at the registration page."""

    def __init__(self, interface_url: str):
        super().__init__(timeout=None)  # Persistent view
        self.interface_url = interface_url
        self.add_register_button()

    def add_register_button(self):
        """Add the Register Now link button."""
        button = ui.Button(
            label="Register Now",
            style=discord.ButtonStyle.link,
            emoji="📝",
            url=self.interface_url
        )
        self.add_item(button)
