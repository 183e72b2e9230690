"""
Registration and preference updates.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from .dispatcher import Dispatcher
from .formatting import build_confirmation_message, DEFAULT_BRAND_NAME
from .prompt_throttle import RegistrationPromptThrottle
from ..database.user_repository import UserRepository
from ..models.stock_data import UserProfile, is_valid_recipient_id, normalize_item_names


class PreferenceValidationError(ValueError):
    """Raised when submitted preferences are rejected."""


@dataclass
class PreferenceSaveResult:
    """Outcome of a preference submission."""
    profile: UserProfile
    mode: str  # "New" or "Edit Mode"
    confirmation_sent: bool


class PreferenceService:
    """Validates, stores and confirms watchlist submissions."""

    def __init__(self, user_repository: UserRepository, throttle: RegistrationPromptThrottle,
                 dispatcher: Dispatcher, brand_name: str = DEFAULT_BRAND_NAME):
        self.user_repository = user_repository
        self.throttle = throttle
        self.dispatcher = dispatcher
        self.brand_name = brand_name
        self.logger = logging.getLogger(__name__)

    async def save_preferences(self, recipient_id: str, name: str, seeds: Any = None,
                               gear: Any = None, eggs: Any = None,
                               travelingmerchant: Any = None) -> PreferenceSaveResult:
        """
        Create or update a user's watchlists and send them a confirmation.

        Raises PreferenceValidationError for bad input and RuntimeError when the
        profile could not be stored.
        """
        recipient_id = (recipient_id or "").strip()
        name = (name or "").strip()

        if not is_valid_recipient_id(recipient_id):
            raise PreferenceValidationError("Invalid UID format. Please enter a numeric UID.")
        if not name:
            raise PreferenceValidationError("Name is required.")

        profile = UserProfile(
            recipient_id=recipient_id,
            display_name=name,
            seeds=normalize_item_names(seeds),
            gear=normalize_item_names(gear),
            eggs=normalize_item_names(eggs),
            travelingmerchant=normalize_item_names(travelingmerchant)
        )
        if not profile.has_preferences():
            raise PreferenceValidationError("Please select at least one preference.")

        stored, created = self.user_repository.save_preferences(profile)
        if stored is None:
            raise RuntimeError("Failed to save preferences. Please try again.")

        self.throttle.clear(recipient_id)
        mode = "New" if created else "Edit Mode"
        self.logger.info(f"Saved preferences for {recipient_id} ({mode})")

        sent = await self.dispatcher.send(
            recipient_id, build_confirmation_message(stored, mode, self.brand_name)
        )
        return PreferenceSaveResult(profile=stored, mode=mode, confirmation_sent=sent)

    def get_preferences(self, recipient_id: str) -> Optional[UserProfile]:
        if not is_valid_recipient_id(recipient_id):
            return None
        return self.user_repository.find_by_recipient_id(recipient_id)
