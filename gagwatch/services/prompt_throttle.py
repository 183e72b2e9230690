"""
Throttle for registration prompts sent to unregistered users.
"""
import logging

from .clock import Clock
from .timestamp_cache import TimestampCache

DEFAULT_PROMPT_COOLDOWN_SECONDS = 300


class RegistrationPromptThrottle:
    """Allow at most one registration prompt per recipient per cooldown window."""

    def __init__(self, clock: Clock, cooldown_seconds: float = DEFAULT_PROMPT_COOLDOWN_SECONDS):
        self.logger = logging.getLogger(__name__)
        self._cache = TimestampCache(clock, int(cooldown_seconds * 1000))

    def try_prompt(self, recipient_id: str) -> bool:
        """
        Decide whether a prompt may be sent now.

        Returns False while the previous prompt is younger than the window.
        Otherwise records the attempt and returns True. The caller must already
        have validated recipient_id.
        """
        if self._cache.is_active(recipient_id):
            self.logger.debug(f"Registration prompt for {recipient_id} suppressed")
            return False
        self._cache.mark(recipient_id)
        return True

    def clear(self, recipient_id: str) -> None:
        """Forget a recipient, typically right after they register."""
        self._cache.clear(recipient_id)

    def __len__(self) -> int:
        return len(self._cache)
