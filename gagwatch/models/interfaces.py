"""
Base interfaces for the notification system components.
"""
from abc import ABC, abstractmethod
from typing import List, Dict, Optional, Any

from discord import ui

from .stock_data import UserProfile, DispatchTask


class IUserStore(ABC):
    """Interface for user profile persistence."""

    @abstractmethod
    def find_all(self) -> List[UserProfile]:
        """Load every registered user profile."""
        pass

    @abstractmethod
    def find_by_recipient_id(self, recipient_id: str) -> Optional[UserProfile]:
        """Load one user profile by recipient id."""
        pass

    @abstractmethod
    def upsert_cooldown_ledger(self, recipient_id: str, ledger: Dict[str, int]) -> bool:
        """Persist a user's whole cooldown ledger in one write."""
        pass


class IMessenger(ABC):
    """Interface for the outbound messaging platform."""

    @abstractmethod
    async def send_direct_message(self, recipient_id: str, content: str,
                                  view: Optional[ui.View] = None) -> None:
        """Send a direct message to a recipient, raising on failure."""
        pass


class IDispatcher(ABC):
    """Interface for best-effort message dispatch."""

    @abstractmethod
    async def send(self, recipient_id: str, message: str, view: Optional[ui.View] = None) -> bool:
        """Send one message; never raises."""
        pass

    @abstractmethod
    async def dispatch(self, tasks: List[DispatchTask]) -> Dict[str, int]:
        """Send a batch of dispatch tasks concurrently."""
        pass


class IConfigManager(ABC):
    """Interface for configuration management."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Set configuration value."""
        pass

    @abstractmethod
    def load_config(self, config_path: str) -> None:
        """Load configuration from file."""
        pass

    @abstractmethod
    def save_config(self, config_path: str) -> None:
        """Save configuration to file."""
        pass
