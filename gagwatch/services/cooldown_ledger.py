"""
Per-user, per-item notification cooldown.
"""
from typing import Dict, Optional

from .clock import Clock
from .timestamp_cache import TimestampCache
from ..models.stock_data import StockItem

DEFAULT_COOLDOWN_HOURS = 24


class CooldownLedger:
    """
    Working copy of one user's cooldown ledger for a single matching run.

    The ledger is loaded from the user's profile, consulted and marked while the
    run builds the user's alert, then written back as a whole by the caller.
    The profile's own dict is never mutated, so a failed write leaves the
    persisted ledger untouched.
    """

    def __init__(self, entries: Optional[Dict[str, int]], clock: Clock,
                 cooldown_hours: float = DEFAULT_COOLDOWN_HOURS):
        self._cache = TimestampCache(clock, int(cooldown_hours * 3600 * 1000), entries)

    def should_notify(self, item: StockItem) -> bool:
        """True if the item is in stock and its cooldown has fully elapsed."""
        if item.quantity <= 0:
            return False
        return self._cache.is_expired(item.name)

    def mark(self, item_name: str) -> None:
        """Record that item_name was just used to trigger a notification."""
        self._cache.mark(item_name)

    def last_notified(self, item_name: str) -> Optional[int]:
        return self._cache.get(item_name)

    def to_dict(self) -> Dict[str, int]:
        """Ledger contents ready to persist."""
        return self._cache.snapshot()
