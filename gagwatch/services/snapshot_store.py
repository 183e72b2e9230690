"""
Single-slot holder for the latest stock snapshot.
"""
import logging
import threading
from datetime import datetime
from typing import Optional

from ..models.stock_data import StockSnapshot, utc_now


class SnapshotStore:
    """
    Last-known-good snapshot shared between the feed client and its readers.

    Readers see either a complete snapshot or None. The reference is replaced in
    one assignment so a read never observes a half-written value and never blocks.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._snapshot: Optional[StockSnapshot] = None
        self._updated_at: Optional[datetime] = None

    def get(self) -> Optional[StockSnapshot]:
        """Current snapshot, or None while unavailable."""
        return self._snapshot

    def set(self, snapshot: StockSnapshot) -> None:
        """Replace the current snapshot."""
        with self._lock:
            self._snapshot = snapshot
            self._updated_at = utc_now()

    def clear(self) -> None:
        """Mark the snapshot unavailable."""
        with self._lock:
            if self._snapshot is not None:
                self.logger.info("Stock snapshot cleared")
            self._snapshot = None
            self._updated_at = utc_now()

    @property
    def is_available(self) -> bool:
        return self._snapshot is not None

    @property
    def updated_at(self) -> Optional[datetime]:
        return self._updated_at

    def age_seconds(self) -> Optional[float]:
        """Seconds since the current snapshot was received, None while unavailable."""
        snapshot = self._snapshot
        if snapshot is None:
            return None
        return (utc_now() - snapshot.received_at).total_seconds()
