"""
In-memory key -> last-seen timestamp cache.

Shared by the cooldown ledger (24 hour window, persisted by the caller) and the
registration prompt throttle (5 minute window, process local). Expiry is checked
lazily on read; nothing is swept in the background.
"""
from threading import RLock
from typing import Dict, Optional

from .clock import Clock


class TimestampCache:
    """Thread-safe mapping of key to epoch milliseconds."""

    def __init__(self, clock: Clock, window_ms: int, entries: Optional[Dict[str, int]] = None):
        self.clock = clock
        self.window_ms = window_ms
        self._lock = RLock()
        self._entries: Dict[str, int] = dict(entries or {})

    def get(self, key: str) -> Optional[int]:
        with self._lock:
            return self._entries.get(key)

    def elapsed(self, key: str) -> Optional[int]:
        """Milliseconds since the key was last marked, or None if never marked."""
        with self._lock:
            last = self._entries.get(key)
        if last is None:
            return None
        return self.clock.now_ms() - last

    def is_expired(self, key: str) -> bool:
        """True when the key has no entry or its entry is strictly older than the window."""
        elapsed = self.elapsed(key)
        return elapsed is None or elapsed > self.window_ms

    def is_active(self, key: str) -> bool:
        """True when the key was marked less than one window ago."""
        elapsed = self.elapsed(key)
        return elapsed is not None and elapsed < self.window_ms

    def mark(self, key: str) -> int:
        """Record now for key; an existing later timestamp is kept."""
        now = self.clock.now_ms()
        with self._lock:
            current = self._entries.get(key)
            if current is None or now > current:
                self._entries[key] = now
            return self._entries[key]

    def clear(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def snapshot(self) -> Dict[str, int]:
        """Copy of all entries."""
        with self._lock:
            return dict(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
