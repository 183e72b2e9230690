"""
Wall clock used by the cooldown and scheduling code.
"""
import time
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo


class Clock:
    """Current time in epoch milliseconds plus a fixed display time zone."""

    def __init__(self, display_timezone: str = 'Asia/Manila'):
        self.display_timezone = ZoneInfo(display_timezone)

    def now_ms(self) -> int:
        """Current time as integer epoch milliseconds."""
        return int(time.time() * 1000)

    def now(self) -> datetime:
        """Current time in the display time zone."""
        return self.from_ms(self.now_ms())

    def from_ms(self, timestamp_ms: int) -> datetime:
        """Convert epoch milliseconds to an aware datetime in the display time zone."""
        return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).astimezone(self.display_timezone)


class FixedClock(Clock):
    """Clock frozen at a settable instant. Used by tests and replays."""

    def __init__(self, start_ms: int = 0, display_timezone: str = 'Asia/Manila'):
        super().__init__(display_timezone)
        self._now_ms = start_ms

    def now_ms(self) -> int:
        return self._now_ms

    def set(self, timestamp_ms: int) -> None:
        self._now_ms = timestamp_ms

    def advance(self, seconds: float = 0, minutes: float = 0, hours: float = 0,
                milliseconds: Optional[int] = None) -> None:
        """Move the clock forward."""
        delta = int((seconds + minutes * 60 + hours * 3600) * 1000)
        if milliseconds is not None:
            delta += milliseconds
        self._now_ms += delta
