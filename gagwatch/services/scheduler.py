"""
Wall-clock aligned scheduler for matching runs.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, Optional

from .clock import Clock
from .dispatcher import Dispatcher
from .matching_engine import MatchingEngine


def next_run_after(moment: datetime, interval_minutes: int = 5) -> datetime:
    """First multiple of interval_minutes past the hour strictly after moment."""
    minutes_into_slot = moment.minute % interval_minutes
    slot_start = moment.replace(second=0, microsecond=0) - timedelta(minutes=minutes_into_slot)
    return slot_start + timedelta(minutes=interval_minutes)


def seconds_until_next_run(now: datetime, interval_minutes: int = 5) -> float:
    """Seconds from now to the next multiple of interval_minutes past the hour."""
    return (next_run_after(now, interval_minutes) - now).total_seconds()


class NotificationScheduler:
    """Runs matching then dispatch at :00, :05, ... :55 of the display clock."""

    def __init__(self, engine: MatchingEngine, dispatcher: Dispatcher, clock: Clock,
                 interval_minutes: int = 5,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.engine = engine
        self.dispatcher = dispatcher
        self.clock = clock
        self.interval_minutes = interval_minutes
        self.logger = logging.getLogger(__name__)
        self._sleep = sleep
        self._running = False
        self.runs_completed = 0
        self.last_run_at: Optional[datetime] = None
        self.last_summary: Dict[str, Any] = {}

    async def tick(self) -> Dict[str, Any]:
        """Run one matching cycle and send its alerts."""
        result = await self.engine.run_cycle()
        delivery = await self.dispatcher.dispatch(result.tasks)

        self.runs_completed += 1
        self.last_run_at = self.clock.now()
        self.last_summary = {**result.to_dict(), **delivery}
        return self.last_summary

    async def run(self) -> None:
        """Tick on every aligned boundary until stopped or cancelled."""
        self._running = True
        self.logger.info(f"Notification scheduler started ({self.interval_minutes} minute interval)")
        try:
            last_target: Optional[datetime] = None
            while self._running:
                now = self.clock.now()
                # An early wake-up must not schedule the same boundary twice
                reference = now if last_target is None or now > last_target else last_target
                target = next_run_after(reference, self.interval_minutes)
                delay = (target - now).total_seconds()
                self.logger.debug(f"Next matching run in {delay:.1f}s")
                await self._sleep(delay)
                last_target = target
                if not self._running:
                    break
                try:
                    await self.tick()
                except Exception as e:
                    # One bad run must not stop the schedule
                    self.logger.error(f"Scheduled matching run failed: {e}", exc_info=True)
        finally:
            self._running = False
            self.logger.info("Notification scheduler stopped")

    def stop(self) -> None:
        self._running = False

    def get_status(self) -> Dict[str, Any]:
        return {
            'interval_minutes': self.interval_minutes,
            'runs_completed': self.runs_completed,
            'last_run_at': self.last_run_at.isoformat() if self.last_run_at else None,
            'last_run': self.last_summary
        }
