"""
Periodic matching of the current stock snapshot against user watchlists.
"""
import asyncio
import logging
from typing import List, Optional

from .clock import Clock
from .cooldown_ledger import CooldownLedger, DEFAULT_COOLDOWN_HOURS
from .error_handler import ErrorHandler, error_handler as default_error_handler
from .formatting import build_alert_message, format_item_line, format_timestamp, DEFAULT_BRAND_NAME
from .snapshot_store import SnapshotStore
from ..models.interfaces import IUserStore
from ..models.stock_data import (
    DispatchTask, MatchingRunResult, StockSnapshot, UserProfile, WatchCategory, utc_now
)


class LedgerWriteError(RuntimeError):
    """Raised when a user's cooldown ledger could not be persisted."""


class MatchingEngine:
    """
    Builds alert dispatch tasks from the latest snapshot.

    Each run reads the snapshot once and evaluates every user in isolation.
    A user only gets a dispatch task after their updated cooldown ledger has
    been written, so a failed write leaves them eligible on the next run.
    """

    def __init__(self, store: SnapshotStore, user_store: IUserStore, clock: Clock,
                 cooldown_hours: float = DEFAULT_COOLDOWN_HOURS,
                 brand_name: str = DEFAULT_BRAND_NAME,
                 error_handler: Optional[ErrorHandler] = None):
        self.store = store
        self.user_store = user_store
        self.clock = clock
        self.cooldown_hours = cooldown_hours
        self.brand_name = brand_name
        self.logger = logging.getLogger(__name__)
        self._error_handler = error_handler or default_error_handler
        self._run_lock = asyncio.Lock()
        self.last_result: Optional[MatchingRunResult] = None

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    async def run_cycle(self) -> MatchingRunResult:
        """Run one matching pass; a pass requested while another is active is skipped."""
        result = MatchingRunResult(started_at=utc_now())

        if self._run_lock.locked():
            self.logger.warning("Matching run already in progress, skipping this one")
            result.skipped_reason = "in_progress"
            return result

        async with self._run_lock:
            snapshot = self.store.get()
            if snapshot is None:
                self.logger.info("No stock snapshot available, skipping matching run")
                result.skipped_reason = "no_snapshot"
                self.last_result = result
                return result

            try:
                users = self.user_store.find_all()
            except Exception as e:
                await self._error_handler.handle_error(e, {"operation": "load_users"})
                result.skipped_reason = "user_store_unavailable"
                self.last_result = result
                return result

            for user in users:
                result.users_checked += 1
                try:
                    task = await self._process_user(user, snapshot)
                except Exception as e:
                    result.users_failed += 1
                    self.logger.error(f"Matching failed for user {user.recipient_id}: {e}")
                    await self._error_handler.handle_data_error(e, user.recipient_id)
                    continue
                if task is not None:
                    result.tasks.append(task)

            self.logger.info(
                f"Matching run complete: {result.users_checked} users checked, "
                f"{len(result.tasks)} alerts, {result.users_failed} failures"
            )
            self.last_result = result
            return result

    def match_user(self, user: UserProfile, snapshot: StockSnapshot,
                   ledger: CooldownLedger) -> List[str]:
        """Alert lines for a user, marking the ledger for every item included."""
        lines: List[str] = []
        for category in WatchCategory:
            watchlist = user.watchlist(category)
            if not watchlist:
                continue
            for item in snapshot.items(category.feed_key):
                if item.name in watchlist and ledger.should_notify(item):
                    lines.append(format_item_line(item))
                    ledger.mark(item.name)
        return lines

    async def _process_user(self, user: UserProfile, snapshot: StockSnapshot) -> Optional[DispatchTask]:
        ledger = CooldownLedger(user.cooldown_ledger, self.clock, self.cooldown_hours)
        lines = self.match_user(user, snapshot, ledger)
        if not lines:
            return None

        message = build_alert_message(
            user.display_name, lines, format_timestamp(self.clock.now()), self.brand_name
        )

        updated = ledger.to_dict()
        saved = self.user_store.upsert_cooldown_ledger(user.recipient_id, updated)
        if not saved:
            raise LedgerWriteError(f"Could not save cooldown ledger for {user.recipient_id}")

        user.cooldown_ledger = updated
        return DispatchTask(recipient_id=user.recipient_id, rendered_text=message)
