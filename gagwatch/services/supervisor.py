"""
Owner of the long-running background tasks.
"""
import asyncio
import logging
from typing import Dict, Optional

from .feed_client import FeedClient
from .scheduler import NotificationScheduler


class Supervisor:
    """Starts the feed and scheduler tasks and cancels them together on shutdown."""

    def __init__(self, feed_client: FeedClient, scheduler: NotificationScheduler):
        self.feed_client = feed_client
        self.scheduler = scheduler
        self.logger = logging.getLogger(__name__)
        self._tasks: Dict[str, asyncio.Task] = {}

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks.values())

    async def start(self) -> None:
        if self.is_running:
            self.logger.warning("Supervisor already running")
            return

        self._tasks = {
            'feed': asyncio.create_task(self.feed_client.run(), name='stock-feed'),
            'scheduler': asyncio.create_task(self.scheduler.run(), name='notification-scheduler'),
        }
        for task in self._tasks.values():
            task.add_done_callback(self._on_task_done)
        self.logger.info("Background tasks started")

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(f"Background task {task.get_name()} crashed: {error}")

    async def stop(self, timeout: Optional[float] = 10.0) -> None:
        """Cancel every task and wait for them to finish."""
        if not self._tasks:
            return

        self.feed_client.stop()
        self.scheduler.stop()
        for task in self._tasks.values():
            task.cancel()

        done, pending = await asyncio.wait(list(self._tasks.values()), timeout=timeout)
        if pending:
            self.logger.warning(f"{len(pending)} background tasks did not stop in time")
        self._tasks = {}
        self.logger.info("Background tasks stopped")
