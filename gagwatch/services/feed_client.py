"""
Live stock feed client.

Holds one websocket connection to the stock feed, keeps it alive with a
periodic text ping, and swaps every valid payload into the snapshot store.
When the connection drops the store is cleared and a new connection is
attempted after a fixed delay, forever.
"""
import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp
from aiohttp import WSMsgType

from .snapshot_store import SnapshotStore
from .error_handler import ErrorHandler, error_handler as default_error_handler
from ..models.stock_data import StockSnapshot

DEFAULT_FEED_URL = "wss://gagstock.gleeze.com"
KEEPALIVE_MESSAGE = "ping"


class FeedClient:
    """Resilient websocket consumer for the stock feed."""

    def __init__(self, store: SnapshotStore, url: str = DEFAULT_FEED_URL,
                 keepalive_interval: float = 10, reconnect_delay: float = 3,
                 session_factory: Optional[Callable[[], aiohttp.ClientSession]] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
                 error_handler: Optional[ErrorHandler] = None):
        self.store = store
        self.url = url
        self.keepalive_interval = keepalive_interval
        self.reconnect_delay = reconnect_delay
        self.logger = logging.getLogger(__name__)
        self._session_factory = session_factory or aiohttp.ClientSession
        self._sleep = sleep
        self._error_handler = error_handler or default_error_handler
        self._running = False
        self._task: Optional[asyncio.Task] = None

        # Counters exposed on the status endpoint
        self.connection_attempts = 0
        self.active_connections = 0
        self.messages_accepted = 0
        self.messages_discarded = 0
        self.last_message_at: Optional[datetime] = None

    @classmethod
    def from_config(cls, store: SnapshotStore, config, **kwargs) -> 'FeedClient':
        """Build a client from the ``feed`` configuration section."""
        feed_config = config.get_feed_config()
        return cls(
            store,
            url=feed_config.get('url', DEFAULT_FEED_URL),
            keepalive_interval=feed_config.get('keepalive_interval', 10),
            reconnect_delay=feed_config.get('reconnect_delay', 3),
            **kwargs
        )

    @property
    def is_connected(self) -> bool:
        return self.active_connections > 0

    async def run(self) -> None:
        """Connect, consume, and reconnect until stopped or cancelled."""
        self._running = True
        self._task = asyncio.current_task()
        self.logger.info(f"Starting stock feed client for {self.url}")
        try:
            while self._running:
                await self._connect_once()
                self.store.clear()
                if not self._running:
                    break
                self.logger.info(f"Reconnecting to stock feed in {self.reconnect_delay}s")
                await self._sleep(self.reconnect_delay)
        finally:
            self._running = False
            self._task = None
            self.store.clear()
            self.logger.info("Stock feed client stopped")

    def stop(self) -> None:
        """Stop the loop, interrupting an open connection or a pending reconnect delay."""
        self._running = False
        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _connect_once(self) -> None:
        """Run a single connection until it closes or errors."""
        self.connection_attempts += 1
        keepalive_task: Optional[asyncio.Task] = None
        try:
            async with self._session_factory() as session:
                async with session.ws_connect(self.url) as ws:
                    self.active_connections += 1
                    try:
                        self.logger.info("Stock feed connected")
                        self._error_handler.mark_healthy("feed")
                        keepalive_task = asyncio.create_task(self._keepalive(ws))

                        async for msg in ws:
                            if msg.type == WSMsgType.TEXT:
                                self.handle_message(msg.data)
                            elif msg.type == WSMsgType.ERROR:
                                self.logger.warning(f"Stock feed error frame: {ws.exception()}")
                                break
                            elif msg.type in (WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED):
                                break
                        self.logger.warning("Stock feed connection closed")
                    finally:
                        self.active_connections -= 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await self._error_handler.handle_feed_error(e, self.url)
        finally:
            if keepalive_task is not None:
                keepalive_task.cancel()
                try:
                    await keepalive_task
                except asyncio.CancelledError:
                    pass

    async def _keepalive(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Send the keep-alive text frame on a fixed interval while the socket is open."""
        while not ws.closed:
            await asyncio.sleep(self.keepalive_interval)
            if ws.closed:
                break
            try:
                await ws.send_str(KEEPALIVE_MESSAGE)
            except (ConnectionError, RuntimeError, aiohttp.ClientError) as e:
                self.logger.debug(f"Keep-alive send failed: {e}")
                break

    def handle_message(self, raw: str) -> bool:
        """
        Process one text frame.

        Returns True when the frame produced a new snapshot. Anything else is
        logged and dropped; the current snapshot stays as it was.
        """
        try:
            payload: Dict[str, Any] = json.loads(raw)
        except (TypeError, ValueError) as e:
            return self._discard(f"invalid JSON ({e})")

        if not isinstance(payload, dict):
            return self._discard("payload is not an object")
        if payload.get('status') != 'success':
            return self._discard(f"status {payload.get('status')!r}")
        if payload.get('data') is None:
            return self._discard("no data")

        try:
            snapshot = StockSnapshot.from_payload(payload['data'])
        except (ValueError, TypeError, OverflowError) as e:
            return self._discard(str(e))

        self.store.set(snapshot)
        self.messages_accepted += 1
        self.last_message_at = snapshot.received_at
        self.logger.debug(f"Stock snapshot updated with {len(snapshot.categories)} categories")
        return True

    def _discard(self, reason: str) -> bool:
        self.messages_discarded += 1
        self.logger.warning(f"Discarding stock feed message: {reason}")
        return False

    def get_status(self) -> Dict[str, Any]:
        """Counters for the status endpoint."""
        return {
            'url': self.url,
            'connected': self.is_connected,
            'connection_attempts': self.connection_attempts,
            'messages_accepted': self.messages_accepted,
            'messages_discarded': self.messages_discarded,
            'last_message_at': self.last_message_at.isoformat() if self.last_message_at else None
        }
