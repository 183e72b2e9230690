"""
Best-effort outbound message delivery.
"""
import asyncio
import logging
from typing import Dict, List, Optional

from discord import ui

from .error_handler import ErrorHandler, error_handler as default_error_handler
from ..models.interfaces import IDispatcher, IMessenger
from ..models.stock_data import DispatchTask

DEFAULT_SEND_TIMEOUT = 5.0


class Dispatcher(IDispatcher):
    """
    Sends messages through the messenger with a fixed timeout.

    A failed send is logged and recorded, then dropped. Nothing is retried and
    no failure reaches the caller.
    """

    def __init__(self, messenger: IMessenger, timeout: float = DEFAULT_SEND_TIMEOUT,
                 error_handler: Optional[ErrorHandler] = None):
        self.messenger = messenger
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        self._error_handler = error_handler or default_error_handler
        self.sent_count = 0
        self.failed_count = 0

    async def send(self, recipient_id: str, message: str, view: Optional[ui.View] = None) -> bool:
        """Send one message; returns False on any failure."""
        try:
            await asyncio.wait_for(
                self.messenger.send_direct_message(recipient_id, message, view=view),
                timeout=self.timeout
            )
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError as e:
            self.failed_count += 1
            self.logger.warning(f"Timed out after {self.timeout}s sending to {recipient_id}")
            await self._error_handler.handle_delivery_error(e, recipient_id)
            return False
        except Exception as e:
            self.failed_count += 1
            self.logger.warning(f"Failed to send message to {recipient_id}: {e}")
            await self._error_handler.handle_delivery_error(e, recipient_id)
            return False

        self.sent_count += 1
        self.logger.debug(f"Message delivered to {recipient_id}")
        return True

    async def dispatch(self, tasks: List[DispatchTask]) -> Dict[str, int]:
        """Send every task concurrently and report how many succeeded."""
        if not tasks:
            return {'sent': 0, 'failed': 0}

        results = await asyncio.gather(
            *(self.send(task.recipient_id, task.rendered_text) for task in tasks)
        )
        sent = sum(1 for ok in results if ok)
        summary = {'sent': sent, 'failed': len(results) - sent}
        self.logger.info(f"Dispatched {len(tasks)} messages: {summary['sent']} sent, {summary['failed']} failed")
        return summary

    async def broadcast(self, recipient_ids: List[str], message: str) -> Dict[str, int]:
        """Send the same message to many recipients."""
        return await self.dispatch([DispatchTask(recipient_id=r, rendered_text=message) for r in recipient_ids])
