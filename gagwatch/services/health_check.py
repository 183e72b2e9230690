"""
Health check endpoints for monitoring system status.
"""
import logging
import time
from typing import Any, Dict, Optional

from aiohttp import web

from .error_handler import ErrorHandler, error_handler as default_error_handler
from ..models.stock_data import utc_now


class HealthCheckServer:
    """Health check HTTP server for monitoring system status."""

    def __init__(self, host: str = '127.0.0.1', port: int = 8080,
                 error_handler: Optional[ErrorHandler] = None):
        """Initialize health check server."""
        self.host = host
        self.port = port
        self.app = web.Application()
        self.logger = logging.getLogger(__name__)
        self._error_handler = error_handler or default_error_handler
        self._runner: Optional[web.AppRunner] = None
        self._running = False
        self._started_at = time.monotonic()

        self.feed_client = None
        self.snapshot_store = None
        self.scheduler = None
        self.user_repository = None
        self.setup_routes()

    def attach(self, feed_client=None, snapshot_store=None, scheduler=None, user_repository=None) -> None:
        """Attach the components whose state is reported on /status."""
        self.feed_client = feed_client or self.feed_client
        self.snapshot_store = snapshot_store or self.snapshot_store
        self.scheduler = scheduler or self.scheduler
        self.user_repository = user_repository or self.user_repository

    def setup_routes(self) -> None:
        """Set up HTTP routes for health checks."""
        self.app.add_routes([
            web.get('/health', self.health_handler),
            web.get('/status', self.status_handler)
        ])

    async def health_handler(self, request: web.Request) -> web.Response:
        """Simple health check endpoint."""
        health_status = self._error_handler.get_health_status()

        response = {
            "status": health_status["status"],
            "timestamp": utc_now().isoformat()
        }

        status_code = 503 if health_status["status"] == "critical" else 200
        return web.json_response(response, status=status_code)

    async def status_handler(self, request: web.Request) -> web.Response:
        """System status endpoint."""
        try:
            return web.json_response(self.build_status())
        except Exception as e:
            self.logger.error(f"Error generating status: {e}")
            return web.json_response(
                {"error": "Failed to generate status", "message": str(e)},
                status=500
            )

    def build_status(self) -> Dict[str, Any]:
        health_status = self._error_handler.get_health_status()
        status: Dict[str, Any] = {
            "timestamp": utc_now().isoformat(),
            "uptime_seconds": round(time.monotonic() - self._started_at, 1),
            "system": {
                "status": health_status["status"],
                "components": health_status["components"]
            },
            "errors": self._error_handler.get_error_summary()
        }

        if self.feed_client is not None:
            status["feed"] = self.feed_client.get_status()
        if self.snapshot_store is not None:
            age = self.snapshot_store.age_seconds()
            status["snapshot"] = {
                "available": self.snapshot_store.is_available,
                "age_seconds": round(age, 1) if age is not None else None
            }
        if self.scheduler is not None:
            status["matching"] = self.scheduler.get_status()
        if self.user_repository is not None:
            status["users"] = self.user_repository.count_users()
        return status

    async def start(self) -> None:
        """Start the health check server."""
        if self._running:
            return

        try:
            self._runner = web.AppRunner(self.app)
            await self._runner.setup()
            site = web.TCPSite(self._runner, self.host, self.port)
            await site.start()
            self._running = True
            self.logger.info(f"Health check server started on http://{self.host}:{self.port}")
        except Exception as e:
            self.logger.error(f"Failed to start health check server: {e}")
            raise

    async def stop(self) -> None:
        """Stop the health check server."""
        if not self._running:
            return

        try:
            if self._runner:
                await self._runner.cleanup()
            self._running = False
            self.logger.info("Health check server stopped")
        except Exception as e:
            self.logger.error(f"Error stopping health check server: {e}")
