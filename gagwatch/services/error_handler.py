"""
Centralized error handling for the GAG Drop Watch bot.

Errors are categorized, counted and logged here, and each category feeds the
health status of one component. Handlers never raise: the caller has already
decided how to recover (discard a feed message, skip a user, drop a send).
"""
import logging
import traceback
import asyncio
import time
import sqlite3
from typing import Dict, Any, Optional, Tuple, Callable, Awaitable, List
from enum import Enum

import aiohttp
import discord

from ..config.environment import Environment
from ..models.stock_data import utc_now


class ErrorCategory(Enum):
    """Error categories for classification and handling."""
    FEED = "feed"
    DELIVERY = "delivery"
    DATA = "data"
    DATABASE = "database"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Error severity levels for prioritization."""
    CRITICAL = "critical"  # System cannot function
    HIGH = "high"          # Major feature broken
    MEDIUM = "medium"      # Feature degraded but working
    LOW = "low"            # Minor issue
    INFO = "info"


class ErrorHandler:
    """Error counting, logging and component health tracking."""

    COMPONENTS = ("feed", "delivery", "database", "matching")

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._error_counts: Dict[str, int] = {}
        self._last_errors: Dict[str, Dict[str, Any]] = {}
        self._error_callbacks: Dict[ErrorCategory, List[Callable]] = {
            category: [] for category in ErrorCategory
        }
        self._health_status = {
            "status": "healthy",
            "last_check": utc_now().isoformat(),
            "components": {
                component: {"status": "healthy", "last_error": None}
                for component in self.COMPONENTS
            }
        }

    def register_error_callback(self, category: ErrorCategory,
                                callback: Callable[[Exception, Dict[str, Any]], Awaitable[None]]) -> None:
        """Register a callback for a specific error category."""
        self._error_callbacks[category].append(callback)

    async def _execute_callbacks(self, category: ErrorCategory,
                                 error: Exception, context: Dict[str, Any]) -> None:
        for callback in self._error_callbacks.get(category, []):
            try:
                await callback(error, context)
            except Exception as callback_error:
                self.logger.error(f"Error in callback for {category.value}: {callback_error}")

    def _categorize_error(self, error: Exception) -> Tuple[ErrorCategory, ErrorSeverity]:
        """Categorize an error by type and determine severity."""
        if isinstance(error, discord.LoginFailure):
            return ErrorCategory.CONFIGURATION, ErrorSeverity.CRITICAL

        if isinstance(error, (discord.Forbidden, discord.NotFound)):
            return ErrorCategory.DELIVERY, ErrorSeverity.LOW

        if isinstance(error, discord.DiscordException):
            return ErrorCategory.DELIVERY, ErrorSeverity.MEDIUM

        if isinstance(error, (aiohttp.ClientError, ConnectionError, asyncio.TimeoutError)):
            return ErrorCategory.FEED, ErrorSeverity.MEDIUM

        if isinstance(error, sqlite3.Error):
            return ErrorCategory.DATABASE, ErrorSeverity.HIGH

        if isinstance(error, (KeyError, TypeError, ValueError)):
            return ErrorCategory.DATA, ErrorSeverity.LOW

        return ErrorCategory.UNKNOWN, ErrorSeverity.MEDIUM

    def _map_category_to_component(self, category: ErrorCategory) -> str:
        """Map error category to health check component."""
        mapping = {
            ErrorCategory.FEED: "feed",
            ErrorCategory.DELIVERY: "delivery",
            ErrorCategory.DATABASE: "database",
            ErrorCategory.DATA: "matching",
            ErrorCategory.CONFIGURATION: "matching",
            ErrorCategory.UNKNOWN: "matching"
        }
        return mapping.get(category, "matching")

    def _format_error_context(self, error: Exception, context: Dict[str, Any],
                              category: ErrorCategory, severity: ErrorSeverity) -> Dict[str, Any]:
        error_id = f"{int(time.time())}-{hash(str(error)) % 10000}"
        return {
            "error_id": error_id,
            "timestamp": utc_now().isoformat(),
            "category": category.value,
            "severity": severity.value,
            "error_type": error.__class__.__name__,
            "error_message": str(error),
            "traceback": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
            "context": {k: str(v) for k, v in context.items()},
            "environment": Environment.get_env()
        }

    def _record_error(self, error: Exception, context: Dict[str, Any],
                      category: ErrorCategory, severity: ErrorSeverity) -> Dict[str, Any]:
        """Count, remember and log an error, and update component health."""
        error_data = self._format_error_context(error, context, category, severity)

        error_key = f"{category.value}:{error.__class__.__name__}"
        self._error_counts[error_key] = self._error_counts.get(error_key, 0) + 1
        self._last_errors[category.value] = error_data

        component = self._map_category_to_component(category)
        if severity == ErrorSeverity.CRITICAL:
            component_status = "critical"
        elif severity == ErrorSeverity.HIGH:
            component_status = "degraded"
        else:
            component_status = "warning"
        self._health_status["components"][component] = {
            "status": component_status,
            "last_error": error_data["timestamp"]
        }

        details = ", ".join(f"{k}={v}" for k, v in error_data["context"].items())
        log_message = f"[{error_data['error_id']}] {category.value.upper()} ERROR: {error}"
        if details:
            log_message = f"{log_message} ({details})"

        if severity == ErrorSeverity.CRITICAL:
            self.logger.critical(log_message)
        elif severity == ErrorSeverity.HIGH:
            self.logger.error(log_message)
        elif severity == ErrorSeverity.MEDIUM:
            self.logger.warning(log_message)
        else:
            self.logger.info(log_message)

        return error_data

    async def handle_feed_error(self, error: Exception, feed_url: str) -> Dict[str, Any]:
        """Handle a connection or message error from the stock feed."""
        context = {"feed_url": feed_url}
        _, severity = self._categorize_error(error)
        error_data = self._record_error(error, context, ErrorCategory.FEED, severity)
        await self._execute_callbacks(ErrorCategory.FEED, error, context)
        return error_data

    async def handle_delivery_error(self, error: Exception, recipient_id: str) -> Dict[str, Any]:
        """Handle a failed outbound message."""
        context = {"recipient_id": recipient_id}
        _, severity = self._categorize_error(error)
        error_data = self._record_error(error, context, ErrorCategory.DELIVERY, severity)
        await self._execute_callbacks(ErrorCategory.DELIVERY, error, context)
        return error_data

    async def handle_data_error(self, error: Exception, recipient_id: str) -> Dict[str, Any]:
        """Handle a per-user failure during a matching run."""
        context = {"recipient_id": recipient_id}
        category, severity = self._categorize_error(error)
        # Storage failures keep their own category so database health reflects them
        if category != ErrorCategory.DATABASE:
            category = ErrorCategory.DATA
        error_data = self._record_error(error, context, category, severity)
        await self._execute_callbacks(category, error, context)
        return error_data

    async def handle_error(self, error: Exception, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Generic error handler for uncategorized errors."""
        if context is None:
            context = {}
        category, severity = self._categorize_error(error)
        error_data = self._record_error(error, context, category, severity)
        await self._execute_callbacks(category, error, context)
        return error_data

    def mark_healthy(self, component: str) -> None:
        """Reset a component to healthy, e.g. after a feed reconnect."""
        if component in self._health_status["components"]:
            self._health_status["components"][component]["status"] = "healthy"

    def get_error_summary(self) -> Dict[str, Any]:
        """Get summary of recent errors."""
        return {
            "counts": dict(self._error_counts),
            "last_errors": {
                category: {k: v for k, v in data.items() if k != "traceback"}
                for category, data in self._last_errors.items()
            },
            "total_errors": sum(self._error_counts.values())
        }

    def get_health_status(self) -> Dict[str, Any]:
        """Get system health status."""
        self._health_status["last_check"] = utc_now().isoformat()

        component_statuses = [c["status"] for c in self._health_status["components"].values()]
        if "critical" in component_statuses:
            self._health_status["status"] = "critical"
        elif "degraded" in component_statuses:
            self._health_status["status"] = "degraded"
        elif "warning" in component_statuses:
            self._health_status["status"] = "warning"
        else:
            self._health_status["status"] = "healthy"

        return self._health_status

    def reset_error_counts(self) -> None:
        """Reset error counters."""
        self._error_counts = {}


# Global error handler instance
error_handler = ErrorHandler()
