"""
Pytest configuration and fixtures for testing.
"""
import pytest
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock

from gagwatch.database.connection import DatabaseConnection
from gagwatch.database.user_repository import UserRepository
from gagwatch.config.config_manager import ConfigManager
from gagwatch.models.stock_data import StockSnapshot, UserProfile
from gagwatch.services.clock import FixedClock
from gagwatch.services.error_handler import ErrorHandler
from gagwatch.services.snapshot_store import SnapshotStore

# 2025-06-15 07:05:00 UTC, 3:05 PM in Manila
START_MS = int(datetime(2025, 6, 15, 7, 5, tzinfo=timezone.utc).timestamp() * 1000)


def _build_snapshot(**categories) -> StockSnapshot:
    """Build a snapshot from ``category=[(name, quantity[, emoji]), ...]`` keyword args."""
    data = {}
    for category, items in categories.items():
        data[category] = {
            "items": [
                {"name": item[0], "quantity": item[1], **({"emoji": item[2]} if len(item) > 2 else {})}
                for item in items
            ]
        }
    return StockSnapshot.from_payload(data)


@pytest.fixture
def make_snapshot():
    """Factory building snapshots from (name, quantity[, emoji]) tuples."""
    return _build_snapshot


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    temp_dir = tempfile.TemporaryDirectory()
    db_path = Path(temp_dir.name) / "test_db.sqlite"

    db = DatabaseConnection(str(db_path))
    db.create_tables()

    yield db

    db.close()
    temp_dir.cleanup()


@pytest.fixture
def user_repository(temp_db):
    """User repository backed by the temporary database."""
    return UserRepository(temp_db)


@pytest.fixture
def config_manager():
    """Create a config manager with test settings."""
    config = ConfigManager()
    config.set('discord.token', 'test_token')
    config.set('discord.admin_id', '999')
    config.set('discord.sync_commands', False)
    config.set('web.interface_url', 'https://example.com/register')
    config.set('database.url', 'sqlite:///:memory:')
    config.set('logging.level', 'INFO')
    return config


@pytest.fixture
def fake_clock():
    """Clock frozen at START_MS."""
    return FixedClock(START_MS)


@pytest.fixture
def error_handler():
    """Fresh error handler instance."""
    return ErrorHandler()


@pytest.fixture
def snapshot_store():
    return SnapshotStore()


@pytest.fixture
def mock_dispatcher():
    """Dispatcher double recording sends."""
    dispatcher = AsyncMock()
    dispatcher.send = AsyncMock(return_value=True)
    dispatcher.dispatch = AsyncMock(return_value={'sent': 0, 'failed': 0})
    dispatcher.broadcast = AsyncMock(return_value={'sent': 0, 'failed': 0})
    return dispatcher


@pytest.fixture
def registered_user(user_repository):
    """A stored user watching Carrot."""
    profile, _ = user_repository.save_preferences(UserProfile(
        recipient_id="123",
        display_name="Juan",
        seeds=["Carrot"]
    ))
    return profile
