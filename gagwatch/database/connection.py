"""
Database connection management for SQLite.
"""
import sqlite3
import logging
from pathlib import Path
from typing import Optional, Tuple, List, Dict, Any
from datetime import datetime

from ..config.config_manager import config


class DatabaseConnection:
    """SQLite database connection manager."""

    def __init__(self, database_path: Optional[str] = None):
        """Initialize database connection manager."""
        self.logger = logging.getLogger(__name__)

        if database_path:
            self.database_path = database_path
        else:
            self.database_path = config.get_database_path()

        self.connection: Optional[sqlite3.Connection] = None
        self._ensure_directory_exists()

        sqlite3.register_adapter(datetime, lambda dt: dt.isoformat())
        sqlite3.register_converter("TIMESTAMP", lambda dt: datetime.fromisoformat(dt.decode()))

    def _ensure_directory_exists(self) -> None:
        """Ensure database directory exists."""
        if self.database_path == ':memory:':
            return
        Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> sqlite3.Connection:
        """Connect to the SQLite database."""
        if self.connection is None:
            try:
                self.connection = sqlite3.connect(
                    self.database_path,
                    detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
                    check_same_thread=False
                )
                self.connection.row_factory = sqlite3.Row
                self.logger.info(f"Connected to database: {self.database_path}")
            except sqlite3.Error as e:
                self.logger.error(f"Database connection error: {e}")
                raise

        return self.connection

    def close(self) -> None:
        """Close the database connection."""
        if self.connection:
            try:
                self.connection.close()
                self.connection = None
                self.logger.info("Database connection closed")
            except sqlite3.Error as e:
                self.logger.error(f"Error closing database connection: {e}")

    def execute(self, query: str, params: Tuple = ()) -> sqlite3.Cursor:
        """Execute a SQL query."""
        conn = self.connect()
        try:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor
        except sqlite3.Error as e:
            self.logger.error(f"Query execution error: {e}")
            self.logger.error(f"Query: {query}")
            raise

    def commit(self) -> None:
        """Commit the current transaction."""
        if self.connection:
            self.connection.commit()

    def rollback(self) -> None:
        """Rollback the current transaction."""
        if self.connection:
            try:
                self.connection.rollback()
            except sqlite3.Error as e:
                self.logger.error(f"Rollback error: {e}")
                raise

    def create_tables(self) -> None:
        """Create database tables if they don't exist."""
        try:
            # Registered users, watchlists and ledger stored as JSON text
            self.execute('''
                CREATE TABLE IF NOT EXISTS users (
                    recipient_id TEXT PRIMARY KEY,
                    display_name TEXT NOT NULL,
                    seeds TEXT NOT NULL DEFAULT '[]',
                    gear TEXT NOT NULL DEFAULT '[]',
                    eggs TEXT NOT NULL DEFAULT '[]',
                    travelingmerchant TEXT NOT NULL DEFAULT '[]',
                    cooldown_ledger TEXT NOT NULL DEFAULT '{}',
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            ''')

            self._create_indexes()
            self.commit()
            self.logger.info("Database tables created successfully")
        except sqlite3.Error as e:
            self.logger.error(f"Error creating tables: {e}")
            self.rollback()
            raise

    def _create_indexes(self) -> None:
        """Create database indexes for performance."""
        self.execute('CREATE INDEX IF NOT EXISTS idx_users_display_name ON users(display_name COLLATE NOCASE)')

    def run_migrations(self, version: int = None) -> int:
        """Run database migrations to update schema."""
        current_version = self._get_db_version()
        target_version = version or len(self._get_migrations())

        if current_version >= target_version:
            self.logger.info(f"Database already at version {current_version}, no migrations needed")
            return current_version

        self.logger.info(f"Running migrations from version {current_version} to {target_version}")

        migrations = self._get_migrations()
        for i in range(current_version, target_version):
            migration = migrations[i]
            self.logger.info(f"Running migration {i+1}: {migration['description']}")

            try:
                for query in migration['queries']:
                    self.execute(query)
                self.commit()
            except sqlite3.Error as e:
                self.logger.error(f"Migration {i+1} failed: {e}")
                self.rollback()
                raise

        self._set_db_version(target_version)
        self.logger.info(f"Database migrated to version {target_version}")
        return target_version

    def _get_db_version(self) -> int:
        """Get current database version."""
        self.execute('''
            CREATE TABLE IF NOT EXISTS db_version (
                version INTEGER PRIMARY KEY
            )
        ''')

        cursor = self.execute('SELECT version FROM db_version')
        row = cursor.fetchone()
        if row:
            return row[0]

        self.execute('INSERT INTO db_version (version) VALUES (0)')
        self.commit()
        return 0

    def _set_db_version(self, version: int) -> None:
        """Set current database version."""
        self.execute('UPDATE db_version SET version = ?', (version,))
        self.commit()

    def _get_migrations(self) -> List[Dict[str, Any]]:
        """Get list of migrations to apply."""
        return [
            {
                'description': 'Create users table',
                'queries': []  # Created by create_tables()
            },
            {
                'description': 'Backfill empty cooldown ledgers',
                'queries': [
                    "UPDATE users SET cooldown_ledger = '{}' WHERE cooldown_ledger IS NULL OR cooldown_ledger = ''"
                ]
            }
        ]


# Global database connection instance
db = DatabaseConnection()
