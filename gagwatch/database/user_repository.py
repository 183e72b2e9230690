"""
Repository for registered users and their cooldown ledgers.
"""
import json
import logging
from typing import Dict, List, Optional, Tuple

from .connection import db as default_db, DatabaseConnection
from ..models.interfaces import IUserStore
from ..models.stock_data import UserProfile, WatchCategory, utc_now


class UserRepository(IUserStore):
    """SQLite-backed user store."""

    def __init__(self, database: Optional[DatabaseConnection] = None):
        self.logger = logging.getLogger(__name__)
        self.db = database or default_db

    def _row_to_dict(self, row) -> Optional[dict]:
        """Convert a SQLite Row to a dictionary."""
        if row is None:
            return None
        return {key: row[key] for key in row.keys()}

    def _row_to_profile(self, row) -> UserProfile:
        return UserProfile.from_dict(self._row_to_dict(row))

    def find_all(self) -> List[UserProfile]:
        """
        Load every user.

        Rows that cannot be decoded are logged and skipped so one corrupt
        record never hides the rest. Database errors propagate to the caller.
        """
        cursor = self.db.execute('SELECT * FROM users ORDER BY created_at')
        users = []
        for row in cursor.fetchall():
            try:
                users.append(self._row_to_profile(row))
            except (ValueError, TypeError, KeyError, AttributeError) as e:
                self.logger.error(f"Skipping malformed user row {row['recipient_id']}: {e}")
        return users

    def find_by_recipient_id(self, recipient_id: str) -> Optional[UserProfile]:
        """Get a user by recipient id, None when missing or unreadable."""
        try:
            cursor = self.db.execute('SELECT * FROM users WHERE recipient_id = ?', (recipient_id,))
            row = cursor.fetchone()
            if row is None:
                return None
            return self._row_to_profile(row)
        except Exception as e:
            self.logger.error(f"Error getting user {recipient_id}: {e}")
            return None

    def upsert_cooldown_ledger(self, recipient_id: str, ledger: Dict[str, int]) -> bool:
        """Replace a user's cooldown ledger in one statement."""
        try:
            cursor = self.db.execute(
                'UPDATE users SET cooldown_ledger = ?, updated_at = ? WHERE recipient_id = ?',
                (json.dumps(ledger), utc_now().isoformat(), recipient_id)
            )
            self.db.commit()
            if cursor.rowcount == 0:
                self.logger.warning(f"No user {recipient_id} to update cooldown ledger for")
                return False
            return True
        except Exception as e:
            self.logger.error(f"Error updating cooldown ledger for {recipient_id}: {e}")
            self.db.rollback()
            return False

    def save_preferences(self, profile: UserProfile) -> Tuple[Optional[UserProfile], bool]:
        """
        Insert or update a user's name and watchlists.

        An existing cooldown ledger and creation time are preserved. Returns the
        stored profile and whether it was newly created, or (None, False) on error.
        """
        if not profile.validate():
            self.logger.error(f"Invalid user profile: {profile.recipient_id!r}")
            return None, False

        try:
            existing = self.find_by_recipient_id(profile.recipient_id)
            now = utc_now()
            watchlists = tuple(json.dumps(profile.watchlist(c)) for c in WatchCategory)

            if existing is None:
                self.db.execute(
                    '''
                    INSERT INTO users (
                        recipient_id, display_name, seeds, gear, eggs,
                        travelingmerchant, cooldown_ledger, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ''',
                    (profile.recipient_id, profile.display_name, *watchlists,
                     json.dumps(profile.cooldown_ledger), now.isoformat(), now.isoformat())
                )
            else:
                self.db.execute(
                    '''
                    UPDATE users SET
                        display_name = ?, seeds = ?, gear = ?, eggs = ?,
                        travelingmerchant = ?, updated_at = ?
                    WHERE recipient_id = ?
                    ''',
                    (profile.display_name, *watchlists, now.isoformat(), profile.recipient_id)
                )
            self.db.commit()
        except Exception as e:
            self.logger.error(f"Error saving preferences for {profile.recipient_id}: {e}")
            self.db.rollback()
            return None, False

        return self.find_by_recipient_id(profile.recipient_id), existing is None

    def delete_user(self, recipient_id: str) -> Optional[str]:
        """
        Delete a user row, returning the deleted display name or None if there was no row.

        Works on rows whose watchlists or ledger can no longer be decoded.
        """
        try:
            row = self.db.execute(
                'SELECT display_name FROM users WHERE recipient_id = ?', (recipient_id,)
            ).fetchone()
            cursor = self.db.execute('DELETE FROM users WHERE recipient_id = ?', (recipient_id,))
            self.db.commit()
        except Exception as e:
            self.logger.error(f"Error deleting user {recipient_id}: {e}")
            self.db.rollback()
            return None

        if cursor.rowcount == 0:
            return None
        return row["display_name"] if row is not None else recipient_id

    def list_users(self) -> List[UserProfile]:
        """All users sorted by display name, case-insensitively."""
        try:
            users = self.find_all()
        except Exception as e:
            self.logger.error(f"Error listing users: {e}")
            return []
        return sorted(users, key=lambda u: u.display_name.lower())

    def count_users(self) -> int:
        try:
            cursor = self.db.execute('SELECT COUNT(*) FROM users')
            return cursor.fetchone()[0]
        except Exception as e:
            self.logger.error(f"Error counting users: {e}")
            return 0
