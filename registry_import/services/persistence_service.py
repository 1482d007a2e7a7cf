"""
This module defines the PersistenceService, the SQLite-backed address store.
"""

import json
import sqlite3
import threading
from typing import Any, Dict, List, Optional

from ..config import ADDRESS_DB_PATH
from ..models import PersistedAddress


class PersistenceService:
    """Handles all database interactions for the address catalog."""

    def __init__(self, db_path: str = ADDRESS_DB_PATH):
        self.db_path = db_path
        # sqlite3 connections are per thread, so the open connection is too
        self._local = threading.local()

    @property
    def _conn(self) -> Optional[sqlite3.Connection]:
        return getattr(self._local, "conn", None)

    @_conn.setter
    def _conn(self, value: Optional[sqlite3.Connection]) -> None:
        self._local.conn = value

    @property
    def _cursor(self) -> Optional[sqlite3.Cursor]:
        return getattr(self._local, "cursor", None)

    @_cursor.setter
    def _cursor(self, value: Optional[sqlite3.Cursor]) -> None:
        self._local.cursor = value

    def __enter__(self) -> "PersistenceService":
        """Establishes the database connection."""
        self._conn = sqlite3.connect(self.db_path)
        self._conn.row_factory = sqlite3.Row
        self._cursor = self._conn.cursor()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Commits changes and closes the connection."""
        if self._conn:
            self._conn.commit()
            self._conn.close()
        self._conn = None
        self._cursor = None

    def _get_cursor(self) -> sqlite3.Cursor:
        """Returns the cursor, ensuring the connection is open."""
        if self._cursor is None:
            raise RuntimeError("Database connection is not open. Use 'with' statement.")
        return self._cursor

    def init_db(self) -> None:
        """Initialize SQLite schema if not exists."""
        cur = self._get_cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS addresses (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                street TEXT NOT NULL,
                number TEXT NOT NULL,
                city TEXT NOT NULL,
                postal_code TEXT,
                notes TEXT,
                waste_types TEXT NOT NULL DEFAULT '[]',
                declared_containers TEXT NOT NULL DEFAULT '[]',
                active BOOLEAN DEFAULT 1,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        """
        )
        # Structured owner columns were added after the first release
        for column in ("owners TEXT NOT NULL DEFAULT '[]'", "source_kind TEXT"):
            try:
                cur.execute(f"ALTER TABLE addresses ADD COLUMN {column}")
            except sqlite3.OperationalError:
                # Column likely already exists
                pass

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp DATETIME DEFAULT CURRENT_TIMESTAMP,
                level TEXT NOT NULL,
                message TEXT NOT NULL,
                logger_name TEXT
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS system_info (
                key TEXT PRIMARY KEY,
                value TEXT
            )
            """
        )

    def list_addresses(self) -> List[PersistedAddress]:
        """Retrieves every stored address, oldest first."""
        cur = self._get_cursor()
        cur.execute("SELECT * FROM addresses ORDER BY id ASC")
        return [PersistedAddress.from_row(row) for row in cur.fetchall()]

    def get_address(self, address_id: int) -> Optional[PersistedAddress]:
        cur = self._get_cursor()
        cur.execute("SELECT * FROM addresses WHERE id = ?", (address_id,))
        row = cur.fetchone()
        return PersistedAddress.from_row(row) if row else None

    def create_address(self, fields: Dict[str, Any]) -> PersistedAddress:
        """
        Creates an address record.

        Args:
            fields: street, number and city, plus any of postal_code, notes,
                waste_types, declared_containers, owners, source_kind and active.

        Returns:
            The stored record, including its new ID.
        """
        cur = self._get_cursor()
        cur.execute(
            "INSERT INTO addresses (street, number, city, postal_code, notes, waste_types, declared_containers, owners, source_kind, active) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                fields["street"],
                fields.get("number") or "",
                fields["city"],
                fields.get("postal_code") or None,
                fields.get("notes") or None,
                json.dumps(list(fields.get("waste_types") or []), ensure_ascii=False),
                json.dumps(list(fields.get("declared_containers") or []), ensure_ascii=False),
                json.dumps(list(fields.get("owners") or []), ensure_ascii=False),
                fields.get("source_kind"),
                1 if fields.get("active", True) else 0,
            ),
        )
        return self.get_address(cur.lastrowid)

    def delete_address(self, address_id: int) -> None:
        cur = self._get_cursor()
        cur.execute("DELETE FROM addresses WHERE id = ?", (address_id,))

    def delete_all_addresses(self) -> int:
        """Deletes every address and returns how many were removed."""
        cur = self._get_cursor()
        cur.execute("DELETE FROM addresses")
        return cur.rowcount

    def count_addresses(self) -> int:
        cur = self._get_cursor()
        return cur.execute("SELECT COUNT(*) FROM addresses").fetchone()[0]

    def set_system_info(self, key: str, value: str) -> None:
        cur = self._get_cursor()
        cur.execute(
            "INSERT OR REPLACE INTO system_info (key, value) VALUES (?, ?)", (key, value)
        )

    def get_system_info(self, key: str) -> Optional[str]:
        cur = self._get_cursor()
        row = cur.execute("SELECT value FROM system_info WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def get_all_logs(self) -> List[dict]:
        """Retrieves all logs from the database, ordered by timestamp descending."""
        cur = self._get_cursor()
        cur.execute(
            "SELECT timestamp, level, message, logger_name FROM logs ORDER BY id DESC LIMIT 100"
        )  # Limit to 100 to avoid overwhelming the dashboard
        return [dict(row) for row in cur.fetchall()]

    def add_log(self, level: str, message: str, logger_name: Optional[str] = None) -> None:
        cur = self._get_cursor()
        cur.execute(
            "INSERT INTO logs (level, message, logger_name) VALUES (?, ?, ?)",
            (level, message, logger_name),
        )
