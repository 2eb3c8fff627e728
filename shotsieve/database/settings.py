"""
Key/value settings persisted as JSON.

Used for the daily advance quota and remembered session preferences.
Reads fall back to the default and writes are best effort.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any

from .connection import ConnectionManager

logger = logging.getLogger(__name__)


class SettingsStore:
    """Small JSON key/value table."""

    def __init__(self, connection_manager: ConnectionManager):
        self.conn_mgr = connection_manager

    def get(self, key: str, default: Any = None) -> Any:
        try:
            with self.conn_mgr.connection(exclusive=False) as conn:
                row = conn.execute(
                    "SELECT value FROM settings WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.warning(f"Could not read setting {key}: {e}")
            return default

        if row is None or row['value'] is None:
            return default
        try:
            return json.loads(row['value'])
        except ValueError:
            logger.debug(f"Ignoring malformed setting {key}")
            return default

    def set(self, key: str, value: Any) -> None:
        try:
            with self.conn_mgr.connection(exclusive=True) as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                    (key, json.dumps(value)),
                )
        except sqlite3.Error as e:
            logger.warning(f"Could not save setting {key}: {e}")


__all__ = ['SettingsStore']
