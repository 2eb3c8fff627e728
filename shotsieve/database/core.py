"""
Database facade coordinating the persistent stores.

One SQLite file holds retention records, cached signatures and settings.
"""

from __future__ import annotations

import os
from typing import Optional

from ..config import DB_FILE
from .connection import ConnectionManager
from .retention import RetentionStore
from .schema import SCHEMA_VERSION, initialize_schema
from .settings import SettingsStore
from .signatures import SignatureCache


class Database:
    """
    SQLite-backed persistence for a shotsieve session.

    Thread-safe for concurrent read/write operations. Each concern lives in
    its own component, all sharing one ConnectionManager.

    Usage:
        db = Database()
        engine = GroupingEngine(
            source, bitmaps,
            retention=db.retention,
            quota=DailyQuota(db.settings),
            signature_cache=db.signatures,
        )
    """

    SCHEMA_VERSION = SCHEMA_VERSION

    def __init__(self, db_path: Optional[str] = None):
        """
        Open (and if needed create) the database.

        Args:
            db_path: Path to SQLite database file. Uses default if None.
        """
        self.db_path = db_path or DB_FILE
        self._conn_mgr = ConnectionManager(self.db_path)

        with self._conn_mgr.connection(exclusive=True) as conn:
            initialize_schema(conn)

        self.retention = RetentionStore(self._conn_mgr)
        self.signatures = SignatureCache(self._conn_mgr)
        self.settings = SettingsStore(self._conn_mgr)

    @property
    def connection_manager(self) -> ConnectionManager:
        return self._conn_mgr

    def get_stats(self) -> dict:
        """Sizes of each store."""
        stats = self.signatures.get_stats()
        stats['retained_photos'] = len(self.retention)
        stats['schema_version'] = self.SCHEMA_VERSION
        stats['exists'] = os.path.exists(self.db_path)
        return stats


__all__ = ['Database']
