"""
SQLite persistence for shotsieve.

Stores what must outlive a session:
- Retention records: photos the user explicitly kept
- Signature cache: computed signatures, so re-opening a folder is fast
- Settings: the daily advance quota and other small values

Public API:
- Database: Facade owning all stores
- RetentionStore, SignatureCache, SettingsStore: Individual stores
- CacheStats: Signature cache hit/miss counters
- open_database(): Open the database at a path (default location if None)
"""

from __future__ import annotations

from typing import Optional

from .core import Database
from .retention import RetentionStore
from .settings import SettingsStore
from .signatures import SignatureCache
from .utils import CacheStats


def open_database(db_path: Optional[str] = None) -> Database:
    """
    Open the shotsieve database.

    Example:
        db = open_database(tmp_path / 'test.db')
        db.retention.is_retained('/photos/a.jpg')
    """
    return Database(str(db_path) if db_path is not None else None)


__all__ = [
    'Database',
    'RetentionStore',
    'SignatureCache',
    'SettingsStore',
    'CacheStats',
    'open_database',
]
