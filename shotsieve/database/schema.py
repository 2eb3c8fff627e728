"""
Database schema initialization and migrations.

Tables:
    - meta: Schema version tracking
    - retention: Photos the user explicitly kept, with their hashes
    - signatures: Cached similarity signatures keyed by asset identity
    - settings: JSON-encoded key/value pairs (advance quota, preferences)
"""

from __future__ import annotations

import sqlite3


# Increment when changing table structure
SCHEMA_VERSION = 1

# Tables rebuilt when the schema version changes. Retention and settings
# hold user decisions and are migrated in place instead.
CACHE_TABLES = ('signatures',)


def initialize_schema(conn: sqlite3.Connection) -> None:
    """
    Create tables and indexes if they don't exist.

    A version bump drops the cache tables; user decisions are kept.

    Args:
        conn: Active database connection
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS meta (
            key TEXT PRIMARY KEY,
            value TEXT
        )
    """)

    result = conn.execute(
        "SELECT value FROM meta WHERE key = 'schema_version'"
    ).fetchone()
    current_version = int(result['value']) if result else 0

    if current_version < SCHEMA_VERSION:
        for table in CACHE_TABLES:
            conn.execute(f"DROP TABLE IF EXISTS {table}")

    conn.execute("""
        CREATE TABLE IF NOT EXISTS retention (
            asset_id TEXT PRIMARY KEY,
            perceptual_hash TEXT NOT NULL,
            difference_hash TEXT NOT NULL,
            retained_at REAL DEFAULT (strftime('%s', 'now'))
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS signatures (
            asset_id TEXT PRIMARY KEY,
            cache_key TEXT NOT NULL,
            payload TEXT NOT NULL,
            created_at REAL DEFAULT (strftime('%s', 'now')),
            last_accessed REAL DEFAULT (strftime('%s', 'now'))
        )
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_signatures_last_accessed
        ON signatures(last_accessed)
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT
        )
    """)

    conn.execute("""
        INSERT OR REPLACE INTO meta (key, value)
        VALUES ('schema_version', ?)
    """, (str(SCHEMA_VERSION),))


__all__ = ['SCHEMA_VERSION', 'initialize_schema']
