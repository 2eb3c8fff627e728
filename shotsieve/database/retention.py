"""
Retention store.

Records the photos a user explicitly kept when finalizing a group, so later
clustering passes do not surface the same settled duplicates again. Records
are held in memory and written through to SQLite; a failed write is logged
and the session carries on with the in-memory state.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from typing import Iterable, Mapping, Optional

from ..models import RetentionRecord, Signature, hash_to_int
from .connection import ConnectionManager
from .utils import decode_hash, encode_hash

logger = logging.getLogger(__name__)


class RetentionStore:
    """
    Id-keyed record of kept photos.

    Args:
        connection_manager: Database to persist to, or None to keep the
            records in memory only
    """

    def __init__(self, connection_manager: Optional[ConnectionManager] = None):
        self.conn_mgr = connection_manager
        self._lock = threading.Lock()
        self._records: dict[str, RetentionRecord] = {}
        self._load()

    def _load(self) -> None:
        if self.conn_mgr is None:
            return
        try:
            with self.conn_mgr.connection(exclusive=False) as conn:
                rows = conn.execute(
                    "SELECT asset_id, perceptual_hash, difference_hash, retained_at FROM retention"
                ).fetchall()
        except sqlite3.Error as e:
            logger.warning(f"Could not load retention records: {e}")
            return

        for row in rows:
            try:
                record = RetentionRecord(
                    asset_id=row['asset_id'],
                    perceptual_hash=decode_hash(row['perceptual_hash']),
                    difference_hash=decode_hash(row['difference_hash']),
                    retained_at=row['retained_at'] or 0.0,
                )
            except (TypeError, ValueError):
                logger.debug(f"Skipping malformed retention record for {row['asset_id']}")
                continue
            self._records[record.asset_id] = record

    def is_retained(self, asset_id: str) -> bool:
        with self._lock:
            return asset_id in self._records

    def get(self, asset_id: str) -> Optional[RetentionRecord]:
        with self._lock:
            return self._records.get(asset_id)

    def records(self) -> list[RetentionRecord]:
        """All records, oldest first."""
        with self._lock:
            return sorted(self._records.values(), key=lambda r: (r.retained_at, r.asset_id))

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, asset_id: object) -> bool:
        with self._lock:
            return asset_id in self._records

    def mark_retained(self, asset_ids: Iterable[str], signatures: Mapping[str, Signature]) -> int:
        """
        Record photos as kept.

        Identifiers without a signature are ignored. Records whose hashes
        are unchanged are not rewritten.

        Returns:
            Number of records added or changed
        """
        now = time.time()
        changed: list[RetentionRecord] = []

        with self._lock:
            for asset_id in asset_ids:
                signature = signatures.get(asset_id)
                if signature is None:
                    continue
                record = RetentionRecord(
                    asset_id=asset_id,
                    perceptual_hash=hash_to_int(signature.perceptual_hash),
                    difference_hash=hash_to_int(signature.difference_hash),
                    retained_at=now,
                )
                existing = self._records.get(asset_id)
                if (existing is not None
                        and existing.perceptual_hash == record.perceptual_hash
                        and existing.difference_hash == record.difference_hash):
                    continue
                self._records[asset_id] = record
                changed.append(record)

        if changed:
            self._persist(changed)
        return len(changed)

    def _persist(self, records: list[RetentionRecord]) -> None:
        if self.conn_mgr is None:
            return
        try:
            with self.conn_mgr.connection(exclusive=True) as conn:
                conn.executemany("""
                    INSERT OR REPLACE INTO retention (
                        asset_id, perceptual_hash, difference_hash, retained_at
                    ) VALUES (?, ?, ?, ?)
                """, [
                    (r.asset_id, encode_hash(r.perceptual_hash),
                     encode_hash(r.difference_hash), r.retained_at)
                    for r in records
                ])
        except sqlite3.Error as e:
            logger.warning(f"Could not persist {len(records)} retention records: {e}")

    def clear(self) -> None:
        """Forget every record."""
        with self._lock:
            if not self._records:
                return
            self._records.clear()
        if self.conn_mgr is None:
            return
        try:
            with self.conn_mgr.connection(exclusive=True) as conn:
                conn.execute("DELETE FROM retention")
        except sqlite3.Error as e:
            logger.warning(f"Could not clear retention records: {e}")


__all__ = ['RetentionStore']
