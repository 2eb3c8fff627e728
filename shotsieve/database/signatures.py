"""
Signature cache.

Signatures are pure functions of pixel data, so once computed they are
stored as JSON keyed by asset id. The cache key (id, capture time,
dimensions, file mtime and size) detects a file that was edited or replaced
under the same name.
"""

from __future__ import annotations

import json
import logging
import os
import time
from typing import Optional, Sequence

from ..models import Asset, Signature
from .connection import ConnectionManager
from .utils import CacheStats, chunked, make_cache_key

logger = logging.getLogger(__name__)


class SignatureCache:
    """
    SQLite-backed cache of similarity signatures.

    Usage:
        hits = cache.get_batch(assets)
        ...
        cache.put_batch([(asset, signature), ...])
    """

    def __init__(self, connection_manager: ConnectionManager):
        self.conn_mgr = connection_manager
        self.stats = CacheStats()

    def get(self, asset: Asset) -> Optional[Signature]:
        """Get the cached signature of one asset if still valid."""
        return self.get_batch([asset]).get(asset.id)

    def get_batch(self, assets: Sequence[Asset]) -> dict[str, Signature]:
        """
        Look up several assets at once.

        Returns:
            Dict mapping asset id to Signature, for cache hits only
        """
        results: dict[str, Signature] = {}
        if not assets:
            return results

        expected = {asset.id: make_cache_key(asset) for asset in assets}
        ids = list(expected)
        hit_ids = []

        try:
            with self.conn_mgr.connection(exclusive=False) as conn:
                for chunk in chunked(ids):
                    placeholders = ','.join('?' * len(chunk))
                    rows = conn.execute(f"""
                        SELECT asset_id, cache_key, payload FROM signatures
                        WHERE asset_id IN ({placeholders})
                    """, list(chunk)).fetchall()

                    for row in rows:
                        if expected.get(row['asset_id']) != row['cache_key']:
                            continue
                        try:
                            results[row['asset_id']] = Signature.from_dict(json.loads(row['payload']))
                        except (KeyError, TypeError, ValueError) as e:
                            logger.debug(f"Ignoring unreadable cached signature for {row['asset_id']}: {e}")
                            continue
                        hit_ids.append(row['asset_id'])

                for chunk in chunked(hit_ids):
                    placeholders = ','.join('?' * len(chunk))
                    conn.execute(f"""
                        UPDATE signatures SET last_accessed = strftime('%s', 'now')
                        WHERE asset_id IN ({placeholders})
                    """, list(chunk))

        except Exception as e:
            logger.warning(f"Error during signature cache lookup: {e}")

        self.stats.cache_hits += len(results)
        self.stats.cache_misses += len(assets) - len(results)
        return results

    def put_batch(self, entries: Sequence[tuple[Asset, Signature]]) -> int:
        """
        Store signatures for several assets.

        Returns:
            Number of signatures stored
        """
        if not entries:
            return 0

        rows = [
            (asset.id, make_cache_key(asset), json.dumps(signature.to_dict()))
            for asset, signature in entries
        ]
        try:
            with self.conn_mgr.connection(exclusive=True) as conn:
                conn.executemany("""
                    INSERT OR REPLACE INTO signatures (asset_id, cache_key, payload)
                    VALUES (?, ?, ?)
                """, rows)
            return len(rows)
        except Exception as e:
            logger.warning(f"Error during signature caching: {e}")
            return 0

    def cleanup_stale(self, max_age_days: int = 30) -> int:
        """
        Remove entries that haven't been accessed recently.

        Returns:
            Number of entries removed
        """
        try:
            cutoff = time.time() - (max_age_days * 24 * 60 * 60)
            with self.conn_mgr.connection(exclusive=True) as conn:
                result = conn.execute(
                    "DELETE FROM signatures WHERE last_accessed < ?", (cutoff,)
                )
                return result.rowcount
        except Exception as e:
            logger.warning(f"Failed to cleanup stale signatures: {e}")
            return 0

    def get_stats(self) -> dict:
        """Entry count, on-disk size and this session's hit rate."""
        db_path = self.conn_mgr.db_path
        try:
            with self.conn_mgr.connection(exclusive=False) as conn:
                total = conn.execute("SELECT COUNT(*) AS cnt FROM signatures").fetchone()['cnt']
        except Exception as e:
            logger.warning(f"Failed to get signature cache stats: {e}")
            total = 0

        db_size = os.path.getsize(db_path) if os.path.exists(db_path) else 0
        return {
            'total_entries': total,
            'db_size_bytes': db_size,
            'db_size_mb': round(db_size / (1024 * 1024), 2),
            'db_path': db_path,
            'hit_rate': round(self.stats.hit_rate, 1),
        }

    def clear(self) -> None:
        """Remove every cached signature."""
        try:
            with self.conn_mgr.connection(exclusive=True) as conn:
                conn.execute("DELETE FROM signatures")
            self.conn_mgr.vacuum()
        except Exception as e:
            logger.warning(f"Failed to clear signature cache: {e}")


__all__ = ['SignatureCache']
