"""
Shared utilities for database operations.

Provides:
- CacheStats: Hit/miss counters for the signature cache
- Cache key and hash encoding helpers
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence

from ..models import Asset


# SQLite has a limit of 999 variables, we use 500 for safety
CHUNK_SIZE = 500


@dataclass
class CacheStats:
    """Statistics about signature cache usage."""
    cache_hits: int = 0
    cache_misses: int = 0

    @property
    def total(self) -> int:
        return self.cache_hits + self.cache_misses

    @property
    def hit_rate(self) -> float:
        """Return cache hit rate as percentage."""
        if self.total == 0:
            return 0.0
        return (self.cache_hits / self.total) * 100


def make_cache_key(asset: Asset) -> str:
    """
    Create a signature cache key from asset attributes.

    The key changes if the file is modified or its size changes, and also
    when the capture time or dimensions differ.

    Examples:
        >>> make_cache_key(Asset(id='/a.jpg'))
        '/a.jpg::0x0:0.0:0'
    """
    timestamp = asset.creation_time.timestamp() if asset.creation_time else ''
    return (
        f"{asset.id}:{timestamp}:{asset.pixel_width}x{asset.pixel_height}"
        f":{asset.file_mtime}:{asset.file_size}"
    )


def encode_hash(value: int) -> str:
    """64-bit int as 16 hex characters (SQLite integers are signed)."""
    return f"{value & 0xFFFFFFFFFFFFFFFF:016x}"


def decode_hash(value: str) -> int:
    return int(value, 16)


def chunked(items: Sequence, size: int = CHUNK_SIZE) -> Iterator[Sequence]:
    """Split a sequence into slices of at most size items."""
    for i in range(0, len(items), size):
        yield items[i:i + size]


__all__ = [
    'CHUNK_SIZE',
    'CacheStats',
    'make_cache_key',
    'encode_hash',
    'decode_hash',
    'chunked',
]
