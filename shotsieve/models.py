"""
Data models for shotsieve.

Contains dataclasses for assets, their similarity signatures, the mutable
thumbnails the grouping engine works on, group state, and the read-only
snapshots handed to callers.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import imagehash
import numpy as np


def hash_to_int(value: imagehash.ImageHash) -> int:
    """Pack a 64-bit ImageHash into an int, first bit most significant."""
    return int(str(value), 16)


def int_to_hash(value: int) -> imagehash.ImageHash:
    """Unpack a 64-bit int into an 8x8 ImageHash."""
    return imagehash.hex_to_hash(f"{value & 0xFFFFFFFFFFFFFFFF:016x}")


def bits_to_hash(bits: Any) -> imagehash.ImageHash:
    """Wrap 64 booleans (row-major) as an 8x8 ImageHash."""
    return imagehash.ImageHash(np.asarray(bits, dtype=bool).reshape(8, 8))


@dataclass(frozen=True)
class Asset:
    """
    An item in the photo collection.

    Attributes:
        id: Stable opaque identifier (a file path for folder sources)
        creation_time: Capture time, or None when unknown
        pixel_width: Full-resolution width in pixels
        pixel_height: Full-resolution height in pixels
        file_mtime: Modification time of the backing file, 0 when unknown
        file_size: Size of the backing file in bytes, 0 when unknown
    """
    id: str
    creation_time: Optional[datetime] = None
    pixel_width: int = 0
    pixel_height: int = 0
    file_mtime: float = 0.0
    file_size: int = 0

    @property
    def pixel_count(self) -> int:
        """Total pixels (width * height)."""
        return self.pixel_width * self.pixel_height

    @property
    def aspect_ratio(self) -> float:
        """Width divided by height, 0 when the height is unknown."""
        if self.pixel_height <= 0:
            return 0.0
        return self.pixel_width / self.pixel_height

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'creation_time': self.creation_time.isoformat() if self.creation_time else None,
            'pixel_width': self.pixel_width,
            'pixel_height': self.pixel_height,
        }


@dataclass(frozen=True)
class Signature:
    """
    Compact similarity fingerprint of one photo.

    Attributes:
        average_hash: 64-bit mean-threshold hash of an 8x8 downsample
        difference_hash: 64-bit adjacent-pixel gradient hash of a 9x8 downsample
        perceptual_hash: 64-bit low-frequency DCT hash of a 32x32 downsample
        sharpness: Mean squared finite difference (higher = sharper)
        lab_histogram: Concatenated L, a, b histograms (12 bins)
        lab_mean: Mean (L, a, b) vector
        edge_histogram: Magnitude-weighted gradient orientation histogram (8 bins)
        edge_density: Mean gradient magnitude over interior pixels
        face_count: Faces reported by the face detector
    """
    average_hash: imagehash.ImageHash
    difference_hash: imagehash.ImageHash
    perceptual_hash: imagehash.ImageHash
    sharpness: float = 0.0
    lab_histogram: tuple = ()
    lab_mean: tuple = (0.0, 0.0, 0.0)
    edge_histogram: tuple = ()
    edge_density: float = 0.0
    face_count: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'average_hash': str(self.average_hash),
            'difference_hash': str(self.difference_hash),
            'perceptual_hash': str(self.perceptual_hash),
            'sharpness': self.sharpness,
            'lab_histogram': list(self.lab_histogram),
            'lab_mean': list(self.lab_mean),
            'edge_histogram': list(self.edge_histogram),
            'edge_density': self.edge_density,
            'face_count': self.face_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Signature':
        """Create Signature from dictionary."""
        return cls(
            average_hash=imagehash.hex_to_hash(data['average_hash']),
            difference_hash=imagehash.hex_to_hash(data['difference_hash']),
            perceptual_hash=imagehash.hex_to_hash(data['perceptual_hash']),
            sharpness=float(data.get('sharpness', 0.0)),
            lab_histogram=tuple(float(v) for v in data.get('lab_histogram', ())),
            lab_mean=tuple(float(v) for v in data.get('lab_mean', (0.0, 0.0, 0.0))),
            edge_histogram=tuple(float(v) for v in data.get('edge_histogram', ())),
            edge_density=float(data.get('edge_density', 0.0)),
            face_count=int(data.get('face_count', 0)),
        )


@dataclass
class Thumbnail:
    """
    A signed asset in the grouping pool, with the user's decision flags.

    Attributes:
        asset: The underlying asset
        signature: Its similarity signature
        bitmap: Decoded thumbnail handle (None when the signature came from cache)
        is_checked: User keeps this photo
        is_in_bucket: Photo is queued for deletion
        is_best: Sharpest member of its group
        is_retained: Photo was kept in an earlier finalized group
    """
    asset: Asset
    signature: Signature
    bitmap: Any = field(default=None, repr=False, compare=False)
    is_checked: bool = False
    is_in_bucket: bool = False
    is_best: bool = False
    is_retained: bool = False

    @property
    def id(self) -> str:
        return self.asset.id

    @property
    def sharpness(self) -> float:
        return self.signature.sharpness

    @property
    def creation_time(self) -> Optional[datetime]:
        return self.asset.creation_time

    def copy(self) -> 'Thumbnail':
        """Shallow copy detached from the engine's pool."""
        return copy.copy(self)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'asset': self.asset.to_dict(),
            'sharpness': round(self.sharpness, 6),
            'face_count': self.signature.face_count,
            'is_checked': self.is_checked,
            'is_in_bucket': self.is_in_bucket,
            'is_best': self.is_best,
            'is_retained': self.is_retained,
        }


@dataclass
class GroupState:
    """
    A cluster of near-duplicate thumbnails, newest first.

    Attributes:
        thumbnails: Members of the group
        is_processed: Group has been finalized by advance()
    """
    thumbnails: list = field(default_factory=list)
    is_processed: bool = False

    @property
    def identifier_key(self) -> str:
        """Order-independent key used to match groups across reclustering."""
        return identifier_key(self.thumbnails)

    @property
    def id_set(self) -> frozenset:
        return frozenset(t.id for t in self.thumbnails)

    @property
    def best(self) -> Optional[Thumbnail]:
        for thumbnail in self.thumbnails:
            if thumbnail.is_best:
                return thumbnail
        return None

    def __len__(self) -> int:
        return len(self.thumbnails)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'key': self.identifier_key,
            'is_processed': self.is_processed,
            'size': len(self.thumbnails),
            'items': [t.to_dict() for t in self.thumbnails],
        }


def identifier_key(thumbnails: list) -> str:
    """Sorted member identifiers joined by '|'."""
    return '|'.join(sorted(t.id for t in thumbnails))


@dataclass(frozen=True)
class BucketGroup:
    """Bucketed items of one finalized group."""
    group_index: int
    items: tuple = ()

    @property
    def display_index(self) -> int:
        return self.group_index + 1

    def to_dict(self) -> dict:
        return {
            'group_index': self.group_index,
            'display_index': self.display_index,
            'items': [t.to_dict() for t in self.items],
        }


@dataclass(frozen=True)
class RetentionRecord:
    """
    An asset the user explicitly decided to keep.

    The hashes are stored so settled duplicates can be recognised later.
    """
    asset_id: str
    perceptual_hash: int
    difference_hash: int
    retained_at: float = 0.0

    def to_dict(self) -> dict:
        return {
            'asset_id': self.asset_id,
            'perceptual_hash': f"{self.perceptual_hash:016x}",
            'difference_hash': f"{self.difference_hash:016x}",
            'retained_at': self.retained_at,
        }


@dataclass(frozen=True)
class SessionSnapshot:
    """
    Point-in-time view of a grouping session.

    current_group holds detached copies, so callers can keep the snapshot
    around while the engine moves on.
    """
    current_group: tuple = ()
    current_index: int = 0
    discovered_group_count: int = 0
    queued_group_count: int = 0
    upcoming_group_count: int = 0
    remaining_quota: int = 0
    used_quota: int = 0
    daily_limit: int = 0
    window_minutes: int = 0
    preset: Optional[str] = None
    bucket_item_count: int = 0
    is_loading: bool = False
    is_exploring: bool = False
    did_finish_initial_load: bool = False

    @property
    def current_group_number(self) -> int:
        """1-based position of the current group, 0 when there is none."""
        if self.discovered_group_count == 0:
            return 0
        return self.current_index + 1

    @property
    def has_previous_group(self) -> bool:
        return self.current_index > 0

    @property
    def has_next_discovered_group(self) -> bool:
        return self.current_index + 1 < self.discovered_group_count

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'current_group': [t.to_dict() for t in self.current_group],
            'current_index': self.current_index,
            'current_group_number': self.current_group_number,
            'discovered_group_count': self.discovered_group_count,
            'queued_group_count': self.queued_group_count,
            'upcoming_group_count': self.upcoming_group_count,
            'remaining_quota': self.remaining_quota,
            'used_quota': self.used_quota,
            'daily_limit': self.daily_limit,
            'window_minutes': self.window_minutes,
            'preset': self.preset,
            'bucket_item_count': self.bucket_item_count,
            'has_previous_group': self.has_previous_group,
            'has_next_discovered_group': self.has_next_discovered_group,
            'is_loading': self.is_loading,
            'is_exploring': self.is_exploring,
            'did_finish_initial_load': self.did_finish_initial_load,
        }
