"""
Local folder collaborators.

FolderAssetSource lists the photos of a directory tree newest first and
FileBitmapProvider decodes them with Pillow (plus pillow-heif for phone
HEIC files).
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from ..config import BITMAP_CACHE_SIZE, THUMBNAIL_SIZE
from ..errors import BitmapUnavailableError
from ..models import Asset
from ..signature.dependencies import Image, ImageOps
from .file_discovery import find_image_files, read_asset

logger = logging.getLogger(__name__)


def _newest_first_key(asset: Asset) -> tuple:
    # Undated photos sort after every dated one, then by path
    if asset.creation_time is None:
        return (1, 0.0, asset.id)
    return (0, -asset.creation_time.timestamp(), asset.id)


class FolderAssetSource:
    """
    AssetSource over the image files of a directory.

    The directory is listed once, on construction or refresh(), so offsets
    stay stable while a session pages through it.

    Args:
        directory: Folder to scan
        recursive: Include subdirectories
        use_mtime_fallback: Date photos without EXIF capture time by their
            modification time; when False such photos are listed undated
            and never grouped
        progress_callback: Optional callback(current, total) while reading
            metadata
    """

    def __init__(
        self,
        directory: str | Path,
        recursive: bool = True,
        use_mtime_fallback: bool = True,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ):
        self.directory = Path(directory)
        self.recursive = recursive
        self.use_mtime_fallback = use_mtime_fallback
        self.progress_callback = progress_callback
        self._assets: list[Asset] = []
        self.unreadable: list[str] = []
        self.refresh()

    def refresh(self) -> int:
        """
        Re-list the directory.

        Returns:
            Number of photos found
        """
        if not self.directory.is_dir():
            raise NotADirectoryError(f"Not a directory: {self.directory}")

        paths = find_image_files(self.directory, recursive=self.recursive)
        assets = []
        unreadable = []
        total = len(paths)

        for i, path in enumerate(paths, start=1):
            asset = read_asset(path, use_mtime_fallback=self.use_mtime_fallback)
            if asset is None:
                unreadable.append(path)
            else:
                assets.append(asset)
            if self.progress_callback and (i % 50 == 0 or i == total):
                self.progress_callback(i, total)

        assets.sort(key=_newest_first_key)
        self._assets = assets
        self.unreadable = unreadable

        if unreadable:
            logger.warning(f"{len(unreadable)} files in {self.directory} could not be read")
        logger.info(f"Found {len(assets)} photos in {self.directory}")
        return len(assets)

    @property
    def assets(self) -> list[Asset]:
        return list(self._assets)

    def count(self) -> int:
        return len(self._assets)

    def fetch(self, offset: int, limit: int) -> list[Asset]:
        if offset < 0 or limit <= 0:
            return []
        return self._assets[offset:offset + limit]

    def date_range(self) -> tuple[Optional[datetime], Optional[datetime]]:
        """Oldest and newest capture time among dated photos."""
        dated = [a.creation_time for a in self._assets if a.creation_time is not None]
        if not dated:
            return None, None
        return min(dated), max(dated)


class FileBitmapProvider:
    """
    BitmapProvider decoding image files with Pillow.

    Decoded thumbnails are kept in a bounded LRU cache keyed by path and
    target size.

    Args:
        max_cached: Number of thumbnails to keep in memory (0 disables)
    """

    def __init__(self, max_cached: int = BITMAP_CACHE_SIZE):
        self.max_cached = max(0, max_cached)
        self._cache: OrderedDict[tuple, Image.Image] = OrderedDict()
        self._lock = threading.Lock()

    def load(self, asset: Asset, target_size: tuple[int, int] = THUMBNAIL_SIZE) -> Image.Image:
        """
        Decode an asset to an upright RGB thumbnail no larger than target_size.

        Raises:
            BitmapUnavailableError: If the file is missing or cannot be decoded
        """
        key = (asset.id, asset.file_mtime, asset.file_size, tuple(target_size))
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                self._cache.move_to_end(key)
                return cached

        image = self._decode(Path(asset.id), target_size)

        if self.max_cached:
            with self._lock:
                self._cache[key] = image
                self._cache.move_to_end(key)
                while len(self._cache) > self.max_cached:
                    self._cache.popitem(last=False)
        return image

    def _decode(self, path: Path, target_size: tuple[int, int]) -> Image.Image:
        try:
            with Image.open(path) as img:
                # JPEG can decode at a reduced scale directly
                img.draft('RGB', (target_size[0] * 2, target_size[1] * 2))
                upright = ImageOps.exif_transpose(img)
                rgb = upright.convert('RGB')
            rgb.thumbnail(target_size, Image.Resampling.BILINEAR)
            return rgb
        except FileNotFoundError as e:
            raise BitmapUnavailableError(f"File not found: {path}") from e
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise BitmapUnavailableError(f"Cannot decode {path}: {e}") from e

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)


__all__ = ['FolderAssetSource', 'FileBitmapProvider']
