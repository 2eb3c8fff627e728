"""
File discovery and photo metadata for folder sources.

Finds image files in a directory tree and reads the metadata the grouping
engine needs: capture time (EXIF, optionally falling back to the file's
modification time) and upright pixel dimensions.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from PIL import ExifTags

from ..config import IMAGE_EXTENSIONS
from ..models import Asset
from ..signature.dependencies import HAS_HEIF_SUPPORT, Image

logger = logging.getLogger(__name__)

_EXIF_TAGS = {v: k for k, v in ExifTags.TAGS.items()}
TAG_DATETIME_ORIGINAL = _EXIF_TAGS.get("DateTimeOriginal")
TAG_DATETIME = _EXIF_TAGS.get("DateTime")
TAG_ORIENTATION = _EXIF_TAGS.get("Orientation")
EXIF_IFD = 0x8769

# EXIF orientations that rotate the image by 90 degrees
_TRANSPOSED_ORIENTATIONS = {5, 6, 7, 8}

EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"


def find_image_files(root_path: str | Path, recursive: bool = True) -> list[str]:
    """
    Find all image files in the given directory.

    Args:
        root_path: Directory path to search for images
        recursive: If True, search subdirectories recursively

    Returns:
        Sorted list of absolute file paths as strings

    Notes:
        - HEIC/HEIF files are left out when pillow-heif is not installed
        - Symlinks are resolved and each file is listed once
    """
    root = Path(root_path)

    extensions = IMAGE_EXTENSIONS
    if not HAS_HEIF_SUPPORT:
        extensions = {ext for ext in IMAGE_EXTENSIONS if ext not in {'.heic', '.heif'}}

    seen = set()
    iterator = root.rglob('*') if recursive else root.glob('*')

    for filepath in iterator:
        if not filepath.is_file() or filepath.suffix.lower() not in extensions:
            continue
        seen.add(str(filepath.resolve()))

    return sorted(seen)


def parse_exif_datetime(value: object) -> Optional[datetime]:
    """Parse an EXIF 'YYYY:MM:DD HH:MM:SS' string, None if malformed."""
    if not value:
        return None
    text = str(value).strip().rstrip('\x00')
    try:
        return datetime.strptime(text[:19], EXIF_DATETIME_FORMAT)
    except ValueError:
        return None


def read_asset(path: str | Path, use_mtime_fallback: bool = True) -> Optional[Asset]:
    """
    Build an Asset from an image file's header.

    Args:
        path: Image file path
        use_mtime_fallback: Use the file modification time when the photo
            carries no EXIF capture time

    Returns:
        Asset, or None if the file cannot be opened as an image or stat-ed
    """
    path = Path(path)
    creation_time = None

    try:
        with Image.open(path) as img:
            width, height = img.size
            exif = img.getexif()
            if exif:
                sub_ifd = exif.get_ifd(EXIF_IFD)
                creation_time = (
                    parse_exif_datetime(sub_ifd.get(TAG_DATETIME_ORIGINAL))
                    or parse_exif_datetime(exif.get(TAG_DATETIME_ORIGINAL))
                    or parse_exif_datetime(exif.get(TAG_DATETIME))
                )
                if exif.get(TAG_ORIENTATION) in _TRANSPOSED_ORIENTATIONS:
                    width, height = height, width
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        logger.debug(f"Skipping unreadable image {path}: {e}")
        return None

    try:
        stat = path.stat()
    except OSError as e:
        logger.debug(f"Cannot stat {path}: {e}")
        return None

    if creation_time is None and use_mtime_fallback:
        creation_time = datetime.fromtimestamp(stat.st_mtime)

    return Asset(
        id=str(path),
        creation_time=creation_time,
        pixel_width=width,
        pixel_height=height,
        file_mtime=stat.st_mtime,
        file_size=stat.st_size,
    )


__all__ = ['find_image_files', 'parse_exif_datetime', 'read_asset']
