"""
Deleters for local photo folders.

TrashDeleter moves discarded photos into a trash directory (recoverable);
FileDeleter removes them. Both let PermissionError propagate so the engine
can report it as an authorization failure.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Sequence

from ..config import TRASH_DIR
from ..models import Asset

logger = logging.getLogger(__name__)


def generate_unique_filename(dest: Path) -> Path:
    """
    Return dest, or dest with a counter appended if that name is taken.

    Examples:
        >>> generate_unique_filename(Path('/trash/photo.jpg'))
        Path('/trash/photo_1.jpg')  # if photo.jpg exists
    """
    if not dest.exists():
        return dest

    stem, suffix = dest.stem, dest.suffix
    counter = 1
    candidate = dest
    while candidate.exists():
        candidate = dest.parent / f"{stem}_{counter}{suffix}"
        counter += 1
    return candidate


class TrashDeleter:
    """
    Moves photos into a trash directory instead of deleting them.

    Args:
        trash_dir: Destination directory, created on first use
    """

    def __init__(self, trash_dir: str | Path = TRASH_DIR):
        self.trash_dir = Path(trash_dir)

    def is_authorized(self) -> bool:
        """True if the trash directory exists (or can be created) and is writable."""
        try:
            self.trash_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Cannot create trash directory {self.trash_dir}: {e}")
            return False
        return os.access(self.trash_dir, os.W_OK)

    def delete(self, assets: Sequence[Asset]) -> int:
        """
        Move each photo to the trash.

        Photos that no longer exist are skipped.

        Returns:
            Number of photos moved

        Raises:
            PermissionError: If a photo or the trash directory is not writable
            OSError: If a move fails for another reason
        """
        self.trash_dir.mkdir(parents=True, exist_ok=True)
        moved = 0

        for asset in assets:
            source = Path(asset.id)
            if not source.exists():
                logger.warning(f"Already gone: {source}")
                continue

            dest = generate_unique_filename(self.trash_dir / source.name)
            try:
                shutil.move(str(source), str(dest))
            except PermissionError:
                raise PermissionError(f"Cannot move {source}: permission denied")
            logger.info(f"Moved: {source} -> {dest}")
            moved += 1

        return moved


class FileDeleter:
    """Deletes photos outright."""

    def is_authorized(self) -> bool:
        return True

    def delete(self, assets: Sequence[Asset]) -> int:
        """
        Remove each photo file.

        Returns:
            Number of files removed

        Raises:
            PermissionError: If a file is read-only or locked
            OSError: If removal fails for another reason
        """
        removed = 0
        for asset in assets:
            path = Path(asset.id)
            try:
                path.unlink()
            except FileNotFoundError:
                logger.warning(f"Already gone: {path}")
                continue
            except PermissionError:
                raise PermissionError(f"Cannot delete {path}: file is read-only or locked")
            logger.info(f"Deleted: {path}")
            removed += 1
        return removed


__all__ = ['TrashDeleter', 'FileDeleter', 'generate_unique_filename']
