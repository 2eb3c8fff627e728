"""
Session factory.

Wires a GroupingEngine to a local photo folder with the persistent stores:
retention records, the signature cache and the quota all live in one
SQLite database. Unset arguments fall back to the user configuration.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .database import Database, open_database
from .grouping.engine import GroupingEngine
from .grouping.quota import DailyQuota
from .signature.extractor import SignatureExtractor
from .signature.faces import HaarFaceDetector
from .similarity import tuning_for_preset
from .sources.deletion import TrashDeleter
from .sources.folder import FileBitmapProvider, FolderAssetSource
from .user_config import get_user_config

logger = logging.getLogger(__name__)


def build_engine(
    directory: str | Path,
    *,
    window_minutes: Optional[int] = None,
    preset: Optional[str] = None,
    db_path: Optional[str | Path] = None,
    trash_dir: Optional[str | Path] = None,
    use_cache: bool = True,
    detect_faces: Optional[bool] = None,
    use_mtime_fallback: Optional[bool] = None,
    recursive: bool = True,
    run_in_background: bool = True,
    show_progress: bool = False,
) -> tuple[GroupingEngine, Database]:
    """
    Create a grouping session over a photo folder.

    Args:
        directory: Folder holding the photos
        window_minutes: Grouping window (user config default)
        preset: Similarity preset name (user config default)
        db_path: SQLite database path (user config default)
        trash_dir: Where deleted photos are moved (user config default)
        use_cache: Reuse and store computed signatures
        detect_faces: Count faces with OpenCV when installed
        use_mtime_fallback: Date photos without EXIF time by modification time
        recursive: Include subdirectories
        run_in_background: Replenish the look-ahead on a worker thread
        show_progress: Show tqdm bars while scanning

    Returns:
        (engine, database); the caller starts the session with load_all()

    Raises:
        NotADirectoryError: If directory is not a folder
        ValueError: If the preset name is unknown
    """
    user_config = get_user_config()

    if window_minutes is None:
        window_minutes = user_config.window_minutes
    if preset is None:
        preset = user_config.preset
    if detect_faces is None:
        detect_faces = user_config.detect_faces
    if use_mtime_fallback is None:
        use_mtime_fallback = user_config.use_mtime_fallback

    tuning = tuning_for_preset(preset)

    source = FolderAssetSource(
        directory,
        recursive=recursive,
        use_mtime_fallback=use_mtime_fallback,
    )

    db = open_database(db_path or user_config.db_file)
    signature_cache = None
    if use_cache:
        signature_cache = db.signatures
        removed = db.signatures.cleanup_stale(user_config.cache_max_age_days)
        if removed:
            logger.info(f"Removed {removed} stale cached signatures")

    face_detector = None
    if detect_faces:
        face_detector = HaarFaceDetector()
        if not face_detector.available:
            logger.info("Face detection unavailable (install opencv-python-headless)")
            face_detector = None

    engine = GroupingEngine(
        source,
        FileBitmapProvider(),
        retention=db.retention,
        deleter=TrashDeleter(trash_dir or user_config.trash_dir),
        quota=DailyQuota(db.settings, limit=user_config.daily_limit),
        extractor=SignatureExtractor(face_detector=face_detector),
        signature_cache=signature_cache,
        tuning=tuning,
        window_minutes=window_minutes,
        run_in_background=run_in_background,
        show_progress=show_progress,
    )
    return engine, db


__all__ = ['build_engine']
