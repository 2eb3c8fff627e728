"""
shotsieve
=========
Groups near-duplicate photos taken close together in time and helps decide,
group by group, which shots to keep.

Features:
- Compact signatures: average, difference and perceptual hashes plus
  color, edge and sharpness features
- Scene-aware thresholds (selfie, people, food, landscape, generic)
- Incremental, time-windowed clustering that keeps user decisions
- Daily review quota and retention records in SQLite
- Signature cache for fast re-opens
- CLI report/export and a JSON API
"""

__version__ = "1.0.0"

from .models import Asset, Signature, Thumbnail, GroupState, BucketGroup, SessionSnapshot
from .errors import (
    ShotSieveError,
    SignatureError,
    BitmapUnavailableError,
    QuotaExceededError,
    DeletionError,
    EmptyBucketError,
    UnauthorizedError,
    ChangesFailedError,
)
from .signature import SignatureExtractor, scan_assets
from .similarity import (
    SceneProfile,
    SimilarityEvaluator,
    SimilarityPreset,
    SimilarityTuning,
    tuning_for_preset,
)
from .grouping import GroupingEngine, DailyQuota, cluster_thumbnails
from .database import Database, RetentionStore, open_database
from .sources import FolderAssetSource, FileBitmapProvider, TrashDeleter, FileDeleter
from .session import build_engine

__all__ = [
    "Asset",
    "Signature",
    "Thumbnail",
    "GroupState",
    "BucketGroup",
    "SessionSnapshot",
    "ShotSieveError",
    "SignatureError",
    "BitmapUnavailableError",
    "QuotaExceededError",
    "DeletionError",
    "EmptyBucketError",
    "UnauthorizedError",
    "ChangesFailedError",
    "SignatureExtractor",
    "scan_assets",
    "SceneProfile",
    "SimilarityEvaluator",
    "SimilarityPreset",
    "SimilarityTuning",
    "tuning_for_preset",
    "GroupingEngine",
    "DailyQuota",
    "cluster_thumbnails",
    "Database",
    "RetentionStore",
    "open_database",
    "FolderAssetSource",
    "FileBitmapProvider",
    "TrashDeleter",
    "FileDeleter",
    "build_engine",
]
