"""
Collaborators that connect the grouping engine to a photo library.

Modules:
- base: Protocols (AssetSource, BitmapProvider, Deleter) and ListAssetSource
- file_discovery: Image file listing and EXIF metadata
- folder: FolderAssetSource and FileBitmapProvider for local directories
- deletion: TrashDeleter and FileDeleter
"""

from .base import (
    AssetSource,
    BitmapProvider,
    BitmapResult,
    Deleter,
    ListAssetSource,
    resolve_final_bitmap,
)
from .deletion import FileDeleter, TrashDeleter
from .folder import FileBitmapProvider, FolderAssetSource

__all__ = [
    'AssetSource',
    'BitmapProvider',
    'BitmapResult',
    'Deleter',
    'ListAssetSource',
    'resolve_final_bitmap',
    'FileDeleter',
    'TrashDeleter',
    'FileBitmapProvider',
    'FolderAssetSource',
]
