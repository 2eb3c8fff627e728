"""
Signature package for shotsieve.

Turns decoded bitmaps into compact similarity signatures.

Public API:
- SignatureExtractor: Compute a Signature from one bitmap
- scan_assets: Sequential, cancellable batch scan with caching
- average_hash / difference_hash / perceptual_hash: 64-bit fingerprints
- hamming_distance: Bit difference between fingerprints
- histogram_distance: Chi-square distance between histograms
- FaceDetector, NullFaceDetector, HaarFaceDetector: Face count collaborators
- has_heif_support: Check if HEIC/HEIF support is available
"""

from __future__ import annotations

from .hashing import (
    average_hash,
    difference_hash,
    perceptual_hash,
    dct_2d,
    hamming_distance,
    hash_to_int,
    int_to_hash,
)
from .features import (
    lab_histogram,
    edge_histogram,
    sharpness_score,
    histogram_distance,
)
from .faces import FaceDetector, NullFaceDetector, HaarFaceDetector
from .extractor import SignatureExtractor
from .batch import ScanResult, scan_assets

from .dependencies import HAS_HEIF_SUPPORT


def has_heif_support() -> bool:
    """Check if HEIC/HEIF support is available."""
    return HAS_HEIF_SUPPORT


__all__ = [
    # Hashes
    'average_hash',
    'difference_hash',
    'perceptual_hash',
    'dct_2d',
    'hamming_distance',
    'hash_to_int',
    'int_to_hash',
    # Features
    'lab_histogram',
    'edge_histogram',
    'sharpness_score',
    'histogram_distance',
    # Faces
    'FaceDetector',
    'NullFaceDetector',
    'HaarFaceDetector',
    # Extraction
    'SignatureExtractor',
    'ScanResult',
    'scan_assets',
    # Feature detection
    'has_heif_support',
]
