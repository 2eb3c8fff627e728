"""
Configuration constants for shotsieve.

This module contains all configurable settings including:
- Supported image extensions
- Signature extraction constants (working resolution, bin counts)
- Grouping session defaults (time window, look-ahead buffering, quota)
- Default file locations for the SQLite store
"""

import os

# Image extensions picked up by the folder asset source
IMAGE_EXTENSIONS = {
    # Common formats
    '.jpg', '.jpeg', '.png', '.gif', '.bmp', '.webp', '.tiff', '.tif',
    # Phone formats (HEIC needs pillow-heif)
    '.heic', '.heif', '.avif',
    # RAW formats Pillow can usually preview
    '.dng',
}

# Signature extraction
# Bitmaps are resampled to a square working resolution before any feature is computed
WORKING_RESOLUTION = 96
LAB_BINS_PER_CHANNEL = 4   # 12 Lab bins: 4 each for L, a, b
EDGE_BIN_COUNT = 8
DCT_SIZE = 32
HASH_SIZE = 8              # 8x8 = 64-bit fingerprints
EPSILON = 1e-6

# Lab channel ranges used for binning
LAB_L_RANGE = (0.0, 100.0)
LAB_AB_RANGE = (-80.0, 80.0)

# Scene classification
SELFIE_MAX_ASPECT = 0.8            # width / height at or below this is "narrow"
SELFIE_MAX_PIXELS = 8_000_000      # front cameras rarely exceed 8MP
FOOD_MIN_A = 14.0
FOOD_MIN_B = 12.0
LANDSCAPE_MAX_B = -8.0
LANDSCAPE_MIN_EDGE_DENSITY = 0.35

# Tuning clamps
TUNING_SCALE_RANGE = (0.3, 2.0)
LIMIT_RANGE = (0.05, 1.0)

# Grouping window (minutes)
DEFAULT_WINDOW_MINUTES = 60
MIN_WINDOW_MINUTES = 15
MAX_WINDOW_MINUTES = 240

# Session buffering
LOOKAHEAD_GROUP_COUNT = 10         # undisplayed groups kept ahead of the cursor
REPLENISH_THRESHOLD = 7            # start a background fetch below this
INITIAL_BATCH_SIZE = 80
SUBSEQUENT_BATCH_SIZE = 40
THUMBNAIL_SIZE = (240, 240)

# Finalized groups allowed per calendar day
DAILY_ADVANCE_LIMIT = 3

# Default preset name (see similarity.SimilarityPreset)
DEFAULT_PRESET = 'standard'

# Decoded thumbnails kept in memory by the file bitmap provider
BITMAP_CACHE_SIZE = 200

# Decompression bomb limit for large panoramas and scans
MAX_IMAGE_PIXELS = 500_000_000

# State locations
DATA_DIR = os.path.join(os.path.expanduser('~'), '.shotsieve')

# SQLite database holding retention records, the signature cache and settings
DB_FILE = os.path.join(DATA_DIR, 'shotsieve.db')

# Where TrashDeleter moves discarded photos
TRASH_DIR = os.path.join(DATA_DIR, 'trash')
