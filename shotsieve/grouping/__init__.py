"""
Grouping package for shotsieve.

This package clusters signed thumbnails into near-duplicate groups and runs
the buffered, quota-gated review session over them.

Modules:
- clustering: Time-windowed chain clustering, best-shot and default-check flags
- quota: Calendar-day advance quota
- engine: GroupingEngine session coordinator
"""

from .clustering import (
    cluster_thumbnails,
    ensure_default_check,
    mark_best,
    sort_newest_first,
)
from .quota import DailyQuota, MemorySettings
from .engine import GroupingEngine, clamp_window

__all__ = [
    'cluster_thumbnails',
    'ensure_default_check',
    'mark_best',
    'sort_newest_first',
    'DailyQuota',
    'MemorySettings',
    'GroupingEngine',
    'clamp_window',
]
