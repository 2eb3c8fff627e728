"""
Formatting utilities for shotsieve.

Provides human-readable formatting for numbers, durations and capture times.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional


def format_number(n: int) -> str:
    """
    Format large numbers with commas for readability.

    Examples:
        >>> format_number(1000)
        '1,000'
        >>> format_number(1234567)
        '1,234,567'
    """
    return f"{n:,}"


def format_time_estimate(seconds: float) -> str:
    """
    Format seconds into human-readable time estimate.

    Args:
        seconds: Time in seconds

    Returns:
        Formatted time string (e.g., "5s", "2m 30s", "1h 15m")

    Examples:
        >>> format_time_estimate(45)
        '45s'
        >>> format_time_estimate(150)
        '2m 30s'
        >>> format_time_estimate(3665)
        '1h 1m'
    """
    if seconds < 60:
        return f"{int(seconds)}s"
    elif seconds < 3600:
        return f"{int(seconds / 60)}m {int(seconds % 60)}s"
    else:
        hours = int(seconds / 3600)
        minutes = int((seconds % 3600) / 60)
        return f"{hours}h {minutes}m"


def format_capture_time(value: Optional[datetime]) -> str:
    """
    Format a capture time for reports, 'undated' when unknown.

    Examples:
        >>> format_capture_time(datetime(2024, 5, 1, 14, 3, 9))
        '2024-05-01 14:03:09'
    """
    if value is None:
        return "undated"
    return value.strftime("%Y-%m-%d %H:%M:%S")


def format_span(first: Optional[datetime], last: Optional[datetime]) -> str:
    """
    Format the time covered by a group, e.g. '2024-05-01 14:03 (+2m 5s)'.
    """
    if first is None or last is None:
        return "undated"
    start, end = min(first, last), max(first, last)
    elapsed = (end - start).total_seconds()
    return f"{start.strftime('%Y-%m-%d %H:%M')} (+{format_time_estimate(elapsed)})"


__all__ = ['format_number', 'format_time_estimate', 'format_capture_time', 'format_span']
