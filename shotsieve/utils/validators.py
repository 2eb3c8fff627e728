"""
Input validation for shotsieve.

Validators return (is_valid, error_message) tuples so both the CLI and the
HTTP API can report problems without raising.
"""

from __future__ import annotations

import os
from typing import Any

from ..config import MAX_WINDOW_MINUTES, MIN_WINDOW_MINUTES
from ..similarity import SimilarityPreset


def validate_directory(directory: str) -> tuple[bool, str]:
    """
    Validate that a directory exists and is readable.

    Examples:
        >>> validate_directory('/nonexistent/directory')
        (False, 'Directory not found: /nonexistent/directory')
    """
    if not directory:
        return False, "Directory path is required"

    if not os.path.exists(directory):
        return False, f"Directory not found: {directory}"

    if not os.path.isdir(directory):
        return False, f"Path is not a directory: {directory}"

    if not os.access(directory, os.R_OK):
        return False, f"Cannot read directory (permission denied): {directory}"

    return True, ""


def validate_window(minutes: Any) -> tuple[bool, str]:
    """
    Validate a grouping window.

    Out-of-range integers are accepted (the engine clamps them); only values
    that are not whole numbers are rejected.

    Examples:
        >>> validate_window(90)
        (True, '')
        >>> validate_window('soon')
        (False, 'Window must be a whole number of minutes')
    """
    if isinstance(minutes, bool):
        return False, "Window must be a whole number of minutes"
    try:
        int(minutes)
    except (ValueError, TypeError):
        return False, "Window must be a whole number of minutes"
    if isinstance(minutes, float) and not minutes.is_integer():
        return False, "Window must be a whole number of minutes"
    return True, ""


def validate_preset(name: Any) -> tuple[bool, str]:
    """
    Validate a similarity preset name.

    Examples:
        >>> validate_preset('strict')
        (True, '')
    """
    valid = [p.value for p in SimilarityPreset]
    if name not in valid:
        return False, f"Unknown preset {name!r}. Choose one of: {', '.join(valid)}"
    return True, ""


def validate_settings(data: Any) -> tuple[bool, str]:
    """
    Validate a settings update ({'window_minutes': int, 'preset': str}).

    At least one key must be present.
    """
    if not isinstance(data, dict):
        return False, "Settings must be a JSON object"

    if 'window_minutes' not in data and 'preset' not in data:
        return False, "Nothing to change: pass window_minutes and/or preset"

    if 'window_minutes' in data:
        is_valid, error = validate_window(data['window_minutes'])
        if not is_valid:
            return False, error

    if 'preset' in data:
        is_valid, error = validate_preset(data['preset'])
        if not is_valid:
            return False, error

    return True, ""


def window_hint() -> str:
    """Help text for the accepted window range."""
    return f"{MIN_WINDOW_MINUTES}-{MAX_WINDOW_MINUTES} minutes"


__all__ = [
    'validate_directory',
    'validate_window',
    'validate_preset',
    'validate_settings',
    'window_hint',
]
