"""
Utilities package for shotsieve.

Provides:
- formatters: Human-readable formatting for numbers, durations and capture times
- validators: Input validation shared by the CLI and the HTTP API
- exporters: Export session groups to files
"""

from __future__ import annotations

from . import formatters
from . import validators
from . import exporters

from .formatters import format_number, format_time_estimate, format_capture_time, format_span
from .validators import (
    validate_directory,
    validate_window,
    validate_preset,
    validate_settings,
)
from .exporters import EXPORT_FORMATS, export_groups

__all__ = [
    # Submodules
    'formatters',
    'validators',
    'exporters',
    # Formatters
    'format_number',
    'format_time_estimate',
    'format_capture_time',
    'format_span',
    # Validators
    'validate_directory',
    'validate_window',
    'validate_preset',
    'validate_settings',
    # Exporters
    'EXPORT_FORMATS',
    'export_groups',
]
