"""
Export functionality for shotsieve.

Writes the groups of a session to TXT, CSV or JSON files for review outside
the application.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Sequence, TextIO

from ..models import GroupState, Thumbnail
from .formatters import format_capture_time

EXPORT_FORMATS = ('txt', 'csv', 'json')


def _status(thumbnail: Thumbnail) -> str:
    if thumbnail.is_in_bucket:
        return "discard"
    if thumbnail.is_checked:
        return "keep"
    return "undecided"


def _marker(thumbnail: Thumbnail) -> str:
    if thumbnail.is_in_bucket:
        return "[DISCARD]"
    if thumbnail.is_best:
        return "[BEST]"
    if thumbnail.is_checked:
        return "[KEEP]"
    return "[    ]"


def _export_txt(groups: Sequence[GroupState], file_handle: TextIO) -> None:
    """
    Export groups to TXT format.

    Each member is listed with a marker: [BEST] for the sharpest shot,
    [KEEP] for other checked photos, [DISCARD] for bucketed ones.
    """
    file_handle.write("SIMILAR PHOTO GROUPS\n")
    file_handle.write("=" * 70 + "\n")

    for i, group in enumerate(groups, 1):
        suffix = " (finalized)" if group.is_processed else ""
        file_handle.write(f"\nGroup {i}: {len(group)} photos{suffix}\n")
        for thumbnail in group.thumbnails:
            retained = " (retained)" if thumbnail.is_retained else ""
            file_handle.write(
                f"  {_marker(thumbnail)} {thumbnail.id}  "
                f"{format_capture_time(thumbnail.creation_time)}{retained}\n"
            )


def _export_csv(groups: Sequence[GroupState], file_handle: TextIO) -> None:
    """
    Export groups to CSV format.

    Columns: group_id, status, is_best, is_retained, path, capture_time,
    width, height, sharpness
    """
    writer = csv.writer(file_handle)
    writer.writerow([
        'group_id', 'status', 'is_best', 'is_retained', 'path',
        'capture_time', 'width', 'height', 'sharpness',
    ])
    for i, group in enumerate(groups, 1):
        for thumbnail in group.thumbnails:
            asset = thumbnail.asset
            writer.writerow([
                i,
                _status(thumbnail),
                int(thumbnail.is_best),
                int(thumbnail.is_retained),
                asset.id,
                asset.creation_time.isoformat() if asset.creation_time else '',
                asset.pixel_width,
                asset.pixel_height,
                f"{thumbnail.sharpness:.6f}",
            ])


def _export_json(groups: Sequence[GroupState], file_handle: TextIO) -> None:
    payload = {
        'group_count': len(groups),
        'groups': [dict(group.to_dict(), group_id=i) for i, group in enumerate(groups, 1)],
    }
    json.dump(payload, file_handle, indent=2)
    file_handle.write("\n")


def export_groups(
    groups: Sequence[GroupState],
    output_path: Path,
    export_format: str = 'txt',
) -> None:
    """
    Export session groups to a file.

    Args:
        groups: Groups to export, in display order
        output_path: Path to output file
        export_format: 'txt', 'csv' or 'json'. Default: 'txt'

    Raises:
        ValueError: If export_format is not supported
        OSError: If file cannot be written

    Examples:
        >>> export_groups(engine.all_groups(include_queued=True), Path('groups.csv'), 'csv')
    """
    if export_format not in EXPORT_FORMATS:
        raise ValueError(
            f"Unsupported export format: {export_format}. Use one of: {', '.join(EXPORT_FORMATS)}."
        )

    with open(output_path, 'w', encoding='utf-8', newline='') as f:
        if export_format == 'txt':
            _export_txt(groups, f)
        elif export_format == 'csv':
            _export_csv(groups, f)
        else:
            _export_json(groups, f)


__all__ = ['EXPORT_FORMATS', 'export_groups']
