"""
Report formatting and display for the CLI interface.

Prints the groups of a session in a human-readable format.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ..models import GroupState, SessionSnapshot, Thumbnail
from ..utils.formatters import format_capture_time, format_number, format_span


def _print_thumbnail(thumbnail: Thumbnail) -> None:
    """
    Print one member of a group.

    The sharpest shot is marked [BEST]; photos kept in an earlier session
    are tagged as retained.
    """
    marker = "  [BEST]" if thumbnail.is_best else "  [    ]"
    retained = " | retained" if thumbnail.is_retained else ""
    asset = thumbnail.asset
    print(f"{marker} {thumbnail.id}")
    print(f"         {format_capture_time(asset.creation_time)} | "
          f"{asset.pixel_width}x{asset.pixel_height} | "
          f"Sharpness: {thumbnail.sharpness:.4f}{retained}")


def _calculate_statistics(groups: Sequence[GroupState]) -> dict[str, int]:
    """
    Calculate statistics for photo groups.

    Returns:
        Dictionary with:
        - total_groups: Number of groups
        - total_photos: Photos in any group
        - candidates: Photos other than the best shot of each group
    """
    total_photos = sum(len(g) for g in groups)
    return {
        'total_groups': len(groups),
        'total_photos': total_photos,
        'candidates': total_photos - len(groups),
    }


def _print_section_header(title: str) -> None:
    """Print a section header with divider lines."""
    print("\n" + "-" * 70)
    print(title)
    print("-" * 70)


def print_group_report(
    groups: Sequence[GroupState],
    snapshot: Optional[SessionSnapshot] = None,
    scanned: Optional[int] = None,
) -> None:
    """
    Print a report of the groups found in a folder.

    Args:
        groups: Groups in display order
        snapshot: Session state, for the window/preset/quota summary
        scanned: Number of photos with a signature

    Notes:
        - Groups are numbered starting from 1, newest first
        - Members are listed newest first, best shot marked [BEST]
    """
    stats = _calculate_statistics(groups)

    print("\n" + "=" * 70)
    print("SIMILAR PHOTO REPORT")
    print("=" * 70)

    if scanned is not None:
        print(f"\nPhotos analyzed: {format_number(scanned)}")
    print(f"Groups found: {format_number(stats['total_groups'])} "
          f"({format_number(stats['total_photos'])} photos)")
    if snapshot is not None:
        preset = snapshot.preset or 'custom'
        print(f"Window: {snapshot.window_minutes} minutes | Preset: {preset} | "
              f"Reviews left today: {snapshot.remaining_quota}/{snapshot.daily_limit}")

    if groups:
        _print_section_header("GROUPS (newest first)")
        for i, group in enumerate(groups, 1):
            members = group.thumbnails
            span = format_span(members[-1].creation_time, members[0].creation_time)
            print(f"\nGroup {i} ({len(members)} photos, {span}):")
            for thumbnail in members:
                _print_thumbnail(thumbnail)

    print("\n" + "=" * 70)
    print(f"Photos to review beyond the best shots: {format_number(stats['candidates'])}")
    print("=" * 70)


__all__ = ['print_group_report']
