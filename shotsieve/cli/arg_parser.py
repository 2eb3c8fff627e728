"""
Argument parsing for the CLI interface.

Provides functions to create and configure the argument parser for the
`shotsieve scan` command.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from ..similarity import SimilarityPreset
from ..utils.exporters import EXPORT_FORMATS
from ..utils.validators import window_hint


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Window, preset and database default to the user configuration when not
    given, so their argparse defaults are None.
    """
    parser = argparse.ArgumentParser(
        prog='shotsieve scan',
        description='Group similar photos taken close together in time',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s ~/Pictures/2024
      Report groups of similar photos (no changes)

  %(prog)s ~/Pictures/2024 --window 30 --preset strict
      Only group near-identical frames shot within 30 minutes

  %(prog)s ~/Pictures/2024 --export groups.csv --export-format csv
      Export the groups to CSV for external review

  %(prog)s ~/Pictures/2024 --no-cache --no-faces
      Recompute every signature without face detection
        """
    )

    # Positional argument
    parser.add_argument(
        'directory',
        type=Path,
        nargs='?',
        default=None,
        help='Folder of photos to group'
    )

    # Grouping options
    parser.add_argument(
        '-W', '--window',
        type=int,
        default=None,
        help=f'Grouping window in minutes ({window_hint()}). Default: from config'
    )

    parser.add_argument(
        '-p', '--preset',
        choices=[p.value for p in SimilarityPreset],
        default=None,
        help='Similarity preset. Default: from config'
    )

    # Scanning options
    parser.add_argument(
        '-r', '--no-recursive',
        action='store_true',
        help='Do not scan subdirectories'
    )

    parser.add_argument(
        '--no-mtime-fallback',
        action='store_true',
        help='Leave photos without EXIF capture time undated (never grouped)'
    )

    parser.add_argument(
        '--no-faces',
        action='store_true',
        help='Disable face detection for scene profiles'
    )

    # Caching
    parser.add_argument(
        '--no-cache',
        action='store_true',
        help='Disable the signature cache (analyze all photos fresh)'
    )

    parser.add_argument(
        '--db',
        type=Path,
        default=None,
        help='SQLite database path. Default: from config'
    )

    parser.add_argument(
        '--trash-dir',
        type=Path,
        default=None,
        help='Where deleted photos are moved. Default: from config'
    )

    # Export options
    parser.add_argument(
        '-e', '--export',
        type=Path,
        help='Export groups to file'
    )

    parser.add_argument(
        '--export-format',
        choices=list(EXPORT_FORMATS),
        default='txt',
        help='Export format. Default: txt'
    )

    # Output options
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose output'
    )

    parser.add_argument(
        '--no-progress',
        action='store_true',
        help='Disable progress bars (useful for piping output)'
    )

    return parser


def parse_arguments(argv=None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: List of argument strings (default: sys.argv)

    Examples:
        >>> args = parse_arguments(['/path/to/photos', '--window', '30'])
        >>> args.window
        30
    """
    parser = create_parser()
    return parser.parse_args(argv)


__all__ = [
    'create_parser',
    'parse_arguments',
]
