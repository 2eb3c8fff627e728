"""
Interactive prompts for the CLI interface.
"""

from __future__ import annotations

from pathlib import Path


def prompt_for_directory() -> Path:
    """
    Interactively prompt user for a photo folder.

    Returns:
        Path object for the validated directory

    Notes:
        - Loops until a valid directory is provided
        - Handles quoted paths (strips quotes)
        - Expands ~ to the home directory
    """
    print("\n" + "=" * 50)
    print("  SHOTSIEVE - similar photo groups")
    print("=" * 50)

    while True:
        dir_input = input("\nEnter the photo folder to scan: ").strip()
        if not dir_input:
            print("Please enter a valid path.")
            continue

        # Handle quotes around path (common when copy-pasting)
        dir_input = dir_input.strip('"\'')
        directory = Path(dir_input).expanduser()

        if directory.is_dir():
            return directory
        print(f"Directory not found: {directory}")
        print("Please try again.")


__all__ = ['prompt_for_directory']
