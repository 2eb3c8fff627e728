"""
CLI package for shotsieve.

Provides the `shotsieve scan` command: group the photos of a folder by time
and visual similarity, print a report and optionally export it.

Public API:
- main: Entry point for CLI execution
- CLIOrchestrator: CLI workflow orchestration class
- print_group_report: Function to display results report
"""

from __future__ import annotations

from typing import Optional

from .orchestrator import CLIOrchestrator, setup_logging
from .arg_parser import create_parser, parse_arguments
from .reporting import print_group_report
from .interactive import prompt_for_directory


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Delegates to CLIOrchestrator to execute the complete workflow.

    Returns:
        Exit code (0 for success, 1 for error)

    Examples:
        >>> exit_code = main(['~/Pictures', '--preset', 'strict'])
    """
    orchestrator = CLIOrchestrator()
    return orchestrator.run(argv)


__all__ = [
    # Main entry point
    'main',
    # Core classes
    'CLIOrchestrator',
    # Utilities
    'setup_logging',
    'create_parser',
    'parse_arguments',
    'print_group_report',
    'prompt_for_directory',
]
