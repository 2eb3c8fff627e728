"""
CLI workflow orchestration for shotsieve.

Provides the CLIOrchestrator class that coordinates the `shotsieve scan`
workflow from argument parsing through final reporting.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..session import build_engine
from ..utils.exporters import export_groups
from ..utils.validators import validate_directory
from .arg_parser import parse_arguments
from .interactive import prompt_for_directory
from .reporting import print_group_report


def setup_logging(verbose: bool = False) -> logging.Logger:
    """
    Configure logging for the CLI.

    Args:
        verbose: Enable verbose (DEBUG level) logging

    Returns:
        Configured logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    return logging.getLogger(__name__)


class CLIOrchestrator:
    """
    Orchestrates the CLI scanning workflow.

    Manages the complete lifecycle from argument parsing through grouping,
    reporting and export. The scan is report-only: no photo is moved and no
    decision is recorded.
    """

    def __init__(self):
        """Initialize the orchestrator."""
        self.logger = None
        self.args = None
        self.engine = None
        self.db = None
        self.groups = []
        self.show_progress = False

    def run(self, argv: Optional[list[str]] = None) -> int:
        """
        Execute the complete CLI workflow.

        Args:
            argv: Argument list (default: sys.argv)

        Returns:
            Exit code (0 for success, 1 for error)

        Workflow phases:
        1. Setup & argument parsing
        2. Interactive prompts (if needed)
        3. Validation
        4. Session construction
        5. Scanning & grouping
        6. Reporting & export
        """
        # Phase 1: Setup
        exit_code = self._setup_phase(argv)
        if exit_code != 0:
            return exit_code

        # Phase 2: Interactive prompts
        exit_code = self._interactive_phase()
        if exit_code != 0:
            return exit_code

        # Phase 3: Validation
        exit_code = self._validate_phase()
        if exit_code != 0:
            return exit_code

        # Phase 4: Session
        exit_code = self._build_phase()
        if exit_code != 0:
            return exit_code

        # Phase 5: Scanning
        exit_code = self._scan_phase()
        if exit_code != 0:
            return exit_code

        # Phase 6: Reporting
        return self._report_phase()

    def _setup_phase(self, argv: Optional[list[str]]) -> int:
        """Phase 1: Parse arguments and setup logging."""
        self.args = parse_arguments(argv)
        self.logger = setup_logging(self.args.verbose)
        return 0

    def _interactive_phase(self) -> int:
        """Phase 2: Ask for a directory when none was given."""
        if self.args.directory is None:
            self.args.directory = prompt_for_directory()
        return 0

    def _validate_phase(self) -> int:
        """
        Phase 3: Validate arguments.

        Returns:
            0 for success, 1 for validation error
        """
        is_valid, error = validate_directory(str(self.args.directory))
        if not is_valid:
            self.logger.error(error)
            return 1

        if self.args.export and self.args.export.is_dir():
            self.logger.error(f"Export path is a directory: {self.args.export}")
            return 1

        return 0

    def _build_phase(self) -> int:
        """Phase 4: Create the grouping session."""
        self.show_progress = not self.args.no_progress
        if self.args.no_cache:
            self.logger.info("Cache disabled - analyzing all photos fresh")

        try:
            self.engine, self.db = build_engine(
                self.args.directory,
                window_minutes=self.args.window,
                preset=self.args.preset,
                db_path=self.args.db,
                trash_dir=self.args.trash_dir,
                use_cache=not self.args.no_cache,
                detect_faces=False if self.args.no_faces else None,
                use_mtime_fallback=False if self.args.no_mtime_fallback else None,
                recursive=not self.args.no_recursive,
                run_in_background=False,
                show_progress=self.show_progress,
            )
        except (NotADirectoryError, ValueError) as e:
            self.logger.error(str(e))
            return 1
        return 0

    def _scan_phase(self) -> int:
        """
        Phase 5: Sign every photo and group the whole folder.

        Returns:
            0 for success, 1 if the folder holds no photos
        """
        total = self.engine.source.count()
        self.logger.info(f"Found {total:,} photos in {self.args.directory}")
        if total == 0:
            self.logger.info("No photos found. Exiting.")
            return 1

        self.logger.info(
            f"Grouping with a {self.engine.window_minutes}-minute window "
            f"(preset: {self.engine.preset or 'custom'})..."
        )
        self.engine.load_all()
        self.engine.explore_all()

        if self.engine.signature_cache is not None:
            stats = self.engine.signature_cache.stats
            if stats.cache_hits > 0:
                self.logger.info(
                    f"Cache: {stats.cache_hits:,} hits, {stats.cache_misses:,} misses "
                    f"({stats.hit_rate:.1f}% hit rate)"
                )

        skipped = total - self.engine.pool_size
        if skipped:
            self.logger.warning(f"Could not analyze {skipped:,} photos")

        self.groups = self.engine.all_groups(include_queued=True)
        return 0

    def _report_phase(self) -> int:
        """Phase 6: Display the report and handle exports."""
        print_group_report(self.groups, self.engine.snapshot(), scanned=self.engine.pool_size)

        if self.args.export:
            try:
                export_groups(self.groups, self.args.export, self.args.export_format)
            except OSError as e:
                self.logger.error(f"Export failed: {e}")
                return 1
            self.logger.info(f"Groups exported to: {self.args.export}")
        return 0


__all__ = ['CLIOrchestrator', 'setup_logging']
