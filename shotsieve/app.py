#!/usr/bin/env python3
"""
shotsieve - JSON API server
===========================
Serves a grouping session over a photo folder as a local JSON API.

Run with: python -m shotsieve serve /path/to/photos

Options:
    -q, --quiet     Quiet mode - suppress all output except errors
    -v, --verbose   Verbose mode - show all Flask request logs
    -p, --port      Port to run on (default: 5000)
    --no-browser    Don't auto-open browser
"""

import argparse
import logging
import sys
import threading
import webbrowser
from typing import Optional

from flask import Flask

from .api import api, register_engine
from .similarity import SimilarityPreset


# Logging levels
LOG_QUIET = 0    # No output except errors
LOG_MINIMAL = 1  # Startup info only (default)
LOG_VERBOSE = 2  # All Flask request logs


def create_app(engine, db=None, log_level: int = LOG_MINIMAL) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        engine: GroupingEngine the routes operate on
        db: Optional Database, enables the cache endpoints
        log_level: Logging verbosity level

    Returns:
        Configured Flask app instance
    """
    app = Flask(__name__)

    # Configure logging based on level
    if log_level < LOG_VERBOSE:
        # Suppress Flask's default request logging
        log = logging.getLogger('werkzeug')
        log.setLevel(logging.ERROR if log_level == LOG_QUIET else logging.WARNING)

    register_engine(app, engine, db)
    app.register_blueprint(api)

    return app


def suppress_flask_banner():
    """Suppress Flask's development server banner and startup messages."""
    try:
        import flask.cli
        flask.cli.show_server_banner = lambda *args, **kwargs: None
    except (ImportError, AttributeError):
        pass

    # Suppress werkzeug's startup log messages
    logging.getLogger('werkzeug').setLevel(logging.ERROR)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='shotsieve serve',
        description='Serve a photo grouping session as a JSON API',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        'directory',
        help='Folder of photos to group'
    )
    parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Quiet mode - suppress all output except errors'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose mode - show all Flask request logs'
    )
    parser.add_argument(
        '-p', '--port',
        type=int,
        default=5000,
        help='Port to run the server on (default: 5000)'
    )
    parser.add_argument(
        '--no-browser',
        action='store_true',
        help='Do not automatically open browser'
    )
    parser.add_argument(
        '-W', '--window',
        type=int,
        default=None,
        help='Grouping window in minutes (default: from config)'
    )
    parser.add_argument(
        '--preset',
        choices=[p.value for p in SimilarityPreset],
        default=None,
        help='Similarity preset (default: from config)'
    )
    parser.add_argument(
        '--db',
        default=None,
        help='SQLite database path (default: from config)'
    )
    parser.add_argument(
        '--trash-dir',
        default=None,
        help='Where deleted photos are moved (default: from config)'
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the API server."""
    from .session import build_engine

    args = create_parser().parse_args(argv)

    # Determine log level
    if args.quiet:
        log_level = LOG_QUIET
    elif args.verbose:
        log_level = LOG_VERBOSE
    else:
        log_level = LOG_MINIMAL

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    try:
        engine, db = build_engine(
            args.directory,
            window_minutes=args.window,
            preset=args.preset,
            db_path=args.db,
            trash_dir=args.trash_dir,
        )
    except (NotADirectoryError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    port = args.port
    url = f'http://localhost:{port}/api/session'

    # Print startup message (unless quiet)
    if log_level >= LOG_MINIMAL:
        print()
        print("  +--------------------------------------+")
        print("  |   SHOTSIEVE - similar photo groups   |")
        print("  +--------------------------------------+")
        print()
        print(f"  Folder: {args.directory} ({engine.source.count():,} photos)")
        print(f"  Server running at: {url}")
        print()
        print("  Press Ctrl+C to stop")
        print()

    # Suppress Flask banner for non-verbose modes
    if log_level < LOG_VERBOSE:
        suppress_flask_banner()

    app = create_app(engine, db, log_level)

    # Group the first batches while the server starts
    loader = threading.Thread(target=engine.load_all, name='shotsieve-load', daemon=True)
    loader.start()

    # Open browser after short delay (unless disabled)
    if not args.no_browser:
        threading.Timer(1.5, lambda: webbrowser.open(url)).start()

    try:
        app.run(
            host='127.0.0.1',
            port=port,
            debug=False,
            threaded=True,
            use_reloader=False
        )
    except KeyboardInterrupt:
        if log_level >= LOG_MINIMAL:
            print("\n  Server stopped\n")
    finally:
        engine.cancel()
    return 0


if __name__ == '__main__':
    sys.exit(main())
