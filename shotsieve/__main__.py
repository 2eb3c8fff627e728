"""
Allow running the package with: python -m shotsieve

Subcommands:
    python -m shotsieve scan /path/to/photos    # Print groups of similar photos
    python -m shotsieve serve /path/to/photos   # Serve the session as a JSON API
    python -m shotsieve config                  # Show the effective settings
    python -m shotsieve config --init           # Create example config file
"""

import sys
from typing import Optional

USAGE = "usage: shotsieve {scan,serve,config} ..."


def _config_command(argv: list[str]) -> int:
    from .user_config import get_user_config

    config = get_user_config()

    if '--init' in argv or '-i' in argv:
        # Create example config file
        if config.create_example_config():
            print("Created example configuration file at:")
            print(f"  {config.config_file_path}")
            print("\nEdit this file to customize shotsieve settings.")
            return 0
        print("Failed to create configuration file.")
        return 1

    # Show current config path and values
    print(f"Configuration file: {config.config_file_path}")
    if config.config_file_path.exists():
        print("Status: found")
    else:
        print("Status: not found (using defaults)")
        print("\nRun 'python -m shotsieve config --init' to create one.")

    print("\nCurrent settings:")
    for key, value in config.as_dict().items():
        print(f"  {key}: {value}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    if not argv or argv[0] in ('-h', '--help'):
        print(USAGE)
        print(__doc__)
        return 0 if argv else 1

    command, rest = argv[0], argv[1:]
    if command == 'scan':
        from .cli import main as cli_main
        return cli_main(rest)
    elif command == 'serve':
        from .app import main as serve_main
        return serve_main(rest)
    elif command == 'config':
        return _config_command(rest)

    print(f"Unknown command: {command}", file=sys.stderr)
    print(USAGE, file=sys.stderr)
    return 1


if __name__ == '__main__':
    sys.exit(main())
