"""CLI entry point for dbmigrate."""

import argparse
import sys
from typing import NoReturn

from loguru import logger

from ..core.config import Config
from . import commands


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="dbmigrate",
        description="Versioned SQL schema migrations",
    )
    parser.add_argument("-v", "--version", action="version", version="%(prog)s 1.0.0")
    parser.add_argument("-c", "--config", help="TOML configuration file")

    subparsers = parser.add_subparsers(dest="command", required=False)

    migrate_parser = subparsers.add_parser("migrate", help="Apply pending migrations")
    commands.add_migrate_arguments(migrate_parser)

    subparsers.add_parser("status", help="Show ledger status")

    subparsers.add_parser(
        "unlock", help="Remove in-flight ledger rows left by a crashed run"
    )

    return parser


def configure_logging(level: str) -> None:
    """Send loguru output to stderr at the configured level."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = Config.from_env_or_file(args.config)
        configure_logging(config.log_level)

        if args.command == "migrate":
            commands.handle_migrate(args, config)
        elif args.command == "status":
            commands.handle_status(args, config)
        elif args.command == "unlock":
            commands.handle_unlock(args, config)
        else:
            parser.print_help()

        sys.exit(0)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
