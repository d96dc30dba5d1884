"""Migrate command for dbmigrate CLI."""

import argparse

from ...core.config import Config
from ...migration import MigrationProgress, MigrationRunner, load_manifest
from ...store.database import Database


def add_migrate_arguments(parser: argparse.ArgumentParser) -> None:
    """Add arguments for the migrate command."""
    parser.add_argument(
        "-m",
        "--manifest",
        help="Migration manifest (default: from config)",
    )
    parser.add_argument(
        "-p",
        "--path",
        action="append",
        dest="paths",
        help="Candidate migration directory, repeatable (default: from config)",
    )


def handle_migrate(args, config: Config) -> None:
    """Handle migrate command.

    Runs the manifest's versioned migrations first, then its dump migrations.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    manifest = load_manifest(args.manifest or config.manifest)
    paths = args.paths or config.migration_paths

    db = Database(config.database)
    runner = MigrationRunner(
        db,
        table_name=config.table_name,
        comment_prefixes=config.comment_prefixes,
        on_progress=_print_progress,
    )

    try:
        if manifest.versioned:
            summary = runner.run_versioned(paths, manifest.versioned)
            print(
                f"Versioned: {len(summary.applied)} applied, "
                f"{len(summary.skipped)} skipped, now at version {summary.end_version}"
            )
        if manifest.dump:
            summary = runner.run_dump(paths, manifest.dump)
            print(f"Dump: {len(summary.applied)} applied, {len(summary.skipped)} skipped")
        if not manifest.versioned and not manifest.dump:
            print("Manifest lists no migrations.")
    finally:
        db.close()


def _print_progress(progress: MigrationProgress) -> None:
    print(f"  {progress.label} {progress.description}: {progress.percent}%")
