"""Versioned and dump SQL migrations.

Example:
    from dbmigrate.migration import MigrationRunner, VersionedMigration
    from dbmigrate.store import Database

    runner = MigrationRunner(Database("sqlite:///app.db"))
    runner.run_versioned(
        "migrations",
        [VersionedMigration(version=1, description="Users", file="0001.sql")],
    )
"""

from .descriptors import BaseMigration, DumpMigration, Migration, VersionedMigration
from .ledger import LedgerEntry, MigrationLedger
from .manifest import Manifest, load_manifest, table_is_empty
from .migrator import (
    MigrationAttempt,
    MigrationPhase,
    MigrationProgress,
    MigrationSummary,
    Migrator,
)
from .parser import load_script, parse_commands, parse_script
from .runner import MigrationRunner, resolve_base_path

__all__ = [
    "BaseMigration",
    "DumpMigration",
    "Migration",
    "VersionedMigration",
    "LedgerEntry",
    "MigrationLedger",
    "Manifest",
    "load_manifest",
    "table_is_empty",
    "MigrationAttempt",
    "MigrationPhase",
    "MigrationProgress",
    "MigrationSummary",
    "Migrator",
    "load_script",
    "parse_commands",
    "parse_script",
    "MigrationRunner",
    "resolve_base_path",
]
