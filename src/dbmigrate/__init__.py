"""dbmigrate - versioned SQL schema migrations with a ledger table."""

from .core import Config, MigrateError
from .migration import DumpMigration, MigrationRunner, Migrator, VersionedMigration
from .store import Database

__version__ = "1.0.0"

__all__ = [
    "Config",
    "Database",
    "DumpMigration",
    "MigrateError",
    "MigrationRunner",
    "Migrator",
    "VersionedMigration",
]
