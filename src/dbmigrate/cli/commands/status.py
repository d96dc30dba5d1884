"""Status and unlock commands for dbmigrate CLI."""

from datetime import datetime

from ...core.config import Config
from ...migration import MigrationLedger
from ...store.database import Database


def handle_status(args, config: Config) -> None:
    """Handle status command.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    db = Database(config.database)
    db.connect()

    try:
        with db.connection() as connection:
            ledger = MigrationLedger(connection, config.table_name)
            ledger.ensure_table()
            _print_status(ledger)
    finally:
        db.close()


def handle_unlock(args, config: Config) -> None:
    """Handle unlock command: drop rows of migrations that never finished."""
    db = Database(config.database)
    db.connect()

    try:
        with db.connection() as connection:
            ledger = MigrationLedger(connection, config.table_name)
            ledger.ensure_table()
            removed = ledger.release_stale_locks()
            print(f"Released {removed} stale lock(s).")
    finally:
        db.close()


def _print_status(ledger: MigrationLedger) -> None:
    print("Migration Status")
    print("=" * 50)
    print(f"Table: {ledger.table_name}")
    print(f"Current version: {ledger.current_version()}")
    print(f"Locked: {'yes' if ledger.is_locked() else 'no'}")
    print()

    entries = ledger.entries()
    if not entries:
        print("No migrations applied yet.")
        return

    for entry in entries:
        if entry.is_applied:
            when = datetime.fromtimestamp(entry.created).isoformat(timespec="seconds")
        else:
            when = "IN FLIGHT"
        print(f"  v{entry.id:<5} {when:<20} {entry.description} ({entry.file})")
