"""Migration ledger: the table recording applied versioned migrations.

Each applied or in-flight versioned migration owns one row. A row whose
``migration_created`` column is NULL belongs to a migration that is being
applied right now (or crashed mid-flight); its presence is the ledger lock.

The lock is advisory only. It stops a second coordinated run from applying
migrations while one is in flight, but two runners can still race to insert
the same next version, since nothing is selected FOR UPDATE. A single writer
is assumed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from ..core.config import DEFAULT_TABLE_NAME
from ..core.exceptions import DatabaseError

if TYPE_CHECKING:
    from ..store.connection import MigrationConnection
    from .descriptors import VersionedMigration

ID = "migration_id"
DESCRIPTION = "migration_description"
FILE = "migration_file"
CREATED = "migration_created"

# Column types for (id, description, file, created)
_MYSQL_TYPES = (
    "smallint unsigned NOT NULL",
    "tinytext CHARACTER SET ascii COLLATE ascii_general_ci NOT NULL",
    "tinytext CHARACTER SET ascii COLLATE ascii_general_ci NOT NULL",
    "int unsigned NULL",
)
_GENERIC_TYPES = (
    "INTEGER NOT NULL",
    "VARCHAR(255) NOT NULL",
    "VARCHAR(255) NOT NULL",
    "INTEGER NULL",
)
_COLUMN_TYPES = {"mysql": _MYSQL_TYPES, "mariadb": _MYSQL_TYPES}


@dataclass(frozen=True)
class LedgerEntry:
    """One ledger row."""

    id: int
    description: str
    file: str
    created: int | None

    @property
    def is_applied(self) -> bool:
        return self.created is not None


class MigrationLedger:
    """Reads and writes the migration ledger table."""

    def __init__(
        self,
        connection: MigrationConnection,
        table_name: str = DEFAULT_TABLE_NAME,
    ):
        """Initialize with a connection and ledger table name.

        Args:
            connection: Connection used for every ledger statement.
            table_name: Unescaped ledger table name.
        """
        self.connection = connection
        self.table_name = table_name
        self._table = connection.escape_identifier(table_name)
        self._id = connection.escape_identifier(ID)
        self._description = connection.escape_identifier(DESCRIPTION)
        self._file = connection.escape_identifier(FILE)
        self._created = connection.escape_identifier(CREATED)
        self._ensured: bool | None = None

    def ensure_table(self) -> bool:
        """Create the ledger table if it does not exist.

        Runs at most once per ledger instance. A failure to create the table
        is taken to mean it already exists.

        Returns:
            True if the table was created by this call.
        """
        if self._ensured is not None:
            return False

        types = _COLUMN_TYPES.get(self.connection.dialect_name, _GENERIC_TYPES)
        columns = ",".join(
            [
                f"{self._id} {types[0]}",
                f"{self._description} {types[1]}",
                f"{self._file} {types[2]}",
                f"{self._created} {types[3]}",
                f"PRIMARY KEY ({self._id})",
            ]
        )
        index = self.connection.escape_identifier(f"{self.table_name}_{CREATED}")

        try:
            self.connection.execute(f"CREATE TABLE {self._table} ({columns})")
            self.connection.execute(
                f"CREATE INDEX {index} ON {self._table} ({self._created})"
            )
            self.connection.commit()
        except DatabaseError as e:
            logger.debug(f"Ledger table not created: {e}")
            self._rollback_quietly()
            logger.info(f"Migrations table exists: {self.table_name}")
            self._ensured = False
            return False

        logger.info(f"Migrations table missing, auto-created: {self.table_name}")
        self._ensured = True
        return True

    def current_version(self) -> int:
        """Return the highest recorded version, or 0 if none or unreadable."""
        try:
            value = self.connection.query_scalar(
                f"SELECT MAX({self._id}) AS max_version FROM {self._table}"
            )
        except DatabaseError as e:
            logger.debug(f"Unable to read ledger version: {e}")
            self._rollback_quietly()
            return 0
        return int(value) if value is not None else 0

    def is_locked(self) -> bool:
        """Return True if any migration is in flight.

        An unreadable ledger is reported as unlocked.
        """
        try:
            count = self.connection.query_scalar(
                f"SELECT COUNT({self._id}) FROM {self._table} "
                f"WHERE {self._created} IS NULL"
            )
        except DatabaseError as e:
            logger.debug(f"Unable to read ledger lock: {e}")
            self._rollback_quietly()
            return False
        return bool(count)

    def lock(self, migration: VersionedMigration) -> None:
        """Insert the in-flight row for ``migration``."""
        logger.debug(f"Locking {self.table_name} for v{migration.version}")
        self.connection.execute(
            f"INSERT INTO {self._table} "
            f"({self._id},{self._description},{self._file}) VALUES ("
            f"{int(migration.version)},"
            f"{self.connection.escape_value(migration.description)},"
            f"{self.connection.escape_value(migration.file)})"
        )

    def unlock(self, migration: VersionedMigration, created: int) -> None:
        """Stamp ``migration``'s row with its completion time (epoch seconds)."""
        logger.debug(f"Unlocking {self.table_name} for v{migration.version}")
        self.connection.execute(
            f"UPDATE {self._table} SET {self._created}={int(created)} "
            f"WHERE {self._id}={int(migration.version)}"
        )

    def entries(self) -> list[LedgerEntry]:
        """Return all ledger rows ordered by version, or [] if unreadable."""
        try:
            rows = self.connection.query_rows(
                f"SELECT {self._id},{self._description},{self._file},{self._created} "
                f"FROM {self._table} ORDER BY {self._id}"
            )
        except DatabaseError as e:
            logger.debug(f"Unable to read ledger entries: {e}")
            self._rollback_quietly()
            return []
        return [
            LedgerEntry(
                id=int(row[0]),
                description=row[1],
                file=row[2],
                created=int(row[3]) if row[3] is not None else None,
            )
            for row in rows
        ]

    def release_stale_locks(self) -> int:
        """Delete in-flight rows left behind by a crashed run.

        Only for operator recovery; the migrator never calls this.

        Returns:
            Number of rows removed.
        """
        removed = self.connection.execute(
            f"DELETE FROM {self._table} WHERE {self._created} IS NULL"
        )
        self.connection.commit()
        removed = max(removed, 0)
        logger.info(f"Released {removed} stale lock(s) from {self.table_name}")
        return removed

    def _rollback_quietly(self) -> None:
        # Some backends refuse further statements after a failed one
        try:
            self.connection.rollback()
        except DatabaseError as e:
            logger.warning(f"Ignored an exception while rolling back: {e}")
