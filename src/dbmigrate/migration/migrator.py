"""Migration engine.

Applies versioned and dump migrations one at a time, each inside its own
transaction, and reports progress through loguru and an optional callback.

A versioned migration moves through these phases::

    PENDING -> LOCKING -> PRE -> EXECUTING -> POST -> UNLOCKING -> COMMITTED

and to ROLLED_BACK from any of them on failure. Dump migrations skip the
LOCKING and UNLOCKING phases. A failure rolls back the transaction, which also
removes the ledger row inserted while locking, and aborts the whole run.

Example:
    with database.connection() as connection:
        migrator = Migrator(connection, Path("migrations"))
        summary = migrator.execute_versioned(migrations)
        print(f"Now at version {summary.end_version}")
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable, Sequence

from loguru import logger

from ..core.config import DEFAULT_COMMENT_PREFIXES, DEFAULT_TABLE_NAME
from ..core.exceptions import (
    CommitError,
    ContinuityError,
    DatabaseError,
    LedgerLockedError,
    MigrationFailedError,
)
from .descriptors import DumpMigration, VersionedMigration
from .ledger import MigrationLedger
from .parser import load_script

if TYPE_CHECKING:
    from ..store.connection import MigrationConnection, Transaction
    from .descriptors import Migration


class MigrationPhase(str, Enum):
    """Where a migration attempt currently is."""

    PENDING = "pending"
    LOCKING = "locking"
    PRE = "pre"
    EXECUTING = "executing"
    POST = "post"
    UNLOCKING = "unlocking"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass
class MigrationAttempt:
    """State of a single migration attempt.

    Attributes:
        migration: The migration being applied.
        label: Short display name (``v3`` or ``dump #1``).
        phase: Current phase.
        failed_phase: Phase that was active when an error occurred.
        executed_commands: Statements executed so far, in order.
        started: When the attempt started.
        ended: When the attempt finished, successfully or not.
        error: The error that aborted the attempt, if any.
    """

    migration: Migration
    label: str
    phase: MigrationPhase = MigrationPhase.PENDING
    failed_phase: MigrationPhase | None = None
    executed_commands: list[str] = field(default_factory=list)
    started: datetime = field(default_factory=datetime.now)
    ended: datetime | None = None
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        return self.phase is MigrationPhase.COMMITTED


@dataclass(frozen=True)
class MigrationProgress:
    """Progress of the script currently executing."""

    label: str
    description: str
    percent: int
    executed: int
    total: int


@dataclass
class MigrationSummary:
    """Outcome of one migrator run."""

    started: datetime = field(default_factory=datetime.now)
    ended: datetime | None = None
    applied: list[MigrationAttempt] = field(default_factory=list)
    skipped: list[Migration] = field(default_factory=list)
    failed: MigrationAttempt | None = None
    start_version: int | None = None
    end_version: int | None = None

    @property
    def duration(self) -> float:
        """Run duration in seconds (0.0 while still running)."""
        if self.ended is None:
            return 0.0
        return (self.ended - self.started).total_seconds()


ProgressCallback = Callable[[MigrationProgress], None]


class Migrator:
    """Migrates a database to the most recent migration.

    One migrator uses one connection, serially. It is not safe to run two
    migrators against the same database at the same time; the ledger lock
    only detects an in-flight run, it does not prevent a race.
    """

    def __init__(
        self,
        connection: MigrationConnection,
        base_path: Path | str,
        *,
        table_name: str = DEFAULT_TABLE_NAME,
        comment_prefixes: Sequence[str] = DEFAULT_COMMENT_PREFIXES,
        on_progress: ProgressCallback | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the migrator.

        Args:
            connection: Non-autocommit connection to migrate.
            base_path: Directory holding the migration scripts.
            table_name: Unescaped ledger table name.
            comment_prefixes: Prefixes marking full-line script comments.
            on_progress: Called at every 10% of executed statements.
            clock: Source of epoch seconds for ledger timestamps.
        """
        self.connection = connection
        self.base_path = Path(base_path)
        self.comment_prefixes = tuple(comment_prefixes)
        self.ledger = MigrationLedger(connection, table_name)
        self._on_progress = on_progress
        self._clock = clock

    def current_version(self) -> int:
        """Return the latest applied version (0 if none)."""
        self.ledger.ensure_table()
        return self.ledger.current_version()

    def is_locked(self) -> bool:
        """Return True if a versioned migration is in flight."""
        self.ledger.ensure_table()
        return self.ledger.is_locked()

    def execute_versioned(
        self, migrations: Iterable[VersionedMigration]
    ) -> MigrationSummary:
        """Apply pending versioned migrations in order.

        Migrations at or below the current version are skipped. The next
        migration must carry exactly the current version plus one.

        Args:
            migrations: Versioned migrations in ascending version order.

        Returns:
            Summary of the run.

        Raises:
            LedgerLockedError: If another migration is in flight.
            ContinuityError: If a version is missing or duplicated.
            MigrationFailedError: If a migration failed and was rolled back.
            CommitError: If committing a migration failed.
        """
        migrations = list(migrations)
        summary = MigrationSummary()

        self.ledger.ensure_table()
        version = self.ledger.current_version()
        summary.start_version = summary.end_version = version
        logger.info(f"Current version: {version}")
        logger.info(f"Number of migrations: {len(migrations)}")

        try:
            for migration in migrations:
                if self.ledger.is_locked():
                    raise LedgerLockedError(self.ledger.table_name)

                if migration.version <= version:
                    logger.debug(f"Skipping v{migration.version}, already applied")
                    summary.skipped.append(migration)
                    continue

                expected = version + 1
                if migration.version != expected:
                    raise ContinuityError(expected, migration)

                attempt = MigrationAttempt(migration=migration, label=f"v{expected}")
                self._apply(attempt, f"migration_v{expected}", summary)
                version = expected
                summary.end_version = version
        finally:
            self._finish(summary)

        return summary

    def execute_dump(self, migrations: Iterable[DumpMigration]) -> MigrationSummary:
        """Apply dump migrations whose predicate says they should run.

        Args:
            migrations: Dump migrations, applied in the given order.

        Returns:
            Summary of the run.

        Raises:
            LedgerLockedError: If a versioned migration is in flight.
            MigrationFailedError: If a migration failed and was rolled back.
            CommitError: If committing a migration failed.
        """
        migrations = list(migrations)
        summary = MigrationSummary()

        self.ledger.ensure_table()
        logger.info(f"Number of dump migrations: {len(migrations)}")

        try:
            for index, migration in enumerate(migrations, start=1):
                if self.ledger.is_locked():
                    raise LedgerLockedError(self.ledger.table_name)

                if not migration.is_executable(self.connection):
                    logger.info(f"Skipping dump migration: {migration.description}")
                    summary.skipped.append(migration)
                    continue

                attempt = MigrationAttempt(migration=migration, label=f"dump #{index}")
                self._apply(attempt, f"migration_dump_{index}", summary)
        finally:
            self._finish(summary)

        return summary

    def _apply(
        self, attempt: MigrationAttempt, unit: str, summary: MigrationSummary
    ) -> None:
        """Run one migration inside its own unit of work."""
        migration = attempt.migration
        versioned = isinstance(migration, VersionedMigration)
        logger.info(f"{attempt.label} -> {migration.description}")

        transaction = self.connection.begin(unit)
        try:
            if versioned:
                attempt.phase = MigrationPhase.LOCKING
                self.ledger.lock(migration)

            attempt.phase = MigrationPhase.PRE
            migration.execute_pre(self.connection)

            attempt.phase = MigrationPhase.EXECUTING
            self._execute_script(attempt)

            attempt.phase = MigrationPhase.POST
            migration.execute_post(self.connection)

            if versioned:
                attempt.phase = MigrationPhase.UNLOCKING
                self.ledger.unlock(migration, int(self._clock()))
        except Exception as e:
            attempt.error = e
            attempt.failed_phase = attempt.phase
            self._rollback(transaction, attempt)
            summary.failed = attempt
            error = MigrationFailedError(attempt)
            self._report_failure(error)
            raise error from e

        self._commit(transaction, attempt, summary)
        summary.applied.append(attempt)

    def _execute_script(self, attempt: MigrationAttempt) -> None:
        script = self.base_path / attempt.migration.file
        commands = load_script(script, self.comment_prefixes)
        total = len(commands)
        if not total:
            logger.warning(f"Migration plan {attempt.label} is empty: {script}")
            return

        percent = 0
        for index, command in enumerate(commands, start=1):
            attempt.executed_commands.append(command)
            self.connection.execute(command)
            reached = (index * 100 // total) // 10 * 10
            if reached > percent:
                percent = reached
                self._report_progress(attempt, percent, index, total)

    def _report_progress(
        self, attempt: MigrationAttempt, percent: int, executed: int, total: int
    ) -> None:
        logger.info(f"{attempt.label}: {percent}% ({executed}/{total} statements)")
        if self._on_progress is not None:
            self._on_progress(
                MigrationProgress(
                    label=attempt.label,
                    description=attempt.migration.description,
                    percent=percent,
                    executed=executed,
                    total=total,
                )
            )

    def _commit(
        self,
        transaction: Transaction,
        attempt: MigrationAttempt,
        summary: MigrationSummary,
    ) -> None:
        try:
            transaction.commit()
        except DatabaseError as e:
            # Nothing failed before, so a failing commit is serious
            attempt.error = e
            attempt.failed_phase = MigrationPhase.COMMITTED
            self._rollback(transaction, attempt)
            summary.failed = attempt
            logger.error(f"Failed to commit {attempt.label}: {e}")
            raise CommitError(attempt) from e

        attempt.phase = MigrationPhase.COMMITTED
        attempt.ended = datetime.now()
        logger.info(f"{attempt.label} committed")

    def _rollback(self, transaction: Transaction, attempt: MigrationAttempt) -> None:
        attempt.phase = MigrationPhase.ROLLED_BACK
        attempt.ended = datetime.now()
        try:
            transaction.rollback()
            logger.info(f"{attempt.label} rolled back")
        except DatabaseError as e:
            logger.warning(f"Ignored an exception while rolling back: {e}")

    def _report_failure(self, error: MigrationFailedError) -> None:
        logger.error(str(error).splitlines()[0])
        if error.phase is MigrationPhase.EXECUTING and error.executed_commands:
            logger.error(
                "These migration commands were already executed, "
                "the last one probably caused the error:"
            )
            for command in error.executed_commands:
                logger.error(f"> {command}")

    def _finish(self, summary: MigrationSummary) -> None:
        summary.ended = datetime.now()
        logger.info(f"Started: {summary.started.isoformat(timespec='seconds')}")
        logger.info(f"Ended: {summary.ended.isoformat(timespec='seconds')}")
        logger.info(
            f"Database migration finished in {summary.duration * 1000:.0f} milliseconds "
            f"({len(summary.applied)} applied, {len(summary.skipped)} skipped"
            f"{', 1 failed' if summary.failed else ''})"
        )
