"""Custom exceptions for dbmigrate."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..migration.descriptors import Migration
    from ..migration.migrator import MigrationAttempt


class MigrateError(Exception):
    """Base exception for all dbmigrate errors."""

    pass


class ConfigurationError(MigrateError):
    """Invalid configuration, manifest or migration path."""

    pass


class DatabaseError(MigrateError):
    """Database operation failed."""

    pass


class LedgerLockedError(MigrateError):
    """The migration ledger has an in-flight migration."""

    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(
            f"Migration table {table_name} is locked, is another process active?"
        )


class ContinuityError(MigrateError):
    """Versioned migrations are not continuous."""

    def __init__(self, expected: int, migration: Migration):
        """Initialize exception with the expected version and offending migration.

        Args:
            expected: The version that should have come next.
            migration: The migration found instead.
        """
        self.expected = expected
        self.migration = migration
        super().__init__(
            f"Migration plan #{expected} is not continuous (found "
            f"#{migration.version}: {migration.description}), "
            "database migration is out of sync!"
        )


class ScriptNotFoundError(MigrateError):
    """Migration script is missing or unreadable."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Migration script not found: {path}")


class MigrationFailedError(MigrateError):
    """A migration failed and its unit of work was rolled back."""

    _PHASE_MESSAGES = {
        "locking": "failed while locking the migration ledger",
        "pre": "failed during pre-migration",
        "executing": "failed while running migration",
        "post": "failed during post-migration",
        "unlocking": "failed while unlocking the migration ledger",
    }

    def __init__(self, attempt: MigrationAttempt):
        """Initialize exception from a failed attempt.

        Args:
            attempt: The attempt that failed, carrying phase and executed commands.
        """
        self.attempt = attempt
        self.migration = attempt.migration
        self.phase = attempt.failed_phase
        self.executed_commands = tuple(attempt.executed_commands)
        phase_name = self.phase.value if self.phase else "unknown"
        reason = self._PHASE_MESSAGES.get(phase_name, "failed")
        message = (
            f"Migration {attempt.label} ({self.migration.description}) {reason}: "
            f"{attempt.error}"
        )
        if self.executed_commands:
            echoed = "\n".join(f"> {command}" for command in self.executed_commands)
            message += (
                "\nThese migration commands were already executed, "
                f"the last one probably caused the error:\n{echoed}"
            )
        super().__init__(message)


class CommitError(MigrateError):
    """Committing an otherwise successful migration failed."""

    def __init__(self, attempt: MigrationAttempt):
        self.attempt = attempt
        self.migration = attempt.migration
        super().__init__(
            f"Failed to commit migration {attempt.label} "
            f"({attempt.migration.description}): {attempt.error}"
        )
