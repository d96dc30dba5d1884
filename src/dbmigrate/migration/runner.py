"""Migration runner: resolves the script directory and drives a Migrator."""

from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Iterator, Sequence, TypeVar, Union

from loguru import logger

from ..core.config import DEFAULT_COMMENT_PREFIXES, DEFAULT_TABLE_NAME
from ..core.exceptions import ConfigurationError
from .descriptors import DumpMigration, VersionedMigration
from .migrator import Migrator, MigrationSummary, ProgressCallback

if TYPE_CHECKING:
    from ..store.database import Database

PathLike = Union[str, os.PathLike]
M = TypeVar("M", VersionedMigration, DumpMigration)


def resolve_base_path(candidates: PathLike | Iterable[PathLike]) -> Path:
    """Return the first candidate that is a readable directory.

    Args:
        candidates: One path or several, in order of preference.

    Returns:
        The selected directory.

    Raises:
        ConfigurationError: If no candidate qualifies.
    """
    if isinstance(candidates, (str, os.PathLike)):
        candidates = [candidates]
    candidates = [Path(c) for c in candidates]

    for path in candidates:
        if path.is_dir() and os.access(path, os.R_OK | os.X_OK):
            logger.debug(f"Using migration path {path}")
            return path

    shown = ", ".join(str(p) for p in candidates) or "(none)"
    raise ConfigurationError(f"No valid database migration path found in: {shown}")


class MigrationRunner:
    """Runs dump or versioned migrations against a database.

    Example:
        runner = MigrationRunner(Database("sqlite:///app.db"))
        runner.run_versioned(["/etc/app/migrations", "migrations"], migrations)
        print(runner.current_version())
    """

    def __init__(
        self,
        database: Database,
        *,
        table_name: str = DEFAULT_TABLE_NAME,
        comment_prefixes: Sequence[str] = DEFAULT_COMMENT_PREFIXES,
        on_progress: ProgressCallback | None = None,
    ):
        self.database = database
        self.table_name = table_name
        self.comment_prefixes = tuple(comment_prefixes)
        self.on_progress = on_progress

    def run_versioned(
        self,
        base_paths: PathLike | Iterable[PathLike],
        migrations: VersionedMigration | Iterable[VersionedMigration],
    ) -> MigrationSummary:
        """Apply versioned migrations found under the first valid base path."""
        migrations = _as_list(migrations, VersionedMigration)
        base_path = resolve_base_path(base_paths)
        with self._migrator(base_path) as migrator:
            return migrator.execute_versioned(migrations)

    def run_dump(
        self,
        base_paths: PathLike | Iterable[PathLike],
        migrations: DumpMigration | Iterable[DumpMigration],
    ) -> MigrationSummary:
        """Apply dump migrations found under the first valid base path."""
        migrations = _as_list(migrations, DumpMigration)
        base_path = resolve_base_path(base_paths)
        with self._migrator(base_path) as migrator:
            return migrator.execute_dump(migrations)

    def current_version(self) -> int:
        """Return the latest applied version (0 if none)."""
        with self._migrator(Path(".")) as migrator:
            return migrator.current_version()

    def is_locked(self) -> bool:
        """Return True if a versioned migration is in flight."""
        with self._migrator(Path(".")) as migrator:
            return migrator.is_locked()

    @contextmanager
    def _migrator(self, base_path: Path) -> Iterator[Migrator]:
        """Yield a Migrator over a fresh write connection."""
        self.database.connect()
        with self.database.connection() as connection:
            yield Migrator(
                connection,
                base_path,
                table_name=self.table_name,
                comment_prefixes=self.comment_prefixes,
                on_progress=self.on_progress,
            )


def _as_list(migrations, kind: type[M]) -> list[M]:
    if isinstance(migrations, (VersionedMigration, DumpMigration)):
        migrations = [migrations]
    migrations = list(migrations)

    if not migrations:
        raise ConfigurationError(f"No {kind.__name__} descriptors to run")
    for migration in migrations:
        if not isinstance(migration, kind):
            raise ConfigurationError(
                f"Expected {kind.__name__}, got {type(migration).__name__}: "
                f"{migration!r}"
            )
    return migrations
