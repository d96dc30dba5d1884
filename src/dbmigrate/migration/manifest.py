"""TOML manifest describing the migrations to run.

Example manifest::

    [[versioned]]
    version = 1
    description = "Create users"
    file = "0001_users.sql"

    [[dump]]
    description = "Seed countries"
    file = "countries.sql"
    unless_table_has_rows = "countries"

Hooks cannot be expressed in a manifest; build descriptors in Python for
that.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

from ..core.exceptions import ConfigurationError, DatabaseError
from .descriptors import DumpMigration, Predicate, VersionedMigration

if TYPE_CHECKING:
    from ..store.connection import MigrationConnection


@dataclass
class Manifest:
    """Descriptors loaded from a manifest file."""

    versioned: list[VersionedMigration] = field(default_factory=list)
    dump: list[DumpMigration] = field(default_factory=list)


def table_is_empty(table: str) -> Predicate:
    """Build a predicate that is true while ``table`` has no rows.

    A missing table counts as empty.
    """

    def predicate(connection: MigrationConnection) -> bool:
        try:
            count = connection.query_scalar(
                f"SELECT COUNT(*) FROM {connection.escape_identifier(table)}"
            )
        except DatabaseError as e:
            logger.debug(f"Treating {table} as empty: {e}")
            connection.rollback()
            return True
        return not count

    return predicate


def load_manifest(path: Path | str) -> Manifest:
    """Load versioned and dump descriptors from a TOML manifest.

    Args:
        path: Manifest file path.

    Returns:
        Manifest with versioned migrations sorted by version.

    Raises:
        ConfigurationError: If the file is unreadable or an entry is invalid.
    """
    path = Path(path)
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Failed to load manifest {path}: {e}") from e

    manifest = Manifest()
    for index, entry in enumerate(data.get("versioned", []), start=1):
        manifest.versioned.append(_versioned(entry, index, path))
    for index, entry in enumerate(data.get("dump", []), start=1):
        manifest.dump.append(_dump(entry, index, path))

    manifest.versioned.sort(key=lambda m: m.version)
    return manifest


def _versioned(entry: Any, index: int, path: Path) -> VersionedMigration:
    _require(entry, ("version", "description", "file"), "versioned", index, path)
    try:
        return VersionedMigration(
            version=entry["version"],
            description=entry["description"],
            file=entry["file"],
        )
    except ValueError as e:
        raise ConfigurationError(f"{path}: versioned entry #{index}: {e}") from e


def _dump(entry: Any, index: int, path: Path) -> DumpMigration:
    _require(entry, ("description", "file"), "dump", index, path)
    kwargs: dict[str, Any] = {}
    if table := entry.get("unless_table_has_rows"):
        kwargs["is_executable_hook"] = table_is_empty(table)
    try:
        return DumpMigration(
            description=entry["description"],
            file=entry["file"],
            **kwargs,
        )
    except ValueError as e:
        raise ConfigurationError(f"{path}: dump entry #{index}: {e}") from e


def _require(entry: Any, keys: tuple[str, ...], kind: str, index: int, path: Path) -> None:
    if not isinstance(entry, dict):
        raise ConfigurationError(f"{path}: {kind} entry #{index} must be a table")
    missing = [key for key in keys if key not in entry]
    if missing:
        raise ConfigurationError(
            f"{path}: {kind} entry #{index} is missing {', '.join(missing)}"
        )
