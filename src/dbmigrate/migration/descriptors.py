"""Migration descriptors.

Two kinds of migration exist:

- ``VersionedMigration``: applied once, in strictly increasing version order
  with no gaps, and recorded in the migration ledger.
- ``DumpMigration``: not recorded anywhere; its ``is_executable`` predicate
  decides on every run whether the script still needs to run.

Both carry a description, a script file name relative to the migration base
path, and optional pre/post hooks that receive the migration connection.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Union

if TYPE_CHECKING:
    from ..store.connection import MigrationConnection

Hook = Callable[["MigrationConnection"], None]
Predicate = Callable[["MigrationConnection"], bool]


@dataclass(frozen=True, kw_only=True)
class BaseMigration:
    """Fields and hooks shared by both migration kinds."""

    description: str
    file: str
    pre_hook: Hook | None = None
    post_hook: Hook | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.description, str) or not self.description.strip():
            raise ValueError("Migration description must not be empty")
        if not isinstance(self.file, str) or not self.file.strip():
            raise ValueError(f"Migration {self.description!r} has no script file")

    def execute_pre(self, connection: MigrationConnection) -> None:
        """Run the pre-migration hook, if any."""
        if self.pre_hook is not None:
            self.pre_hook(connection)

    def execute_post(self, connection: MigrationConnection) -> None:
        """Run the post-migration hook, if any."""
        if self.post_hook is not None:
            self.post_hook(connection)


@dataclass(frozen=True, kw_only=True)
class VersionedMigration(BaseMigration):
    """A migration applied exactly once, identified by its version."""

    version: int

    def __post_init__(self) -> None:
        super().__post_init__()
        if (
            not isinstance(self.version, int)
            or isinstance(self.version, bool)
            or self.version <= 0
        ):
            raise ValueError(
                f"Migration {self.description!r} has invalid version {self.version!r}"
            )

    def __repr__(self) -> str:
        return f"VersionedMigration({self.version}, {self.description!r})"


def _always(connection: MigrationConnection) -> bool:
    return True


@dataclass(frozen=True, kw_only=True)
class DumpMigration(BaseMigration):
    """A migration that decides for itself whether it should run."""

    is_executable_hook: Predicate = _always

    def is_executable(self, connection: MigrationConnection) -> bool:
        """Return True if this migration should run against ``connection``."""
        return bool(self.is_executable_hook(connection))

    def __repr__(self) -> str:
        return f"DumpMigration({self.description!r})"


Migration = Union[VersionedMigration, DumpMigration]
