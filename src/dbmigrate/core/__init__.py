"""Core configuration and exceptions for dbmigrate."""

from .config import (
    DEFAULT_COMMENT_PREFIXES,
    DEFAULT_TABLE_NAME,
    Config,
    DatabaseConfig,
    PoolConfig,
)
from .exceptions import (
    CommitError,
    ConfigurationError,
    ContinuityError,
    DatabaseError,
    LedgerLockedError,
    MigrateError,
    MigrationFailedError,
    ScriptNotFoundError,
)

__all__ = [
    "DEFAULT_COMMENT_PREFIXES",
    "DEFAULT_TABLE_NAME",
    "Config",
    "DatabaseConfig",
    "PoolConfig",
    "MigrateError",
    "ConfigurationError",
    "DatabaseError",
    "LedgerLockedError",
    "ContinuityError",
    "ScriptNotFoundError",
    "MigrationFailedError",
    "CommitError",
]
