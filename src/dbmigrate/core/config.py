"""Configuration management for dbmigrate."""

import os
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path

from .exceptions import ConfigurationError

DEFAULT_TABLE_NAME = "$migration"
DEFAULT_COMMENT_PREFIXES = ("/*", "#", "-- ")


@dataclass
class PoolConfig:
    """Connection pool configuration (ignored for SQLite)."""

    size: int = 5
    max_overflow: int = 0
    # Maximum connection age before it is recycled
    recycle_seconds: int = 1800
    # Test connections before handing them out
    pre_ping: bool = True
    timeout_seconds: float = 30.0


@dataclass
class DatabaseConfig:
    """Database connection configuration."""

    url: str = "sqlite:///migrations.db"
    echo: bool = False
    connect_retries: int = 3
    retry_delay_seconds: float = 1.0
    pool: PoolConfig = field(default_factory=PoolConfig)


@dataclass
class Config:
    """Main application configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    migration_paths: list[str] = field(default_factory=lambda: ["migrations"])
    manifest: str = "migrations.toml"
    table_name: str = DEFAULT_TABLE_NAME
    comment_prefixes: list[str] = field(
        default_factory=lambda: list(DEFAULT_COMMENT_PREFIXES)
    )
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls()._apply_env()

    @classmethod
    def from_file(cls, path: Path | str) -> "Config":
        """Load configuration from a TOML file, then apply environment overrides.

        Args:
            path: Path to the TOML configuration file.

        Returns:
            Loaded configuration.

        Raises:
            ConfigurationError: If the file cannot be read or parsed.
        """
        path = Path(path)
        try:
            with path.open("rb") as handle:
                data = tomllib.load(handle)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigurationError(f"Failed to load config {path}: {e}") from e

        config = cls()
        database = data.pop("database", {})
        pool = database.pop("pool", {})
        _update(config.pool_config, pool, "database.pool")
        _update(config.database, database, "database")
        _update(config, data, "config")
        return config._apply_env()

    @classmethod
    def from_env_or_file(cls, path: Path | str | None = None) -> "Config":
        """Load from an explicit path, else DBMIGRATE_CONFIG, else the environment."""
        if path is None:
            path = os.environ.get("DBMIGRATE_CONFIG")
        if path:
            return cls.from_file(path)
        return cls.from_env()

    @property
    def pool_config(self) -> PoolConfig:
        return self.database.pool

    def _apply_env(self) -> "Config":
        if url := os.environ.get("DBMIGRATE_DATABASE_URL"):
            self.database.url = url

        if paths := os.environ.get("DBMIGRATE_PATHS"):
            self.migration_paths = [p for p in paths.split(os.pathsep) if p]

        if manifest := os.environ.get("DBMIGRATE_MANIFEST"):
            self.manifest = manifest

        if table := os.environ.get("DBMIGRATE_TABLE"):
            self.table_name = table

        if level := os.environ.get("DBMIGRATE_LOG_LEVEL"):
            self.log_level = level.upper()

        return self


def _update(target, values: dict, section: str) -> None:
    """Copy known keys from a TOML table onto a config dataclass."""
    known = {f.name for f in fields(target)}
    for key, value in values.items():
        if key not in known or isinstance(value, dict):
            raise ConfigurationError(f"Unknown {section} option: {key}")
        setattr(target, key, value)
