"""Tests for configuration loading."""

import os
import textwrap

import pytest

from dbmigrate.core.config import DEFAULT_TABLE_NAME, Config
from dbmigrate.core.exceptions import ConfigurationError

ENV_VARS = (
    "DBMIGRATE_CONFIG",
    "DBMIGRATE_DATABASE_URL",
    "DBMIGRATE_PATHS",
    "DBMIGRATE_MANIFEST",
    "DBMIGRATE_TABLE",
    "DBMIGRATE_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Isolate tests from the caller's environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "dbmigrate.toml"
    path.write_text(
        textwrap.dedent(
            """\
            migration_paths = ["/etc/app/migrations", "migrations"]
            table_name = "schema_history"
            log_level = "DEBUG"

            [database]
            url = "postgresql://localhost/app"
            connect_retries = 5

            [database.pool]
            size = 10
            """
        )
    )
    return path


class TestDefaults:
    def test_defaults(self):
        config = Config.from_env()

        assert config.table_name == DEFAULT_TABLE_NAME
        assert config.migration_paths == ["migrations"]
        assert config.comment_prefixes == ["/*", "#", "-- "]
        assert config.database.url.startswith("sqlite:///")
        assert config.pool_config is config.database.pool


class TestFromEnv:
    """Tests for environment variable overrides."""

    def test_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DBMIGRATE_DATABASE_URL", "sqlite:///other.db")
        monkeypatch.setenv("DBMIGRATE_PATHS", f"a{os.pathsep}b")
        monkeypatch.setenv("DBMIGRATE_MANIFEST", "plan.toml")
        monkeypatch.setenv("DBMIGRATE_TABLE", "history")
        monkeypatch.setenv("DBMIGRATE_LOG_LEVEL", "debug")

        config = Config.from_env()

        assert config.database.url == "sqlite:///other.db"
        assert config.migration_paths == ["a", "b"]
        assert config.manifest == "plan.toml"
        assert config.table_name == "history"
        assert config.log_level == "DEBUG"


class TestFromFile:
    """Tests for TOML configuration files."""

    def test_loads_sections(self, config_file):
        config = Config.from_file(config_file)

        assert config.migration_paths == ["/etc/app/migrations", "migrations"]
        assert config.table_name == "schema_history"
        assert config.database.url == "postgresql://localhost/app"
        assert config.database.connect_retries == 5
        assert config.pool_config.size == 10
        assert config.pool_config.max_overflow == 0

    def test_env_wins_over_file(self, config_file, monkeypatch):
        monkeypatch.setenv("DBMIGRATE_TABLE", "from_env")

        assert Config.from_file(config_file).table_name == "from_env"

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text('tabel_name = "typo"\n')

        with pytest.raises(ConfigurationError, match="Unknown config option: tabel_name"):
            Config.from_file(path)

    def test_unknown_database_section(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[database.extra]\nx = 1\n")

        with pytest.raises(ConfigurationError, match="database option: extra"):
            Config.from_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Failed to load config"):
            Config.from_file(tmp_path / "missing.toml")

    def test_config_env_var(self, config_file, monkeypatch):
        """DBMIGRATE_CONFIG points at the file when no path is given."""
        monkeypatch.setenv("DBMIGRATE_CONFIG", str(config_file))

        assert Config.from_env_or_file().table_name == "schema_history"

    def test_explicit_path_wins(self, config_file, tmp_path, monkeypatch):
        monkeypatch.setenv("DBMIGRATE_CONFIG", str(tmp_path / "missing.toml"))

        assert Config.from_env_or_file(config_file).table_name == "schema_history"
