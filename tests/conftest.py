"""Pytest configuration and fixtures."""

import textwrap
from pathlib import Path

import pytest

from dbmigrate.core.config import DatabaseConfig
from dbmigrate.store.database import Database


@pytest.fixture
def test_db_url(tmp_path: Path) -> str:
    """Provide a temporary SQLite database URL for tests."""
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def database(test_db_url: str) -> Database:
    """Provide a connected database instance."""
    db = Database(DatabaseConfig(url=test_db_url, connect_retries=0))
    db.connect()
    yield db
    db.close()


@pytest.fixture
def connection(database: Database):
    """Provide an open migration connection."""
    with database.connection() as conn:
        yield conn


@pytest.fixture
def migrations_dir(tmp_path: Path) -> Path:
    """Provide an empty migration script directory."""
    path = tmp_path / "migrations"
    path.mkdir()
    return path


@pytest.fixture
def write_script(migrations_dir: Path):
    """Write a migration script into migrations_dir and return its file name."""

    def _write(name: str, body: str) -> str:
        (migrations_dir / name).write_text(textwrap.dedent(body), encoding="utf-8")
        return name

    return _write


@pytest.fixture
def table_names():
    """Return a helper listing the tables of a SQLite connection."""

    def _table_names(conn) -> set[str]:
        rows = conn.query_rows("SELECT name FROM sqlite_master WHERE type='table'")
        return {row[0] for row in rows}

    return _table_names
