"""Tests for the migration runner."""

from pathlib import Path

import pytest

from dbmigrate.core.config import DatabaseConfig
from dbmigrate.core.exceptions import ConfigurationError, ContinuityError
from dbmigrate.migration.descriptors import DumpMigration, VersionedMigration
from dbmigrate.migration.runner import MigrationRunner, resolve_base_path
from dbmigrate.store.database import Database


@pytest.fixture
def unconnected_db(test_db_url: str) -> Database:
    """Provide a database that has not been connected yet."""
    db = Database(DatabaseConfig(url=test_db_url, connect_retries=0))
    yield db
    db.close()


class TestResolveBasePath:
    """Tests for resolve_base_path."""

    def test_first_existing_directory_wins(self, tmp_path: Path):
        """Missing candidates are skipped."""
        path = resolve_base_path([tmp_path / "missing", tmp_path])

        assert path == tmp_path

    def test_accepts_single_path(self, tmp_path: Path):
        """A bare path is a one-element candidate list."""
        assert resolve_base_path(str(tmp_path)) == tmp_path

    def test_file_is_not_a_directory(self, tmp_path: Path):
        """Regular files do not qualify."""
        file = tmp_path / "script.sql"
        file.write_text("SELECT 1;\n")

        with pytest.raises(ConfigurationError):
            resolve_base_path([file])

    def test_no_candidate_found(self, tmp_path: Path):
        """The error lists every candidate tried."""
        with pytest.raises(ConfigurationError, match="No valid database migration path") as excinfo:
            resolve_base_path([tmp_path / "a", tmp_path / "b"])

        assert str(tmp_path / "a") in str(excinfo.value)
        assert str(tmp_path / "b") in str(excinfo.value)


class TestMigrationRunner:
    """Tests for MigrationRunner."""

    def test_run_versioned(self, unconnected_db, migrations_dir, write_script):
        """Connects lazily and applies the migrations."""
        write_script("0001.sql", "CREATE TABLE a (id INTEGER);\n")
        write_script("0002.sql", "CREATE TABLE b (id INTEGER);\n")
        runner = MigrationRunner(unconnected_db)

        summary = runner.run_versioned(
            [migrations_dir.parent / "missing", migrations_dir],
            [
                VersionedMigration(version=1, description="A", file="0001.sql"),
                VersionedMigration(version=2, description="B", file="0002.sql"),
            ],
        )

        assert summary.end_version == 2
        assert runner.current_version() == 2
        assert runner.is_locked() is False

    def test_single_descriptor(self, unconnected_db, migrations_dir, write_script):
        """A lone descriptor is accepted."""
        write_script("0001.sql", "CREATE TABLE a (id INTEGER);\n")
        runner = MigrationRunner(unconnected_db)

        runner.run_versioned(
            migrations_dir, VersionedMigration(version=1, description="A", file="0001.sql")
        )

        assert runner.current_version() == 1

    def test_run_dump(self, unconnected_db, migrations_dir, write_script):
        """Dump migrations run through the same runner."""
        write_script("seed.sql", "CREATE TABLE seeded (id INTEGER);\n")
        runner = MigrationRunner(unconnected_db)

        summary = runner.run_dump(
            migrations_dir, [DumpMigration(description="Seed", file="seed.sql")]
        )

        assert len(summary.applied) == 1
        assert runner.current_version() == 0

    def test_missing_path_fails_before_connecting(self, unconnected_db, tmp_path):
        """Path resolution happens before any database access."""
        runner = MigrationRunner(unconnected_db)

        with pytest.raises(ConfigurationError):
            runner.run_versioned(
                [tmp_path / "missing"],
                [VersionedMigration(version=1, description="A", file="0001.sql")],
            )

        assert unconnected_db._engine is None

    def test_empty_collection_rejected(self, unconnected_db, migrations_dir):
        """Running nothing is a configuration error."""
        with pytest.raises(ConfigurationError, match="No VersionedMigration"):
            MigrationRunner(unconnected_db).run_versioned(migrations_dir, [])

    def test_wrong_kind_rejected(self, unconnected_db, migrations_dir):
        """Dump descriptors cannot be run as versioned ones."""
        with pytest.raises(ConfigurationError, match="Expected VersionedMigration"):
            MigrationRunner(unconnected_db).run_versioned(
                migrations_dir, [DumpMigration(description="Seed", file="seed.sql")]
            )

    def test_errors_propagate(self, unconnected_db, migrations_dir, write_script):
        """Migrator errors reach the caller unchanged."""
        write_script("0002.sql", "CREATE TABLE b (id INTEGER);\n")

        with pytest.raises(ContinuityError):
            MigrationRunner(unconnected_db).run_versioned(
                migrations_dir,
                [VersionedMigration(version=2, description="B", file="0002.sql")],
            )

    def test_custom_table_name(self, unconnected_db, migrations_dir, write_script, table_names):
        """The ledger table name is configurable."""
        write_script("0001.sql", "CREATE TABLE a (id INTEGER);\n")
        runner = MigrationRunner(unconnected_db, table_name="schema_history")

        runner.run_versioned(
            migrations_dir, VersionedMigration(version=1, description="A", file="0001.sql")
        )

        with unconnected_db.connection() as conn:
            assert "schema_history" in table_names(conn)
            assert "$migration" not in table_names(conn)
