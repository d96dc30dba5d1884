"""Tests for migration descriptors."""

import dataclasses

import pytest

from dbmigrate.migration.descriptors import DumpMigration, VersionedMigration


class TestVersionedMigration:
    """Tests for VersionedMigration."""

    def test_fields_and_repr(self):
        """repr shows version and description."""
        migration = VersionedMigration(version=3, description="Add users", file="3.sql")

        assert migration.version == 3
        assert "3" in repr(migration)
        assert "Add users" in repr(migration)

    @pytest.mark.parametrize("version", [0, -1, True, "2"])
    def test_invalid_version_rejected(self, version):
        """Version must be a positive integer."""
        with pytest.raises(ValueError, match="invalid version"):
            VersionedMigration(version=version, description="x", file="x.sql")

    def test_empty_description_rejected(self):
        """Description must not be blank."""
        with pytest.raises(ValueError, match="description"):
            VersionedMigration(version=1, description="  ", file="x.sql")

    def test_empty_file_rejected(self):
        """File must not be blank."""
        with pytest.raises(ValueError, match="no script file"):
            VersionedMigration(version=1, description="x", file="")

    def test_is_immutable(self):
        """Descriptors cannot be mutated."""
        migration = VersionedMigration(version=1, description="x", file="x.sql")

        with pytest.raises(dataclasses.FrozenInstanceError):
            migration.version = 2

    def test_hooks_default_to_noop(self):
        """Missing hooks do nothing."""
        migration = VersionedMigration(version=1, description="x", file="x.sql")

        migration.execute_pre(object())
        migration.execute_post(object())

    def test_hooks_receive_connection(self):
        """Hooks are called with the connection."""
        calls = []
        migration = VersionedMigration(
            version=1,
            description="x",
            file="x.sql",
            pre_hook=lambda conn: calls.append(("pre", conn)),
            post_hook=lambda conn: calls.append(("post", conn)),
        )
        conn = object()

        migration.execute_pre(conn)
        migration.execute_post(conn)

        assert calls == [("pre", conn), ("post", conn)]


class TestDumpMigration:
    """Tests for DumpMigration."""

    def test_executable_by_default(self):
        """Without a predicate a dump migration always runs."""
        migration = DumpMigration(description="Seed", file="seed.sql")

        assert migration.is_executable(object()) is True
        assert "Seed" in repr(migration)

    def test_predicate_decides(self):
        """The predicate result is returned as a bool."""
        migration = DumpMigration(
            description="Seed", file="seed.sql", is_executable_hook=lambda conn: 0
        )

        assert migration.is_executable(object()) is False

    def test_has_no_version(self):
        """Dump migrations carry no version."""
        migration = DumpMigration(description="Seed", file="seed.sql")

        assert not hasattr(migration, "version")
