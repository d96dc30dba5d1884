"""Write helpers for migration hooks and dump predicates.

Keys are unescaped column names. Values are SQL literals that were already
escaped by the caller (usually via ``connection.escape_value``), so numbers
and expressions such as ``NOW()`` pass through unchanged.

Example:
    def seed_admin(connection):
        insert_into(
            connection,
            "users",
            {"id": "1", "name": connection.escape_value("admin")},
            ignore_if_exists=True,
        )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Mapping

if TYPE_CHECKING:
    from .connection import MigrationConnection


def escape_identifiers(connection: MigrationConnection, names: Iterable[str]) -> str:
    """Escape and comma-join identifiers."""
    return ",".join(connection.escape_identifier(name) for name in names)


def escape_values(connection: MigrationConnection, values: Iterable[str]) -> str:
    """Escape and comma-join string values."""
    return ",".join(connection.escape_value(value) for value in values)


def insert_into(
    connection: MigrationConnection,
    table: str,
    values: Mapping[str, str],
    ignore_if_exists: bool = False,
) -> int:
    """Insert one row into a table.

    Args:
        connection: Connection to execute against.
        table: Unescaped table name.
        values: Unescaped column names mapped to escaped values.
        ignore_if_exists: Do nothing if the same row already exists.

    Returns:
        Number of affected rows.
    """
    if not values:
        raise ValueError("insert_into() requires at least one value")

    dialect = connection.dialect_name
    verb = "INSERT"
    suffix = ""
    if ignore_if_exists:
        if dialect in ("mysql", "mariadb"):
            verb = "INSERT IGNORE"
        elif dialect == "sqlite":
            verb = "INSERT OR IGNORE"
        else:
            suffix = " ON CONFLICT DO NOTHING"

    query = (
        f"{verb} INTO {connection.escape_identifier(table)} "
        f"({escape_identifiers(connection, values.keys())}) "
        f"VALUES ({','.join(values.values())}){suffix}"
    )
    return connection.execute(query)


def update(
    connection: MigrationConnection,
    table: str,
    set_values: Mapping[str, str],
    where: str | Iterable[str],
) -> int:
    """Update rows in a table.

    Args:
        connection: Connection to execute against.
        table: Unescaped table name.
        set_values: Unescaped column names mapped to escaped values.
        where: Escaped WHERE clause, or fragments joined with spaces.

    Returns:
        Number of affected rows.
    """
    if not set_values:
        raise ValueError("update() requires at least one value")

    assignments = ",".join(
        f"{connection.escape_identifier(key)}={value}"
        for key, value in set_values.items()
    )
    query = (
        f"UPDATE {connection.escape_identifier(table)} SET {assignments} "
        f"WHERE ({_where(where)})"
    )
    return connection.execute(query)


def delete_from(
    connection: MigrationConnection,
    table: str,
    where: str | Iterable[str],
) -> int:
    """Delete rows from a table matching an escaped WHERE clause."""
    query = f"DELETE FROM {connection.escape_identifier(table)} WHERE ({_where(where)})"
    return connection.execute(query)


def _where(where: str | Iterable[str]) -> str:
    clause = where if isinstance(where, str) else " ".join(where)
    if not clause.strip():
        # An empty clause would touch every row
        raise ValueError("WHERE clause must not be empty")
    return clause
