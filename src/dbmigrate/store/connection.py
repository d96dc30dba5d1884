"""Connection capability consumed by the migration engine.

The engine never talks to a driver directly. It depends on the small
``MigrationConnection`` protocol below, which ``SqlAlchemyConnection``
implements over a SQLAlchemy ``Connection``.

Example:
    with database.connection() as connection:
        connection.execute("CREATE TABLE t (a INT)")
        count = connection.query_scalar("SELECT COUNT(*) FROM t")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from ..core.exceptions import DatabaseError

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection, Row
    from sqlalchemy.engine.interfaces import Dialect

_MYSQL_DIALECTS = frozenset({"mysql", "mariadb"})


@runtime_checkable
class Transaction(Protocol):
    """A unit of work scoped to a single migration."""

    name: str

    def commit(self) -> None:
        """Make the unit of work durable."""
        ...

    def rollback(self) -> None:
        """Undo everything done inside the unit of work."""
        ...


@runtime_checkable
class MigrationConnection(Protocol):
    """Minimal database capability used by migrations and their hooks."""

    @property
    def dialect_name(self) -> str:
        """Name of the backend dialect (sqlite, mysql, postgresql, ...)."""
        ...

    def execute(self, statement: str) -> int:
        """Execute a statement and return the affected row count."""
        ...

    def query_scalar(self, statement: str) -> Any:
        """Execute a query and return the first column of the first row."""
        ...

    def query_rows(self, statement: str) -> list[Row]:
        """Execute a query and return all rows."""
        ...

    def escape_identifier(self, name: str) -> str:
        """Quote a table, column or index name."""
        ...

    def escape_value(self, value: str) -> str:
        """Quote a string literal."""
        ...

    def escape_like(self, value: str) -> str:
        """Escape LIKE wildcards in a value (not quoted)."""
        ...

    def begin(self, name: str) -> Transaction:
        """Open a unit of work named ``name``."""
        ...

    def commit(self) -> None:
        """Commit the connection-level transaction."""
        ...

    def rollback(self) -> None:
        """Roll back the connection-level transaction."""
        ...


class SqlAlchemyTransaction:
    """Unit of work backed by a top-level transaction.

    Any read-only work pending on the connection (ledger checks, dump
    predicates) is committed before the transaction starts. A backend that
    commits implicitly (MySQL DDL) leaves the driver in a fresh transaction,
    which ``commit`` then completes.
    """

    def __init__(self, connection: Connection, name: str):
        self.name = name
        try:
            if connection.in_transaction():
                connection.commit()
            self._transaction = connection.begin()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to begin {name}: {e}") from e

    def commit(self) -> None:
        try:
            self._transaction.commit()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to commit {self.name}: {e}") from e

    def rollback(self) -> None:
        try:
            if self._transaction.is_active:
                self._transaction.rollback()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to roll back {self.name}: {e}") from e


class SqlAlchemyConnection:
    """``MigrationConnection`` over a SQLAlchemy ``Connection``.

    Statements are sent verbatim to the driver: no bound parameters are
    used, so ``%`` and ``:name`` in migration scripts are never interpreted.
    """

    def __init__(self, connection: Connection):
        """Initialize with a SQLAlchemy connection.

        Args:
            connection: An open, non-autocommit SQLAlchemy connection.
        """
        self._connection = connection
        self._raw = connection.execution_options(no_parameters=True)

    @property
    def dialect(self) -> Dialect:
        return self._connection.dialect

    @property
    def dialect_name(self) -> str:
        return self._connection.dialect.name

    def execute(self, statement: str) -> int:
        """Execute a statement.

        Args:
            statement: Literal SQL statement.

        Returns:
            Number of affected rows, or -1 when the driver does not report it.

        Raises:
            DatabaseError: If the statement fails.
        """
        try:
            result = self._raw.exec_driver_sql(statement)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Statement execution failed: {e}") from e
        rowcount = result.rowcount
        result.close()
        return rowcount

    def query_scalar(self, statement: str) -> Any:
        """Execute a query and return its first column of the first row.

        Raises:
            DatabaseError: If the query fails.
        """
        try:
            return self._raw.exec_driver_sql(statement).scalar()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Query execution failed: {e}") from e

    def query_rows(self, statement: str) -> list[Row]:
        """Execute a query and return all of its rows.

        Raises:
            DatabaseError: If the query fails.
        """
        try:
            return list(self._raw.exec_driver_sql(statement).fetchall())
        except SQLAlchemyError as e:
            raise DatabaseError(f"Query execution failed: {e}") from e

    def escape_identifier(self, name: str) -> str:
        return self.dialect.identifier_preparer.quote_identifier(name)

    def escape_value(self, value: str) -> str:
        escaped = str(value)
        if self.dialect_name in _MYSQL_DIALECTS:
            escaped = escaped.replace("\\", "\\\\")
        escaped = escaped.replace("'", "''")
        return f"'{escaped}'"

    def escape_like(self, value: str) -> str:
        return (
            str(value)
            .replace("\\", "\\\\")
            .replace("%", "\\%")
            .replace("_", "\\_")
        )

    def begin(self, name: str) -> SqlAlchemyTransaction:
        logger.debug(f"Beginning unit of work {name}")
        return SqlAlchemyTransaction(self._connection, name)

    def commit(self) -> None:
        try:
            self._connection.commit()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Commit failed: {e}") from e

    def rollback(self) -> None:
        try:
            self._connection.rollback()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Rollback failed: {e}") from e
