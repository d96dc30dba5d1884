"""SQLAlchemy engine and connection manager for dbmigrate."""

import time
from contextlib import contextmanager
from typing import Iterator

from loguru import logger
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..core.config import DatabaseConfig
from ..core.exceptions import DatabaseError
from .connection import SqlAlchemyConnection


class Database:
    """SQLAlchemy database connection manager."""

    def __init__(self, config: DatabaseConfig | str):
        """Initialize database with configuration.

        Args:
            config: Database configuration, or a bare SQLAlchemy URL.
        """
        if isinstance(config, str):
            config = DatabaseConfig(url=config)
        self.config = config
        self._engine: Engine | None = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise DatabaseError("Database not connected")
        return self._engine

    def connect(self) -> None:
        """Create the engine and verify the database is reachable.

        Retries ``connect_retries`` times, sleeping ``retry_delay_seconds``
        between attempts.

        Raises:
            DatabaseError: If the database cannot be reached.
        """
        if self._engine is not None:
            return

        try:
            engine = self._create_engine()
        except (SQLAlchemyError, ImportError) as e:
            raise DatabaseError(f"Failed to create engine: {e}") from e

        retries = max(0, self.config.connect_retries)
        error: Exception | None = None
        for attempt in range(retries + 1):
            try:
                with engine.connect():
                    pass
                self._engine = engine
                return
            except SQLAlchemyError as e:
                error = e
                logger.warning(
                    f"Connection attempt {attempt + 1}/{retries + 1} failed: {e}"
                )
            if attempt < retries:
                time.sleep(self.config.retry_delay_seconds)

        engine.dispose()
        tries = f"{retries + 1} tries" if retries else "1 try"
        raise DatabaseError(
            f"Unable to connect to database after {tries}: {engine.url!r}"
        ) from error

    def close(self) -> None:
        """Dispose of the engine and its pool."""
        if self._engine:
            try:
                self._engine.dispose()
            finally:
                self._engine = None

    @contextmanager
    def connection(self) -> Iterator[SqlAlchemyConnection]:
        """Context manager yielding a read-write migration connection.

        Anything left uncommitted when the block exits is rolled back.

        Raises:
            DatabaseError: If not connected or the connection cannot be opened.
        """
        try:
            sa_connection = self.engine.connect()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to open connection: {e}") from e

        try:
            options = sa_connection.get_execution_options()
            if options.get("isolation_level") == "AUTOCOMMIT":
                raise DatabaseError("Migrations require a non-autocommit connection")
            yield SqlAlchemyConnection(sa_connection)
        finally:
            sa_connection.close()

    def _create_engine(self) -> Engine:
        url = self.config.url
        kwargs = {"echo": self.config.echo}
        if not url.startswith("sqlite"):
            pool = self.config.pool
            kwargs.update(
                pool_size=pool.size,
                max_overflow=pool.max_overflow,
                pool_recycle=pool.recycle_seconds,
                pool_pre_ping=pool.pre_ping,
                pool_timeout=pool.timeout_seconds,
            )

        engine = create_engine(url, **kwargs)
        if engine.dialect.name == "sqlite":
            _enable_sqlite_transactions(engine)
        return engine


def _enable_sqlite_transactions(engine: Engine) -> None:
    """Make pysqlite honour BEGIN and DDL rollback.

    pysqlite only emits BEGIN before DML, so DDL would run
    outside the transaction. Let SQLAlchemy emit BEGIN itself instead.
    """

    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")
