"""Database access layer for dbmigrate."""

from .connection import (
    MigrationConnection,
    SqlAlchemyConnection,
    SqlAlchemyTransaction,
    Transaction,
)
from .database import Database
from .helpers import delete_from, escape_identifiers, escape_values, insert_into, update

__all__ = [
    "Database",
    "MigrationConnection",
    "SqlAlchemyConnection",
    "SqlAlchemyTransaction",
    "Transaction",
    "delete_from",
    "escape_identifiers",
    "escape_values",
    "insert_into",
    "update",
]
