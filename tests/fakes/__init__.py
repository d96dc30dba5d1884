"""Test fakes for exercising the migrator without special infrastructure.

Example:
    from tests.fakes import SpyConnection

    spy = SpyConnection(connection, fail_commit=True)
    migrator = Migrator(spy, migrations_dir)
"""

from .connection import SpyConnection, SpyTransaction

__all__ = [
    "SpyConnection",
    "SpyTransaction",
]
