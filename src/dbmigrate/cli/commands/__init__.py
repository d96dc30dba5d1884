"""Command implementations for dbmigrate CLI."""

from .migrate import add_migrate_arguments, handle_migrate
from .status import handle_status, handle_unlock

__all__ = [
    "add_migrate_arguments",
    "handle_migrate",
    "handle_status",
    "handle_unlock",
]
