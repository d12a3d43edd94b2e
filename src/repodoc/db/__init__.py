"""repodoc fact store."""

from repodoc.db.connection import Database
from repodoc.db.migrations import MIGRATIONS, run_migrations
from repodoc.db.repository import SqliteGraphStore
from repodoc.db.schema import initialize
from repodoc.db.store import StructuralGraphStore

__all__ = [
    "Database",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "SqliteGraphStore",
    "StructuralGraphStore",
]
