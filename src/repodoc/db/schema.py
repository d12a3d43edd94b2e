"""Schema bootstrap for a fresh or existing fact graph database."""

from __future__ import annotations

import sqlite3

from repodoc.db.migrations import run_migrations


def initialize(conn: sqlite3.Connection) -> None:
    """Bring *conn*'s database up to the latest schema. Safe to call repeatedly."""
    run_migrations(conn)
