"""SQLite connection factory for the fact graph database."""

from __future__ import annotations

import sqlite3
from pathlib import Path

# Seconds a writer waits on a locked database before giving up.
_BUSY_TIMEOUT = 30.0


class Database:
    """Location of a repodoc database plus the pragmas every connection gets.

    The store opens one connection per worker thread through connect(); this
    class keeps no connection of its own.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)

    def connect(self) -> sqlite3.Connection:
        """Return a new connection with rows as sqlite3.Row, FKs enforced, WAL on.

        check_same_thread is off so close() may run on another thread; each
        connection is still only used by the thread that opened it.
        """
        conn = sqlite3.connect(
            self.db_path, timeout=_BUSY_TIMEOUT, check_same_thread=False
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        return conn
