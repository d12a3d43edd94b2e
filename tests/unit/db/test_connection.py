"""Tests for the Database connection layer."""

from __future__ import annotations

import threading
from pathlib import Path

from repodoc.db.connection import Database


def test_connect_creates_file(tmp_path):
    db_path = tmp_path / ".repodoc.db"
    conn = Database(db_path).connect()
    conn.close()
    assert db_path.exists()


def test_foreign_keys_enabled(tmp_path):
    conn = Database(tmp_path / ".repodoc.db").connect()
    result = conn.execute("PRAGMA foreign_keys").fetchone()[0]
    conn.close()
    assert result == 1


def test_wal_journal_mode(tmp_path):
    conn = Database(tmp_path / ".repodoc.db").connect()
    mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
    conn.close()
    assert mode == "wal"


def test_row_factory_set(tmp_path):
    conn = Database(tmp_path / ".repodoc.db").connect()
    conn.execute("CREATE TABLE t (x INTEGER)")
    conn.execute("INSERT INTO t VALUES (42)")
    row = conn.execute("SELECT x FROM t").fetchone()
    conn.close()
    assert row["x"] == 42


def test_connection_closable_from_other_thread(tmp_path):
    conn = Database(tmp_path / ".repodoc.db").connect()
    errors: list[Exception] = []

    def _close():
        try:
            conn.close()
        except Exception as exc:
            errors.append(exc)

    t = threading.Thread(target=_close)
    t.start()
    t.join()
    assert errors == []


def test_accepts_path_str(tmp_path):
    db = Database(str(tmp_path / ".repodoc.db"))
    assert isinstance(db.db_path, Path)
    conn = db.connect()
    assert conn.execute("SELECT 1").fetchone()[0] == 1
    conn.close()


def test_each_connect_is_independent(tmp_path):
    db = Database(tmp_path / ".repodoc.db")
    first, second = db.connect(), db.connect()
    first.close()
    assert second.execute("SELECT 1").fetchone()[0] == 1
    second.close()
