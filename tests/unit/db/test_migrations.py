"""Tests for the forward-only migration runner."""

from __future__ import annotations

import sqlite3

import pytest

from repodoc.db.connection import Database
from repodoc.db.migrations import MIGRATIONS, run_migrations


def _fresh_conn(tmp_path):
    """Open a new connection without running migrations."""
    return Database(tmp_path / "test.db").connect()


def _table_exists(conn, name: str) -> bool:
    return conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
    ).fetchone() is not None


# --- Bootstrap ---

def test_run_migrations_creates_schema_version(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    assert _table_exists(conn, "schema_version")
    conn.close()


def test_run_migrations_records_version(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    version = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
    assert version == MIGRATIONS[-1][0]
    conn.close()


# --- Idempotency ---

def test_run_migrations_idempotent(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    run_migrations(conn)
    count = conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]
    assert count == len(MIGRATIONS)
    conn.close()


# --- Tables created ---

@pytest.mark.parametrize(
    "table",
    ["repositories", "namespaces", "files", "types", "members", "snapshots", "snapshot_namespaces"],
)
def test_run_migrations_creates_table(tmp_path, table):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    assert _table_exists(conn, table)
    conn.close()


# --- Constraints ---

def test_namespace_key_unique(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    conn.execute("INSERT INTO namespaces (repo_name, qualified_name) VALUES ('r', 'a')")
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute("INSERT INTO namespaces (repo_name, qualified_name) VALUES ('r', 'a')")
    conn.close()


def test_member_kind_checked(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    conn.execute("INSERT INTO namespaces (repo_name, qualified_name) VALUES ('r', 'a')")
    conn.execute(
        "INSERT INTO files (repo_name, namespace_id, path, content_hash) VALUES ('r', 1, 'A.java', 'h')"
    )
    conn.execute("INSERT INTO types (file_id, position, name) VALUES (1, 0, 'A')")
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            "INSERT INTO members (type_id, position, name, kind) VALUES (1, 0, 'x', 'constructor')"
        )
    conn.close()


def test_only_one_current_snapshot(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    conn.execute("INSERT INTO repositories (owner, repo_name) VALUES ('o', 'r')")
    conn.execute("INSERT INTO snapshots (repository_id, commit_hash, payload) VALUES (1, 'c1', 'x')")
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            "INSERT INTO snapshots (repository_id, commit_hash, payload) VALUES (1, 'c2', 'y')"
        )
    conn.close()


# --- Incremental application ---

def test_run_migrations_applies_only_pending(tmp_path, monkeypatch):
    """A database already at version 1 only gets the later migrations."""
    import repodoc.db.migrations as mod

    conn = _fresh_conn(tmp_path)
    conn.execute(
        "CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL, "
        "applied_at DATETIME NOT NULL DEFAULT (datetime('now')))"
    )
    conn.execute("INSERT INTO schema_version (version) VALUES (1)")
    conn.commit()

    monkeypatch.setattr(
        mod,
        "MIGRATIONS",
        [(1, "SELECT 1;"), (2, "CREATE TABLE IF NOT EXISTS v2_marker (x INTEGER);")],
    )
    run_migrations(conn)

    assert _table_exists(conn, "v2_marker")
    assert not _table_exists(conn, "repositories")
    versions = [r[0] for r in conn.execute("SELECT version FROM schema_version ORDER BY version")]
    assert versions == [1, 2]
    conn.close()


# --- initialize() delegates to run_migrations() ---

def test_initialize_delegates_to_run_migrations(tmp_path):
    from repodoc.db.schema import initialize

    conn = _fresh_conn(tmp_path)
    initialize(conn)
    version = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
    assert version == MIGRATIONS[-1][0]
    conn.close()
