"""Forward-only migration runner for the repodoc schema."""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS repositories (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    owner               TEXT NOT NULL,
    repo_name           TEXT NOT NULL,
    description         TEXT,
    latest_commit_hash  TEXT NOT NULL DEFAULT '',
    default_branch      TEXT NOT NULL DEFAULT 'main',
    created_at          DATETIME NOT NULL DEFAULT (datetime('now')),
    updated_at          DATETIME NOT NULL DEFAULT (datetime('now')),
    version             INTEGER NOT NULL DEFAULT 0,
    UNIQUE (owner, repo_name)
);

CREATE TABLE IF NOT EXISTS namespaces (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    repo_name       TEXT NOT NULL,
    qualified_name  TEXT NOT NULL,
    parent_id       INTEGER REFERENCES namespaces(id),
    created_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    updated_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    version         INTEGER NOT NULL DEFAULT 0,
    UNIQUE (repo_name, qualified_name)
);

CREATE TABLE IF NOT EXISTS files (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    repo_name       TEXT NOT NULL,
    namespace_id    INTEGER NOT NULL REFERENCES namespaces(id),
    path            TEXT NOT NULL,
    content_hash    TEXT NOT NULL,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    updated_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    version         INTEGER NOT NULL DEFAULT 0,
    UNIQUE (repo_name, path)
);

CREATE TABLE IF NOT EXISTS types (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    file_id         INTEGER NOT NULL REFERENCES files(id) ON DELETE CASCADE,
    position        INTEGER NOT NULL,
    name            TEXT NOT NULL,
    annotations     TEXT NOT NULL DEFAULT '[]',
    comment         TEXT,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    updated_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    version         INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS members (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    type_id         INTEGER NOT NULL REFERENCES types(id) ON DELETE CASCADE,
    position        INTEGER NOT NULL,
    name            TEXT NOT NULL,
    kind            TEXT NOT NULL CHECK (kind IN ('method', 'field')),
    annotations     TEXT NOT NULL DEFAULT '[]',
    comment         TEXT,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    updated_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    version         INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS snapshots (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    repository_id   INTEGER NOT NULL REFERENCES repositories(id),
    commit_hash     TEXT NOT NULL,
    payload         TEXT NOT NULL,
    export_path     TEXT,
    is_current      INTEGER NOT NULL DEFAULT 1,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    updated_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    version         INTEGER NOT NULL DEFAULT 0
);

-- At most one current snapshot per repository.
CREATE UNIQUE INDEX IF NOT EXISTS ux_snapshots_current
    ON snapshots (repository_id) WHERE is_current = 1;

CREATE TABLE IF NOT EXISTS snapshot_namespaces (
    snapshot_id     INTEGER NOT NULL REFERENCES snapshots(id) ON DELETE CASCADE,
    namespace_id    INTEGER NOT NULL REFERENCES namespaces(id) ON DELETE CASCADE,
    PRIMARY KEY (snapshot_id, namespace_id)
);

CREATE INDEX IF NOT EXISTS ix_files_namespace ON files (namespace_id);
CREATE INDEX IF NOT EXISTS ix_types_file ON types (file_id);
CREATE INDEX IF NOT EXISTS ix_members_type ON members (type_id);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
