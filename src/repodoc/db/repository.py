"""SQLite implementation of the structural graph store.

Single interface for: repositories, namespace nodes, file/type/member facts,
and document snapshots. Each thread gets its own connection so the
extraction driver can ingest files from a worker pool.
"""

from __future__ import annotations

import json
import sqlite3
import threading
from collections.abc import Iterable, Iterator

from repodoc.db.connection import Database
from repodoc.db.models import (
    Audit,
    DocumentSnapshot,
    FileFact,
    MemberFact,
    NamespaceNode,
    RepositoryIdentity,
    TypeFact,
)
from repodoc.db.schema import initialize
from repodoc.db.store import StructuralGraphStore
from repodoc.errors import ConflictRetry, NotFound

# Stay well below SQLITE_MAX_VARIABLE_NUMBER on old builds.
_IN_BATCH = 500

_REPO_COLS = (
    "id, owner, repo_name, description, latest_commit_hash, default_branch, "
    "created_at, updated_at, version"
)
_NS_COLS = "id, repo_name, qualified_name, parent_id, created_at, updated_at, version"
_FILE_COLS = "id, repo_name, namespace_id, path, content_hash, created_at, updated_at, version"
_TYPE_COLS = "id, file_id, name, annotations, comment, created_at, updated_at, version"
_MEMBER_COLS = "id, type_id, name, kind, annotations, comment, created_at, updated_at, version"
_SNAPSHOT_COLS = (
    "id, repository_id, commit_hash, payload, export_path, is_current, "
    "created_at, updated_at, version"
)


class SqliteGraphStore(StructuralGraphStore):
    """Data access layer for the fact graph, backed by one SQLite file.

    Connections are opened lazily, one per calling thread, and all of them
    are closed by close().
    """

    def __init__(self, db: Database) -> None:
        """Open the calling thread's connection and run pending migrations.

        Args:
            db: Database pointing at the SQLite file (created if missing).
        """
        self._db = db
        self._local = threading.local()
        self._lock = threading.Lock()
        self._opened: list[sqlite3.Connection] = []
        initialize(self._conn())

    def _conn(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = self._db.connect()
            self._local.conn = conn
            with self._lock:
                self._opened.append(conn)
        return conn

    def close(self) -> None:
        """Close every connection opened by this store."""
        with self._lock:
            for conn in self._opened:
                conn.close()
            self._opened.clear()
        self._local = threading.local()

    # ------------------------------------------------------------------
    # Repositories
    # ------------------------------------------------------------------

    def upsert_repository(self, identity: RepositoryIdentity) -> RepositoryIdentity:
        conn = self._conn()
        with conn:
            conn.execute(
                """
                INSERT INTO repositories
                    (owner, repo_name, description, latest_commit_hash, default_branch)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(owner, repo_name) DO UPDATE SET
                    description = excluded.description,
                    latest_commit_hash = excluded.latest_commit_hash,
                    default_branch = excluded.default_branch,
                    updated_at = datetime('now'),
                    version = version + 1
                """,
                (
                    identity.owner,
                    identity.repo_name,
                    identity.description,
                    identity.latest_commit_hash,
                    identity.default_branch,
                ),
            )
        stored = self.get_repository(identity.owner, identity.repo_name)
        if stored is None:
            raise NotFound(f"Repository {identity.slug} missing right after upsert")
        return stored

    def get_repository(self, owner: str, repo_name: str) -> RepositoryIdentity | None:
        row = self._conn().execute(
            f"SELECT {_REPO_COLS} FROM repositories WHERE owner = ? AND repo_name = ?",
            (owner, repo_name),
        ).fetchone()
        return _row_to_repository(row) if row else None

    def list_repositories(self) -> list[RepositoryIdentity]:
        rows = self._conn().execute(
            f"SELECT {_REPO_COLS} FROM repositories ORDER BY id"
        ).fetchall()
        return [_row_to_repository(r) for r in rows]

    # ------------------------------------------------------------------
    # Namespaces
    # ------------------------------------------------------------------

    def get_namespace(self, repo_name: str, qualified_name: str) -> NamespaceNode | None:
        row = self._conn().execute(
            f"SELECT {_NS_COLS} FROM namespaces WHERE repo_name = ? AND qualified_name = ?",
            (repo_name, qualified_name),
        ).fetchone()
        return _row_to_namespace(row) if row else None

    def insert_namespace(
        self, repo_name: str, qualified_name: str, parent_id: int | None
    ) -> NamespaceNode:
        """Insert a namespace row; a single statement, so it commits whole or not at all."""
        conn = self._conn()
        try:
            with conn:
                cur = conn.execute(
                    "INSERT INTO namespaces (repo_name, qualified_name, parent_id) VALUES (?, ?, ?)",
                    (repo_name, qualified_name, parent_id),
                )
        except sqlite3.IntegrityError as exc:
            if "UNIQUE" not in str(exc):
                raise
            raise ConflictRetry(
                f"namespace '{qualified_name}' already exists in '{repo_name}'"
            ) from exc
        row = conn.execute(
            f"SELECT {_NS_COLS} FROM namespaces WHERE id = ?", (cur.lastrowid,)
        ).fetchone()
        return _row_to_namespace(row)

    def list_namespaces(self, repo_name: str) -> list[NamespaceNode]:
        rows = self._conn().execute(
            f"SELECT {_NS_COLS} FROM namespaces WHERE repo_name = ? ORDER BY id",
            (repo_name,),
        ).fetchall()
        return [_row_to_namespace(r) for r in rows]

    # ------------------------------------------------------------------
    # Facts
    # ------------------------------------------------------------------

    def replace_file_facts(self, file: FileFact, types: list[TypeFact]) -> FileFact:
        """Upsert the file row by path and swap its type/member facts.

        The file keeps its id (and so its position in insertion order) across
        re-ingestion; old types are removed by cascade before the new ones
        are written.
        """
        conn = self._conn()
        with conn:
            conn.execute(
                """
                INSERT INTO files (repo_name, namespace_id, path, content_hash)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(repo_name, path) DO UPDATE SET
                    namespace_id = excluded.namespace_id,
                    content_hash = excluded.content_hash,
                    updated_at = datetime('now'),
                    version = version + 1
                """,
                (file.repo_name, file.namespace_id, file.path, file.content_hash),
            )
            file_id = conn.execute(
                "SELECT id FROM files WHERE repo_name = ? AND path = ?",
                (file.repo_name, file.path),
            ).fetchone()["id"]
            conn.execute("DELETE FROM types WHERE file_id = ?", (file_id,))

            for position, type_fact in enumerate(types):
                cur = conn.execute(
                    """
                    INSERT INTO types (file_id, position, name, annotations, comment)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        file_id,
                        position,
                        type_fact.name,
                        json.dumps(type_fact.annotations),
                        type_fact.comment,
                    ),
                )
                type_id = cur.lastrowid
                conn.executemany(
                    """
                    INSERT INTO members (type_id, position, name, kind, annotations, comment)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            type_id,
                            i,
                            m.name,
                            m.kind,
                            json.dumps(m.annotations),
                            m.comment,
                        )
                        for i, m in enumerate(type_fact.members)
                    ],
                )
        stored = self.get_file(file.repo_name, file.path)
        if stored is None:
            raise NotFound(f"File '{file.path}' missing right after write")
        return stored

    def get_file(self, repo_name: str, path: str) -> FileFact | None:
        row = self._conn().execute(
            f"SELECT {_FILE_COLS} FROM files WHERE repo_name = ? AND path = ?",
            (repo_name, path),
        ).fetchone()
        return _row_to_file(row) if row else None

    def files_for_namespaces(self, namespace_ids: Iterable[int]) -> dict[int, list[FileFact]]:
        ids = list(namespace_ids)
        result: dict[int, list[FileFact]] = {i: [] for i in ids}
        for row in self._select_in(
            f"SELECT {_FILE_COLS} FROM files WHERE namespace_id IN ({{}}) ORDER BY id", ids
        ):
            result[row["namespace_id"]].append(_row_to_file(row))
        return result

    def types_for_files(self, file_ids: Iterable[int]) -> dict[int, list[TypeFact]]:
        ids = list(file_ids)
        result: dict[int, list[TypeFact]] = {i: [] for i in ids}
        for row in self._select_in(
            f"SELECT {_TYPE_COLS} FROM types WHERE file_id IN ({{}}) ORDER BY file_id, position",
            ids,
        ):
            result[row["file_id"]].append(_row_to_type(row))
        return result

    def members_for_types(self, type_ids: Iterable[int]) -> dict[int, list[MemberFact]]:
        ids = list(type_ids)
        result: dict[int, list[MemberFact]] = {i: [] for i in ids}
        for row in self._select_in(
            f"SELECT {_MEMBER_COLS} FROM members WHERE type_id IN ({{}}) ORDER BY type_id, position",
            ids,
        ):
            result[row["type_id"]].append(_row_to_member(row))
        return result

    def delete_files_except(self, repo_name: str, keep_paths: Iterable[str]) -> int:
        keep = set(keep_paths)
        conn = self._conn()
        rows = conn.execute(
            "SELECT id, path FROM files WHERE repo_name = ?", (repo_name,)
        ).fetchall()
        doomed = [(r["id"],) for r in rows if r["path"] not in keep]
        with conn:
            conn.executemany("DELETE FROM files WHERE id = ?", doomed)
        return len(doomed)

    def delete_empty_namespaces(self, repo_name: str) -> int:
        conn = self._conn()
        deleted = 0
        with conn:
            while True:
                cur = conn.execute(
                    """
                    DELETE FROM namespaces
                    WHERE repo_name = ?
                      AND NOT EXISTS (SELECT 1 FROM files f WHERE f.namespace_id = namespaces.id)
                      AND NOT EXISTS (SELECT 1 FROM namespaces c WHERE c.parent_id = namespaces.id)
                    """,
                    (repo_name,),
                )
                if cur.rowcount <= 0:
                    break
                deleted += cur.rowcount
        return deleted

    def _select_in(self, sql: str, ids: list[int]) -> Iterator[sqlite3.Row]:
        """Run *sql* (with one ``{}`` placeholder slot) over *ids* in batches."""
        conn = self._conn()
        for start in range(0, len(ids), _IN_BATCH):
            batch = ids[start:start + _IN_BATCH]
            placeholders = ",".join("?" * len(batch))
            yield from conn.execute(sql.format(placeholders), batch).fetchall()

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def save_snapshot(self, snapshot: DocumentSnapshot) -> DocumentSnapshot:
        """Demote the current snapshot and insert *snapshot* in one transaction."""
        conn = self._conn()
        with conn:
            conn.execute(
                """
                UPDATE snapshots
                SET is_current = 0, updated_at = datetime('now'), version = version + 1
                WHERE repository_id = ? AND is_current = 1
                """,
                (snapshot.repository_id,),
            )
            cur = conn.execute(
                """
                INSERT INTO snapshots (repository_id, commit_hash, payload, export_path, is_current)
                VALUES (?, ?, ?, ?, 1)
                """,
                (
                    snapshot.repository_id,
                    snapshot.commit_hash,
                    snapshot.payload,
                    snapshot.export_path,
                ),
            )
            snapshot_id = cur.lastrowid
            conn.executemany(
                "INSERT INTO snapshot_namespaces (snapshot_id, namespace_id) VALUES (?, ?)",
                [(snapshot_id, ns_id) for ns_id in dict.fromkeys(snapshot.namespace_ids)],
            )
        stored = self._get_snapshot(snapshot_id)
        if stored is None:
            raise NotFound(f"Snapshot {snapshot_id} missing right after insert")
        return stored

    def get_current_snapshot(self, repository_id: int) -> DocumentSnapshot | None:
        row = self._conn().execute(
            f"SELECT {_SNAPSHOT_COLS} FROM snapshots WHERE repository_id = ? AND is_current = 1",
            (repository_id,),
        ).fetchone()
        return self._with_namespaces(row) if row else None

    def list_snapshots(self, repository_id: int) -> list[DocumentSnapshot]:
        rows = self._conn().execute(
            f"SELECT {_SNAPSHOT_COLS} FROM snapshots WHERE repository_id = ? ORDER BY id DESC",
            (repository_id,),
        ).fetchall()
        return [self._with_namespaces(r) for r in rows]

    def _get_snapshot(self, snapshot_id: int) -> DocumentSnapshot | None:
        row = self._conn().execute(
            f"SELECT {_SNAPSHOT_COLS} FROM snapshots WHERE id = ?", (snapshot_id,)
        ).fetchone()
        return self._with_namespaces(row) if row else None

    def _with_namespaces(self, row: sqlite3.Row) -> DocumentSnapshot:
        ns_rows = self._conn().execute(
            "SELECT namespace_id FROM snapshot_namespaces WHERE snapshot_id = ? ORDER BY namespace_id",
            (row["id"],),
        ).fetchall()
        snapshot = _row_to_snapshot(row)
        snapshot.namespace_ids = [r["namespace_id"] for r in ns_rows]
        return snapshot


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------

def _audit(row: sqlite3.Row) -> Audit:
    return Audit(
        id=row["id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        version=row["version"],
    )


def _row_to_repository(row: sqlite3.Row) -> RepositoryIdentity:
    return RepositoryIdentity(
        owner=row["owner"],
        repo_name=row["repo_name"],
        latest_commit_hash=row["latest_commit_hash"],
        description=row["description"],
        default_branch=row["default_branch"],
        audit=_audit(row),
    )


def _row_to_namespace(row: sqlite3.Row) -> NamespaceNode:
    return NamespaceNode(
        repo_name=row["repo_name"],
        qualified_name=row["qualified_name"],
        parent_id=row["parent_id"],
        audit=_audit(row),
    )


def _row_to_file(row: sqlite3.Row) -> FileFact:
    return FileFact(
        repo_name=row["repo_name"],
        namespace_id=row["namespace_id"],
        path=row["path"],
        content_hash=row["content_hash"],
        audit=_audit(row),
    )


def _row_to_type(row: sqlite3.Row) -> TypeFact:
    return TypeFact(
        name=row["name"],
        annotations=json.loads(row["annotations"]),
        comment=row["comment"],
        file_id=row["file_id"],
        audit=_audit(row),
    )


def _row_to_member(row: sqlite3.Row) -> MemberFact:
    return MemberFact(
        name=row["name"],
        kind=row["kind"],
        annotations=json.loads(row["annotations"]),
        comment=row["comment"],
        type_id=row["type_id"],
        audit=_audit(row),
    )


def _row_to_snapshot(row: sqlite3.Row) -> DocumentSnapshot:
    return DocumentSnapshot(
        repository_id=row["repository_id"],
        commit_hash=row["commit_hash"],
        payload=row["payload"],
        export_path=row["export_path"],
        is_current=bool(row["is_current"]),
        audit=_audit(row),
    )
