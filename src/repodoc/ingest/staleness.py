"""Staleness oracle: reuse the current document or rebuild it.

There is no incremental diffing. Any change of the latest commit hash means
every file of the repository is extracted again.
"""

from __future__ import annotations

from repodoc.db.models import DocumentSnapshot, RepositoryIdentity
from repodoc.db.store import StructuralGraphStore


class StalenessOracle:
    """Decide whether a repository's document must be regenerated."""

    def __init__(self, store: StructuralGraphStore) -> None:
        self._store = store

    def current_snapshot(self, identity: RepositoryIdentity) -> DocumentSnapshot | None:
        """Return the current snapshot for *identity*, or None if never assembled."""
        if identity.audit.id is None:
            stored = self._store.get_repository(identity.owner, identity.repo_name)
            if stored is None:
                return None
            identity = stored
        return self._store.get_current_snapshot(identity.audit.id)

    def needs_regeneration(self, identity: RepositoryIdentity, latest_commit_hash: str) -> bool:
        """True when no snapshot exists or its commit hash differs in any way."""
        snapshot = self.current_snapshot(identity)
        if snapshot is None:
            return True
        return snapshot.commit_hash != latest_commit_hash
