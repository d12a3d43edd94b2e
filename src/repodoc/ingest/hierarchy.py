"""Namespace hierarchy builder.

Materializes a dotted namespace path ("com.acme.widgets") as a chain of
uniquely-keyed nodes scoped to one repository. The parent chain is always
created before the child. Creation relies on the store's atomic insert: the
loser of a concurrent race re-reads the winner's row instead of failing, so
unrelated namespaces never contend on a shared lock.
"""

from __future__ import annotations

import re

import structlog

from repodoc.db.models import NamespaceNode, normalize_namespace, parent_namespace
from repodoc.db.store import StructuralGraphStore
from repodoc.errors import ConflictRetry, InvalidArgument, RepodocError

logger = structlog.get_logger()

# Dot-separated segments, none empty, no whitespace.
_QUALIFIED_RE = re.compile(r"[^\s.]+(?:\.[^\s.]+)*")


class NamespaceHierarchyBuilder:
    """Idempotent get-or-create over namespace nodes.

    Args:
        store: Graph store providing lookup and atomic create-if-absent.
    """

    def __init__(self, store: StructuralGraphStore) -> None:
        self._store = store

    def get_or_create(self, repo_name: str, qualified_name: str | None) -> NamespaceNode:
        """Return the node for (*repo_name*, *qualified_name*), creating its chain if needed.

        A blank or absent name resolves to the "default" root bucket.

        Raises:
            InvalidArgument: *repo_name* is blank, or the name has empty segments.
        """
        if repo_name is None or not repo_name.strip():
            raise InvalidArgument("Repository name cannot be null or blank")

        name = normalize_namespace(qualified_name)
        if not _QUALIFIED_RE.fullmatch(name):
            raise InvalidArgument(f"Malformed namespace: {qualified_name!r}")

        return self._get_or_create(repo_name, name)

    def _get_or_create(self, repo_name: str, name: str) -> NamespaceNode:
        existing = self._store.get_namespace(repo_name, name)
        if existing is not None:
            return existing

        parent_id = None
        parent_name = parent_namespace(name)
        if parent_name is not None:
            parent_id = self._get_or_create(repo_name, parent_name).id

        try:
            node = self._store.insert_namespace(repo_name, name, parent_id)
        except ConflictRetry:
            logger.debug("namespace_conflict_reread", repo=repo_name, namespace=name)
            node = self._store.get_namespace(repo_name, name)
            if node is None:
                raise RepodocError(
                    f"Namespace '{name}' reported as existing but cannot be read back"
                ) from None
            return node

        logger.debug("namespace_created", repo=repo_name, namespace=name, parent_id=parent_id)
        return node
