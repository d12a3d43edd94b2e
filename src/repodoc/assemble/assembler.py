"""Document assembler: load the fact graph of a repository into a DocumentTree.

Pipeline:
  1. Load every namespace node of the repository (none → NotFound).
  2. Load files for those namespaces, grouped by owning namespace.
  3. Load types for those files, then members for those types.
  4. Verify every branch was fetched. Branches the store left out are
     re-queried, and only those. The repair loop is bounded by the number of
     levels below the namespace (files, types, members); a graph still
     incomplete after that raises IncompleteGraph.
"""

from __future__ import annotations

import structlog

from repodoc.assemble.tree import DocumentTree, FileBranch, NamespaceBranch, TypeBranch
from repodoc.db.models import FIELD, METHOD, RepositoryIdentity
from repodoc.db.store import StructuralGraphStore
from repodoc.errors import IncompleteGraph, NotFound

logger = structlog.get_logger()

# One repair pass per tree level below the namespace: files, types, members.
MAX_REPAIR_PASSES = 3


class DocumentAssembler:
    """Build a fully hydrated, insertion-ordered DocumentTree from the store."""

    def __init__(self, store: StructuralGraphStore) -> None:
        self._store = store

    def assemble(self, identity: RepositoryIdentity) -> DocumentTree:
        """Return the complete tree for *identity*.

        Raises:
            NotFound: No namespace node exists for the repository.
            IncompleteGraph: A branch stayed unfetched after all repair passes.
        """
        namespaces = self._store.list_namespaces(identity.graph_key)
        if not namespaces:
            raise NotFound(f"No data found for repository: {identity.repo_name}")

        tree = DocumentTree(
            identity=identity,
            namespaces=[NamespaceBranch(node=n) for n in namespaces],
        )
        self._hydrate(tree)

        for attempt in range(1, MAX_REPAIR_PASSES + 1):
            if tree.complete:
                break
            ns, files, types = tree.unfetched()
            logger.info(
                "assembly_repair_pass",
                repo=identity.repo_name,
                attempt=attempt,
                namespaces=len(ns),
                files=len(files),
                types=len(types),
            )
            self._hydrate(tree)

        if not tree.complete:
            ns, files, types = tree.unfetched()
            raise IncompleteGraph(
                f"Graph for '{identity.repo_name}' still incomplete after "
                f"{MAX_REPAIR_PASSES} repair passes: {len(ns)} namespaces, "
                f"{len(files)} files, {len(types)} types unfetched"
            )
        return tree

    def _hydrate(self, tree: DocumentTree) -> None:
        """Fetch the children of every unfetched branch, top level first."""
        pending_ns = [ns for ns in tree.namespaces if ns.files is None]
        if pending_ns:
            fetched = self._store.files_for_namespaces(ns.node.id for ns in pending_ns)
            for ns in pending_ns:
                if ns.node.id in fetched:
                    ns.files = [FileBranch(fact=f) for f in fetched[ns.node.id]]

        pending_files = [f for f in tree.files() if f.types is None]
        if pending_files:
            fetched = self._store.types_for_files(f.fact.audit.id for f in pending_files)
            for f in pending_files:
                if f.fact.audit.id in fetched:
                    f.types = [TypeBranch(fact=t) for t in fetched[f.fact.audit.id]]

        pending_types = [t for t in tree.types() if not t.hydrated]
        if pending_types:
            fetched = self._store.members_for_types(t.fact.audit.id for t in pending_types)
            for t in pending_types:
                members = fetched.get(t.fact.audit.id)
                if members is None:
                    continue
                t.methods = [m for m in members if m.kind == METHOD]
                t.fields = [m for m in members if m.kind == FIELD]
