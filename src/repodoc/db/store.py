"""Abstract read/write interface over the persisted fact graph.

The hierarchy builder, the extraction driver, the staleness oracle and the
document assembler only ever talk to a StructuralGraphStore. The SQLite
implementation lives in repodoc.db.repository.

Children queries (``files_for_namespaces``, ``types_for_files``,
``members_for_types``) return a mapping keyed by parent id. A parent id that
is present maps to its complete child list (possibly empty); a parent id that
is absent was not fetched and must be re-queried by the caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from repodoc.db.models import (
    DocumentSnapshot,
    FileFact,
    MemberFact,
    NamespaceNode,
    RepositoryIdentity,
    TypeFact,
)


class StructuralGraphStore(ABC):
    """Persistence boundary for repositories, namespaces, facts and snapshots."""

    # ------------------------------------------------------------------
    # Repositories
    # ------------------------------------------------------------------

    @abstractmethod
    def upsert_repository(self, identity: RepositoryIdentity) -> RepositoryIdentity:
        """Create or update the identity keyed by (owner, repo_name)."""

    @abstractmethod
    def get_repository(self, owner: str, repo_name: str) -> RepositoryIdentity | None:
        """Return the stored identity, or None."""

    @abstractmethod
    def list_repositories(self) -> list[RepositoryIdentity]:
        """Return all known identities in creation order."""

    # ------------------------------------------------------------------
    # Namespaces
    # ------------------------------------------------------------------

    @abstractmethod
    def get_namespace(self, repo_name: str, qualified_name: str) -> NamespaceNode | None:
        """Return the node keyed by (repo_name, qualified_name), or None."""

    @abstractmethod
    def insert_namespace(
        self, repo_name: str, qualified_name: str, parent_id: int | None
    ) -> NamespaceNode:
        """Atomically create the node if absent.

        Raises:
            ConflictRetry: A node with the same key already exists.
        """

    @abstractmethod
    def list_namespaces(self, repo_name: str) -> list[NamespaceNode]:
        """Return every node of *repo_name* in creation order."""

    # ------------------------------------------------------------------
    # Facts
    # ------------------------------------------------------------------

    @abstractmethod
    def replace_file_facts(self, file: FileFact, types: list[TypeFact]) -> FileFact:
        """Replace everything stored for (file.repo_name, file.path) in one transaction.

        The file row is written before its types, each type before its members.
        """

    @abstractmethod
    def get_file(self, repo_name: str, path: str) -> FileFact | None:
        """Return the file fact for *path*, or None."""

    @abstractmethod
    def files_for_namespaces(self, namespace_ids: Iterable[int]) -> dict[int, list[FileFact]]:
        """Return files grouped by owning namespace id."""

    @abstractmethod
    def types_for_files(self, file_ids: Iterable[int]) -> dict[int, list[TypeFact]]:
        """Return type facts grouped by owning file id."""

    @abstractmethod
    def members_for_types(self, type_ids: Iterable[int]) -> dict[int, list[MemberFact]]:
        """Return member facts grouped by owning type id."""

    @abstractmethod
    def delete_files_except(self, repo_name: str, keep_paths: Iterable[str]) -> int:
        """Delete the files of *repo_name* whose path is not in *keep_paths*.

        Their types and members go with them. Returns the number of files deleted.
        """

    @abstractmethod
    def delete_empty_namespaces(self, repo_name: str) -> int:
        """Delete nodes of *repo_name* that own no file and have no child node.

        Repeats until none is left, so a chain emptied from the leaf up goes
        entirely. Returns the number of nodes deleted.
        """

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    @abstractmethod
    def save_snapshot(self, snapshot: DocumentSnapshot) -> DocumentSnapshot:
        """Store *snapshot* as the current one, demoting the previous current."""

    @abstractmethod
    def get_current_snapshot(self, repository_id: int) -> DocumentSnapshot | None:
        """Return the current snapshot for the repository, or None."""

    @abstractmethod
    def list_snapshots(self, repository_id: int) -> list[DocumentSnapshot]:
        """Return all snapshots for the repository, newest first."""

    def close(self) -> None:
        """Release any resources held by the store."""
