"""In-memory document tree: Namespace → File → Type → Member.

A child collection set to None has not been fetched from the store yet; an
empty list has been fetched and is empty.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from repodoc.db.models import FileFact, MemberFact, NamespaceNode, RepositoryIdentity, TypeFact


@dataclass
class TypeBranch:
    fact: TypeFact
    methods: list[MemberFact] | None = None
    fields: list[MemberFact] | None = None

    @property
    def hydrated(self) -> bool:
        return self.methods is not None and self.fields is not None


@dataclass
class FileBranch:
    fact: FileFact
    types: list[TypeBranch] | None = None


@dataclass
class NamespaceBranch:
    node: NamespaceNode
    files: list[FileBranch] | None = None


@dataclass
class DocumentTree:
    identity: RepositoryIdentity
    namespaces: list[NamespaceBranch] = field(default_factory=list)

    def files(self) -> Iterator[FileBranch]:
        for ns in self.namespaces:
            yield from ns.files or ()

    def types(self) -> Iterator[TypeBranch]:
        for file in self.files():
            yield from file.types or ()

    def unfetched(self) -> tuple[list[NamespaceBranch], list[FileBranch], list[TypeBranch]]:
        """Return the branches whose child collections are still unfetched."""
        namespaces = [ns for ns in self.namespaces if ns.files is None]
        files = [f for f in self.files() if f.types is None]
        types = [t for t in self.types() if not t.hydrated]
        return namespaces, files, types

    @property
    def complete(self) -> bool:
        return not any(self.unfetched())
