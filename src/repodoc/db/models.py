"""Domain models for the repodoc fact store."""

from __future__ import annotations

from dataclasses import dataclass, field

METHOD = "method"
FIELD = "field"
MEMBER_KINDS = frozenset([METHOD, FIELD])

DEFAULT_NAMESPACE = "default"


@dataclass
class Audit:
    """Audit metadata carried by every persisted fact."""

    id: int | None = None  # set after insert
    created_at: str | None = None
    updated_at: str | None = None
    version: int = 0


@dataclass
class RepositoryIdentity:
    owner: str
    repo_name: str
    latest_commit_hash: str = ""
    description: str | None = None
    default_branch: str = "main"
    audit: Audit = field(default_factory=Audit)

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo_name}"

    @property
    def graph_key(self) -> str:
        """Key the repository's namespace and file facts are stored under.

        Includes the owner, so forks sharing a repository name never share facts.
        """
        return self.slug


@dataclass
class NamespaceNode:
    repo_name: str
    qualified_name: str
    parent_id: int | None = None
    audit: Audit = field(default_factory=Audit)

    @property
    def id(self) -> int | None:
        return self.audit.id

    @property
    def parent_name(self) -> str | None:
        """Qualified name of the immediate parent, or None for a top-level node."""
        return parent_namespace(self.qualified_name)


@dataclass
class MemberFact:
    name: str
    kind: str  # method | field
    annotations: list[str] = field(default_factory=list)
    comment: str | None = None
    type_id: int | None = None
    audit: Audit = field(default_factory=Audit)


@dataclass
class TypeFact:
    name: str
    annotations: list[str] = field(default_factory=list)
    comment: str | None = None
    file_id: int | None = None
    # Populated by the parser before persistence; the store never fills it.
    members: list[MemberFact] = field(default_factory=list)
    audit: Audit = field(default_factory=Audit)


@dataclass
class FileFact:
    repo_name: str
    namespace_id: int
    path: str
    content_hash: str
    audit: Audit = field(default_factory=Audit)

    @property
    def file_name(self) -> str:
        return self.path.rsplit("/", 1)[-1]


@dataclass
class DocumentSnapshot:
    repository_id: int
    commit_hash: str
    payload: str
    export_path: str | None = None
    namespace_ids: list[int] = field(default_factory=list)
    is_current: bool = True
    audit: Audit = field(default_factory=Audit)

    @property
    def created_at(self) -> str | None:
        return self.audit.created_at


def normalize_namespace(name: str | None) -> str:
    """Return *name* stripped, or the root bucket for a blank/absent name."""
    if name is None or not name.strip():
        return DEFAULT_NAMESPACE
    return name.strip()


def parent_namespace(qualified_name: str) -> str | None:
    """Return all dotted segments but the last, or None for a single segment.

    Examples:
        "com.acme.widgets" -> "com.acme"
        "acme"             -> None
    """
    parts = qualified_name.split(".")
    if len(parts) > 1:
        return ".".join(parts[:-1])
    return None
