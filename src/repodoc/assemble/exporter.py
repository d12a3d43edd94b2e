"""Hierarchy exporter: DocumentTree → Markdown report.

Output layout:

    ### Repository: widgets

    ### Owner: acme

    Widget service

    #### Package: acme

    - **File**: Widget.java
      - **Class**: Widget
        - **Annotations**: [Entity]
        - **Method**: getId (Deprecated)
        - **Field**: id ()

Each namespace block is followed by one blank line. Within a type, methods
are listed before fields. Every level keeps ingestion order unless the
exporter is built with ``order="name"``.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TypeVar

from repodoc.assemble.tree import DocumentTree, FileBranch, NamespaceBranch, TypeBranch
from repodoc.db.models import MemberFact

ORDERS = ("insertion", "name")
NO_DESCRIPTION = "No description available"

T = TypeVar("T")


class HierarchyExporter:
    """Render a fully hydrated DocumentTree.

    Args:
        order: ``insertion`` keeps the order facts were ingested in;
            ``name`` sorts every level lexicographically by name.
    """

    def __init__(self, order: str = "insertion") -> None:
        if order not in ORDERS:
            raise ValueError(f"order must be one of {', '.join(ORDERS)}, got {order!r}")
        self.order = order

    def render(self, tree: DocumentTree) -> str:
        identity = tree.identity
        out: list[str] = [
            f"### Repository: {identity.repo_name}\n\n",
            f"### Owner: {identity.owner}\n\n",
            f"{identity.description or NO_DESCRIPTION}\n\n",
        ]

        for ns in self._sorted(tree.namespaces, lambda n: n.node.qualified_name):
            out.append(f"#### Package: {ns.node.qualified_name}\n\n")
            for file in self._sorted(ns.files or [], lambda f: f.fact.path):
                out.extend(self._render_file(file))
            out.append("\n")

        return "".join(out)

    def _render_file(self, file: FileBranch) -> list[str]:
        lines = [f"- **File**: {file.fact.file_name}\n"]
        for type_ in self._sorted(file.types or [], lambda t: t.fact.name):
            lines.extend(self._render_type(type_))
        return lines

    def _render_type(self, type_: TypeBranch) -> list[str]:
        lines = [
            f"  - **Class**: {type_.fact.name}\n",
            f"    - **Annotations**: [{', '.join(type_.fact.annotations)}]\n",
        ]
        for method in self._sorted(type_.methods or [], _member_name):
            lines.append(f"    - **Method**: {method.name} ({', '.join(method.annotations)})\n")
        for field in self._sorted(type_.fields or [], _member_name):
            lines.append(f"    - **Field**: {field.name} ({', '.join(field.annotations)})\n")
        return lines

    def _sorted(self, items: Sequence[T], key: Callable[[T], str]) -> list[T]:
        if self.order == "name":
            return sorted(items, key=key)
        return list(items)


def _member_name(member: MemberFact) -> str:
    return member.name


def render(tree: DocumentTree, order: str = "insertion") -> str:
    """Render *tree* with a one-off exporter."""
    return HierarchyExporter(order=order).render(tree)
