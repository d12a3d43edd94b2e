"""Java structural parser backed by tree-sitter.

Reports every class, interface, enum, record and annotation type declared in
a file (nested declarations included, outer before inner), with:
  - annotation names exactly as written (``@javax.persistence.Entity`` stays
    qualified), order and duplicates preserved
  - the comment immediately preceding the declaration, delimiters stripped
  - one ``method`` member per method declaration (constructors excluded)
  - one ``field`` member per declared variable and per enum constant
"""

from __future__ import annotations

import re

import tree_sitter_java
from tree_sitter import Language, Node, Parser

from repodoc.db.models import DEFAULT_NAMESPACE, FIELD, METHOD, MemberFact, TypeFact
from repodoc.errors import ParseError
from repodoc.parse.base import StructureParser

JAVA_LANGUAGE = Language(tree_sitter_java.language())

_PACKAGE_RE = re.compile(r"^\s*package\s+([a-zA-Z0-9_.]+)\s*;\s*$", re.MULTILINE)

_TYPE_NODES = frozenset([
    "class_declaration",
    "interface_declaration",
    "enum_declaration",
    "record_declaration",
    "annotation_type_declaration",
])
_BODY_NODES = frozenset([
    "class_body",
    "interface_body",
    "enum_body",
    "enum_body_declarations",
    "annotation_type_body",
])
_METHOD_NODES = frozenset(["method_declaration", "annotation_type_element_declaration"])
_FIELD_NODES = frozenset(["field_declaration", "constant_declaration"])
_ANNOTATION_NODES = frozenset(["marker_annotation", "annotation"])
_COMMENT_NODES = frozenset(["block_comment", "line_comment"])


class JavaStructureParser(StructureParser):
    """Extract types, members, annotations and comments from Java source."""

    extensions = (".java",)

    def parse(self, content: str) -> list[TypeFact]:
        # Parser instances are cheap; one per call keeps this thread-safe.
        tree = Parser(JAVA_LANGUAGE).parse(content.encode("utf-8"))
        root = tree.root_node
        if root.has_error:
            line = _first_error_line(root)
            raise ParseError(f"Unable to parse the provided Java content (line {line})")

        types: list[TypeFact] = []
        self._collect_types(root, types)
        return types

    def extract_namespace(self, content: str) -> str:
        if content is None or not content.strip():
            return DEFAULT_NAMESPACE
        match = _PACKAGE_RE.search(content)
        if match:
            return match.group(1).strip()
        return DEFAULT_NAMESPACE

    # ------------------------------------------------------------------
    # Tree walk
    # ------------------------------------------------------------------

    def _collect_types(self, root: Node, out: list[TypeFact]) -> None:
        """Pre-order walk: a type is appended before any type nested in it.

        Uses an explicit stack: generated sources nest expressions deeper than
        the interpreter recursion limit.
        """
        stack = list(reversed(root.named_children))
        while stack:
            node = stack.pop()
            if node.type in _TYPE_NODES:
                out.append(self._type_fact(node))
            stack.extend(reversed(node.named_children))

    def _type_fact(self, node: Node) -> TypeFact:
        return TypeFact(
            name=_text(node.child_by_field_name("name")),
            annotations=_annotations(node),
            comment=_leading_comment(node),
            members=self._members(node.child_by_field_name("body")),
        )

    def _members(self, body: Node | None) -> list[MemberFact]:
        if body is None:
            return []
        members: list[MemberFact] = []
        for child in body.named_children:
            if child.type == "enum_body_declarations":
                members.extend(self._members(child))
            elif child.type in _METHOD_NODES:
                members.append(
                    MemberFact(
                        name=_text(child.child_by_field_name("name")),
                        kind=METHOD,
                        annotations=_annotations(child),
                        comment=_leading_comment(child),
                    )
                )
            elif child.type in _FIELD_NODES:
                annotations = _annotations(child)
                comment = _leading_comment(child)
                for declarator in child.children_by_field_name("declarator"):
                    members.append(
                        MemberFact(
                            name=_text(declarator.child_by_field_name("name")),
                            kind=FIELD,
                            annotations=list(annotations),
                            comment=comment,
                        )
                    )
            elif child.type == "enum_constant":
                members.append(
                    MemberFact(
                        name=_text(child.child_by_field_name("name")),
                        kind=FIELD,
                        annotations=_annotations(child),
                        comment=_leading_comment(child),
                    )
                )
        return members


# ------------------------------------------------------------------
# Node helpers
# ------------------------------------------------------------------


def _text(node: Node | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8")


def _annotations(node: Node) -> list[str]:
    """Annotation names from the declaration's modifiers, in source order."""
    names: list[str] = []
    for child in node.children:
        if child.type != "modifiers":
            continue
        for mod in child.children:
            if mod.type in _ANNOTATION_NODES:
                names.append(_text(mod.child_by_field_name("name")))
    return names


def _leading_comment(node: Node) -> str | None:
    """The comment directly above *node*, unless it trails the previous statement."""
    prev = node.prev_named_sibling
    if prev is None or prev.type not in _COMMENT_NODES:
        return None
    before = prev.prev_named_sibling
    if before is not None and before.end_point[0] == prev.start_point[0]:
        return None
    return _strip_comment(_text(prev))


def _strip_comment(raw: str) -> str:
    """Remove ``//``, ``/* */`` and ``/** */`` delimiters and leading ``*``."""
    if raw.startswith("//"):
        return raw[2:].strip()
    body = raw
    if body.startswith("/**"):
        body = body[3:]
    elif body.startswith("/*"):
        body = body[2:]
    if body.endswith("*/"):
        body = body[:-2]
    lines = [line.strip() for line in body.splitlines()]
    lines = [line[1:].strip() if line.startswith("*") else line for line in lines]
    return "\n".join(line for line in lines if line).strip()


def _first_error_line(root: Node) -> int:
    """1-based line of the first ERROR or missing node (depth-first)."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node.start_point[0] + 1
        stack.extend(reversed(node.children))
    return root.start_point[0] + 1
