"""Tests for HierarchyExporter rendering."""

from __future__ import annotations

import pytest

from repodoc.assemble.assembler import DocumentAssembler
from repodoc.assemble.exporter import HierarchyExporter, render
from repodoc.assemble.tree import DocumentTree, FileBranch, NamespaceBranch, TypeBranch
from repodoc.db.models import FIELD, METHOD, FileFact, MemberFact, NamespaceNode, RepositoryIdentity, TypeFact
from repodoc.ingest.driver import FactExtractionDriver
from repodoc.parse.java import JavaStructureParser

WIDGET = """\
package acme;

@Entity
public class Widget {
    private Long id;

    @Deprecated
    public Long getId() { return id; }
}
"""

EXPECTED_WIDGET = (
    "### Repository: widgets\n\n"
    "### Owner: acme\n\n"
    "Widget service\n\n"
    "#### Package: acme\n\n"
    "- **File**: Widget.java\n"
    "  - **Class**: Widget\n"
    "    - **Annotations**: [Entity]\n"
    "    - **Method**: getId (Deprecated)\n"
    "    - **Field**: id ()\n"
    "\n"
)

IDENTITY = RepositoryIdentity(
    owner="acme", repo_name="widgets", latest_commit_hash="c1", description="Widget service"
)


def _member(name, kind, *annotations):
    return MemberFact(name=name, kind=kind, annotations=list(annotations))


def _type(name, annotations=(), methods=(), fields=()):
    return TypeBranch(
        fact=TypeFact(name=name, annotations=list(annotations)),
        methods=list(methods),
        fields=list(fields),
    )


def _file(path, *types):
    return FileBranch(
        fact=FileFact(repo_name="widgets", namespace_id=1, path=path, content_hash="h"),
        types=list(types),
    )


def _ns(name, *files):
    return NamespaceBranch(node=NamespaceNode(repo_name="widgets", qualified_name=name), files=list(files))


# ------------------------------------------------------------------
# End to end
# ------------------------------------------------------------------

def test_widget_end_to_end(store):
    FactExtractionDriver(store, JavaStructureParser()).ingest(
        "acme/widgets", "src/main/java/acme/Widget.java", WIDGET
    )
    tree = DocumentAssembler(store).assemble(IDENTITY)
    assert render(tree) == EXPECTED_WIDGET


def test_rerender_after_reingest_is_stable(store):
    driver = FactExtractionDriver(store, JavaStructureParser())
    driver.ingest("acme/widgets", "src/main/java/acme/Widget.java", WIDGET)
    first = render(DocumentAssembler(store).assemble(IDENTITY))

    driver.ingest("acme/widgets", "src/main/java/acme/Widget.java", WIDGET)
    second = render(DocumentAssembler(store).assemble(IDENTITY))

    assert first == second
    assert len(store.list_namespaces("acme/widgets")) == 1


# ------------------------------------------------------------------
# Rendering rules
# ------------------------------------------------------------------

def test_missing_description_placeholder():
    identity = RepositoryIdentity(owner="acme", repo_name="widgets")
    text = HierarchyExporter().render(DocumentTree(identity=identity))
    assert text == "### Repository: widgets\n\n### Owner: acme\n\nNo description available\n\n"


def test_annotations_verbatim_with_duplicates():
    tree = DocumentTree(
        identity=IDENTITY,
        namespaces=[
            _ns(
                "acme",
                _file(
                    "acme/A.java",
                    _type(
                        "A",
                        annotations=["Tag", "Tag", "javax.persistence.Entity"],
                        methods=[_member("run", METHOD, "Override", "Timed")],
                        fields=[_member("x", FIELD, "Id")],
                    ),
                ),
            )
        ],
    )
    text = render(tree)
    assert "    - **Annotations**: [Tag, Tag, javax.persistence.Entity]\n" in text
    assert "    - **Method**: run (Override, Timed)\n" in text
    assert "    - **Field**: x (Id)\n" in text


def test_blank_line_between_namespaces():
    tree = DocumentTree(
        identity=IDENTITY,
        namespaces=[
            _ns("acme", _file("acme/A.java", _type("A"))),
            _ns("acme.core"),
        ],
    )
    text = render(tree)
    assert "    - **Annotations**: []\n\n#### Package: acme.core\n\n\n" in text
    assert text.endswith("#### Package: acme.core\n\n\n")


def test_insertion_order_kept_by_default():
    tree = DocumentTree(
        identity=IDENTITY,
        namespaces=[
            _ns("zeta", _file("zeta/B.java", _type("B")), _file("zeta/A.java", _type("A"))),
            _ns("alpha"),
        ],
    )
    text = render(tree)
    assert text.index("zeta") < text.index("alpha")
    assert text.index("B.java") < text.index("A.java")


def test_name_order_sorts_every_level():
    tree = DocumentTree(
        identity=IDENTITY,
        namespaces=[
            _ns(
                "zeta",
                _file(
                    "zeta/B.java",
                    _type(
                        "Y",
                        methods=[_member("b", METHOD), _member("a", METHOD)],
                        fields=[_member("z", FIELD), _member("y", FIELD)],
                    ),
                    _type("X"),
                ),
                _file("zeta/A.java"),
            ),
            _ns("alpha"),
        ],
    )
    text = render(tree, order="name")
    assert text.index("alpha") < text.index("zeta")
    assert text.index("A.java") < text.index("B.java")
    assert text.index("**Class**: X") < text.index("**Class**: Y")
    assert text.index("**Method**: a") < text.index("**Method**: b")
    assert text.index("**Field**: y") < text.index("**Field**: z")


def test_methods_before_fields():
    tree = DocumentTree(
        identity=IDENTITY,
        namespaces=[
            _ns(
                "acme",
                _file("acme/A.java", _type("A", methods=[_member("m", METHOD)], fields=[_member("f", FIELD)])),
            )
        ],
    )
    text = render(tree)
    assert text.index("**Method**: m") < text.index("**Field**: f")


def test_unknown_order_rejected():
    with pytest.raises(ValueError, match="order"):
        HierarchyExporter(order="random")
