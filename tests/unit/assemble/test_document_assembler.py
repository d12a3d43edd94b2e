"""Tests for DocumentAssembler: loading, completeness verification, repair."""

from __future__ import annotations

import pytest

from repodoc.assemble.assembler import MAX_REPAIR_PASSES, DocumentAssembler
from repodoc.db.models import FIELD, METHOD, FileFact, MemberFact, RepositoryIdentity, TypeFact
from repodoc.errors import IncompleteGraph, NotFound
from repodoc.ingest.hierarchy import NamespaceHierarchyBuilder

IDENTITY = RepositoryIdentity(owner="acme", repo_name="widgets", latest_commit_hash="c1")


def _seed(store):
    builder = NamespaceHierarchyBuilder(store)
    acme = builder.get_or_create("acme/widgets", "acme")
    core = builder.get_or_create("acme/widgets", "acme.core")
    store.replace_file_facts(
        FileFact(repo_name="acme/widgets", namespace_id=acme.id, path="acme/Widget.java", content_hash="h"),
        [
            TypeFact(
                name="Widget",
                annotations=["Entity"],
                members=[
                    MemberFact(name="id", kind=FIELD),
                    MemberFact(name="getId", kind=METHOD, annotations=["Deprecated"]),
                ],
            ),
            TypeFact(name="Empty"),
        ],
    )
    store.replace_file_facts(
        FileFact(repo_name="acme/widgets", namespace_id=core.id, path="acme/core/Core.java", content_hash="h"),
        [],
    )


class ForgetfulStore:
    """Wraps a store and leaves out selected branches from the first N answers."""

    def __init__(self, inner, omit_calls=1, omit=("types",)):
        self.inner = inner
        self.omit_calls = omit_calls
        self.omit = omit
        self.calls = {"files": 0, "types": 0, "members": 0}

    def list_namespaces(self, repo_name):
        return self.inner.list_namespaces(repo_name)

    def _answer(self, level, result):
        self.calls[level] += 1
        if level in self.omit and self.calls[level] <= self.omit_calls and result:
            first = next(iter(result))
            return {k: v for k, v in result.items() if k != first}
        return result

    def files_for_namespaces(self, ids):
        return self._answer("files", self.inner.files_for_namespaces(ids))

    def types_for_files(self, ids):
        return self._answer("types", self.inner.types_for_files(ids))

    def members_for_types(self, ids):
        return self._answer("members", self.inner.members_for_types(ids))


# ------------------------------------------------------------------
# Happy path
# ------------------------------------------------------------------

def test_assemble_builds_full_tree(store):
    _seed(store)
    tree = DocumentAssembler(store).assemble(IDENTITY)

    assert tree.complete
    assert [ns.node.qualified_name for ns in tree.namespaces] == ["acme", "acme.core"]
    acme, core = tree.namespaces
    assert [f.fact.path for f in acme.files] == ["acme/Widget.java"]
    assert core.files[0].types == []

    widget, empty = acme.files[0].types
    assert [m.name for m in widget.methods] == ["getId"]
    assert [m.name for m in widget.fields] == ["id"]
    assert empty.methods == [] and empty.fields == []


def test_assemble_no_namespaces_not_found(store):
    with pytest.raises(NotFound):
        DocumentAssembler(store).assemble(IDENTITY)


def test_empty_namespace_is_fetched(store):
    NamespaceHierarchyBuilder(store).get_or_create("acme/widgets", "lonely")
    tree = DocumentAssembler(store).assemble(IDENTITY)
    assert tree.namespaces[0].files == []
    assert tree.complete


# ------------------------------------------------------------------
# Repair
# ------------------------------------------------------------------

@pytest.mark.parametrize("level", ["files", "types", "members"])
def test_unfetched_branch_is_repaired(store, level):
    _seed(store)
    forgetful = ForgetfulStore(store, omit_calls=1, omit=(level,))

    tree = DocumentAssembler(forgetful).assemble(IDENTITY)

    assert tree.complete
    assert forgetful.calls[level] == 2


def test_repair_only_requeries_missing_branch(store):
    _seed(store)
    forgetful = ForgetfulStore(store, omit_calls=1, omit=("files",))

    queried = []
    original = forgetful.files_for_namespaces

    def _spy(ids):
        ids = list(ids)
        queried.append(ids)
        return original(ids)

    forgetful.files_for_namespaces = _spy
    DocumentAssembler(forgetful).assemble(IDENTITY)

    assert len(queried) == 2
    assert len(queried[1]) == 1
    assert queried[1][0] == queried[0][0]


def test_store_that_never_hydrates_raises_incomplete(store):
    _seed(store)
    forgetful = ForgetfulStore(store, omit_calls=10_000, omit=("types",))

    with pytest.raises(IncompleteGraph):
        DocumentAssembler(forgetful).assemble(IDENTITY)

    # One initial load plus one per repair pass, never more.
    assert forgetful.calls["types"] == 1 + MAX_REPAIR_PASSES
