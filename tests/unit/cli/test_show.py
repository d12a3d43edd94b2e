"""Tests for the repodoc show command."""

from __future__ import annotations

from typer.testing import CliRunner

from repodoc.cli.main import app
from repodoc.db.connection import Database
from repodoc.db.models import DocumentSnapshot, RepositoryIdentity
from repodoc.db.repository import SqliteGraphStore

runner = CliRunner()


def _seed(db_path, payload="### Repository: widgets\n"):
    store = SqliteGraphStore(Database(db_path))
    repo = store.upsert_repository(
        RepositoryIdentity(owner="acme", repo_name="widgets", latest_commit_hash="c1")
    )
    if payload is not None:
        store.save_snapshot(DocumentSnapshot(repository_id=repo.audit.id, commit_hash="c1", payload=payload))
    store.close()


def test_show_prints_current_payload(tmp_path):
    db = tmp_path / ".repodoc.db"
    _seed(db)
    result = runner.invoke(app, ["show", "acme/widgets", "--db", str(db)])
    assert result.exit_code == 0, result.output
    assert result.output == "### Repository: widgets\n"


def test_show_no_db(tmp_path):
    result = runner.invoke(app, ["show", "acme/widgets", "--db", str(tmp_path / "missing.db")])
    assert result.exit_code == 1
    assert "No database found" in result.output


def test_show_never_generated(tmp_path):
    db = tmp_path / ".repodoc.db"
    _seed(db, payload=None)
    result = runner.invoke(app, ["show", "acme/widgets", "--db", str(db)])
    assert result.exit_code == 1
    assert "repodoc generate acme/widgets" in result.output


def test_show_unknown_repository(tmp_path):
    db = tmp_path / ".repodoc.db"
    _seed(db)
    result = runner.invoke(app, ["show", "acme/gadgets", "--db", str(db)])
    assert result.exit_code == 1
