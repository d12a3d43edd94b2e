"""Tests for repodoc status and version commands."""

from __future__ import annotations

from typer.testing import CliRunner

from repodoc.cli.main import app
from repodoc.db.connection import Database
from repodoc.db.models import DocumentSnapshot, RepositoryIdentity
from repodoc.db.repository import SqliteGraphStore

runner = CliRunner()


def _add(store, repo_name, latest, snapshot_commit=None):
    repo = store.upsert_repository(
        RepositoryIdentity(owner="acme", repo_name=repo_name, latest_commit_hash=latest)
    )
    if snapshot_commit is not None:
        store.save_snapshot(
            DocumentSnapshot(repository_id=repo.audit.id, commit_hash=snapshot_commit, payload="doc")
        )


# ---------------------------------------------------------------------------
# repodoc --version / version
# ---------------------------------------------------------------------------


def test_version_flag_exits_zero() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "repodoc" in result.output.lower()


def test_version_command() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert result.output.startswith("repodoc ")


# ---------------------------------------------------------------------------
# repodoc status
# ---------------------------------------------------------------------------


def test_status_no_db(tmp_path) -> None:
    result = runner.invoke(app, ["status", "--db", str(tmp_path / "missing.db")])
    assert result.exit_code == 0
    assert "No database found" in result.output


def test_status_empty_db(tmp_path) -> None:
    db = tmp_path / ".repodoc.db"
    SqliteGraphStore(Database(db)).close()
    result = runner.invoke(app, ["status", "--db", str(db)])
    assert result.exit_code == 0
    assert "No repositories generated yet" in result.output


def test_status_lists_repositories(tmp_path) -> None:
    db = tmp_path / ".repodoc.db"
    store = SqliteGraphStore(Database(db))
    _add(store, "fresh", "c1", snapshot_commit="c1")
    _add(store, "stale", "c2", snapshot_commit="c1")
    _add(store, "never", "c3")
    store.close()

    result = runner.invoke(app, ["status", "--db", str(db)])

    assert result.exit_code == 0, result.output
    assert "acme/fresh" in result.output
    assert "Up to date" in result.output
    assert "Stale" in result.output
    assert "Never generated" in result.output
    assert "1/3 up to date" in result.output
