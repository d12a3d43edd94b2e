"""Tests for report path derivation, path validation and atomic writes."""

from __future__ import annotations

from pathlib import Path

import pytest

from repodoc.assemble.writer import report_path, validate_output_path, write_output


# ------------------------------------------------------------------
# report_path
# ------------------------------------------------------------------

def test_report_path_layout():
    assert report_path("docs", "acme", "widgets") == str(Path("docs") / "acme" / "widgets.md")


@pytest.mark.parametrize("owner,repo", [("..", "widgets"), ("acme", "../etc"), ("ac/me", "w"), ("acme", "")])
def test_report_path_rejects_bad_names(owner, repo):
    with pytest.raises(ValueError):
        report_path("docs", owner, repo)


# ------------------------------------------------------------------
# validate_output_path
# ------------------------------------------------------------------

def test_relative_path_inside_base(tmp_path):
    resolved = validate_output_path("docs/acme/widgets.md", allowed_base=tmp_path)
    assert resolved == (tmp_path / "docs" / "acme" / "widgets.md").resolve()


def test_traversal_blocked(tmp_path):
    with pytest.raises(ValueError, match="Path traversal"):
        validate_output_path("../../etc/passwd", allowed_base=tmp_path)


def test_absolute_path_accepted(tmp_path):
    target = tmp_path / "out.md"
    assert validate_output_path(str(target)) == target.resolve()


# ------------------------------------------------------------------
# write_output
# ------------------------------------------------------------------

def test_write_output_creates_parents(tmp_path):
    target = tmp_path / "docs" / "acme" / "widgets.md"
    write_output(target, "hello\n")
    assert target.read_text(encoding="utf-8") == "hello\n"


def test_write_output_replaces_and_leaves_no_temp(tmp_path):
    target = tmp_path / "widgets.md"
    write_output(target, "old")
    write_output(target, "new")
    assert target.read_text(encoding="utf-8") == "new"
    assert [p.name for p in tmp_path.iterdir()] == ["widgets.md"]
