"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from repodoc.db.connection import Database
from repodoc.db.repository import SqliteGraphStore


@pytest.fixture
def store(tmp_path):
    """File-based graph store in tmp_path with schema initialized, closed after test."""
    s = SqliteGraphStore(Database(tmp_path / ".repodoc.db"))
    yield s
    s.close()
