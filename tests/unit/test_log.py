"""Tests for structlog configuration."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from repodoc.log import configure_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_json_lines_on_stderr(capsys):
    configure_logging("INFO", json_format=True)
    structlog.get_logger("repodoc.test").info("file_ingested", path="src/A.java")

    captured = capsys.readouterr()
    assert captured.out == ""
    event = json.loads(captured.err.strip().splitlines()[-1])
    assert event["event"] == "file_ingested"
    assert event["path"] == "src/A.java"
    assert event["level"] == "info"


def test_level_filters_lower_events(capsys):
    configure_logging("warning", json_format=True)
    log = structlog.get_logger("repodoc.test")
    log.info("hidden")
    log.warning("shown")

    err = capsys.readouterr().err
    assert "hidden" not in err
    assert "shown" in err


def test_bound_contextvars_are_merged(capsys):
    configure_logging("INFO", json_format=True)
    with structlog.contextvars.bound_contextvars(repo="acme/widgets"):
        structlog.get_logger("repodoc.test").info("snapshot_reused")

    event = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert event["repo"] == "acme/widgets"


def test_reconfigure_replaces_handler():
    configure_logging("INFO")
    configure_logging("DEBUG")
    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert root.level == logging.DEBUG
