"""repodoc generate: regenerate (if stale) and export a repository report.

Usage:
  repodoc generate acme/widgets [--force] [--output-dir docs]

Flags:
  --db PATH          Path to .repodoc.db (created if missing)
  --token TEXT       GitHub token (default: $GITHUB_TOKEN); never stored or logged
  --workers N        Extraction worker pool size
  --output-dir PATH  Directory the report is written to (<dir>/<owner>/<repo>.md)
  --order MODE       insertion | name
  --force            Re-extract every file even if the document is current
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from repodoc.cli.errors import (
    err_assembly,
    err_config,
    err_ingestion,
    err_metadata,
    err_output_path_unsafe,
    err_repo_slug,
    err_unsupported_language,
)
from repodoc.config import ConfigError, RepodocConfig, load_config
from repodoc.db.connection import Database
from repodoc.db.repository import SqliteGraphStore
from repodoc.errors import GenerationError
from repodoc.github.client import GitHubClient
from repodoc.ingest.driver import IngestionReport
from repodoc.log import configure_logging
from repodoc.parse import PARSERS
from repodoc.service import DocumentationService

console = Console()

_DEFAULT_DB = ".repodoc.db"


def generate_cmd(
    repository: Annotated[
        str,
        typer.Argument(help="Repository as OWNER/REPO."),
    ],
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .repodoc.db (created if missing)."),
    ] = Path(_DEFAULT_DB),
    token: Annotated[
        str | None,
        typer.Option("--token", envvar="GITHUB_TOKEN", show_default=False, help="GitHub token."),
    ] = None,
    workers: Annotated[
        int | None,
        typer.Option("--workers", "-w", min=1, help="Extraction worker pool size."),
    ] = None,
    output_dir: Annotated[
        str | None,
        typer.Option("--output-dir", "-o", help="Directory reports are written to."),
    ] = None,
    order: Annotated[
        str | None,
        typer.Option("--order", help="Report ordering: insertion | name."),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Regenerate even if the document is current."),
    ] = False,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Log level for stderr diagnostics."),
    ] = None,
) -> None:
    """Generate the structural report for a GitHub repository."""
    owner, repo = split_slug(repository)

    try:
        cfg = load_config()
        cfg = _apply_flags(cfg, workers=workers, output_dir=output_dir, order=order, log_level=log_level)
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)

    configure_logging(cfg.logging.level, json_format=cfg.logging.json)

    if cfg.ingest.language.lower() not in PARSERS:
        console.print(err_unsupported_language(cfg.ingest.language, sorted(PARSERS)))
        raise typer.Exit(1)

    try:
        client = GitHubClient(token=token, api_url=cfg.github.api_url, timeout=cfg.github.timeout)
    except ValueError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)

    store = SqliteGraphStore(Database(db))
    try:
        service = DocumentationService.from_config(store, client, cfg)
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=console,
        ) as prog:
            prog.add_task(f"Generating {owner}/{repo}…", total=None)
            try:
                result = service.generate(owner, repo, force=force)
            except GenerationError as exc:
                prog.stop()
                _report_failure(f"{owner}/{repo}", exc)
                raise typer.Exit(1)
    finally:
        store.close()

    commit = result.snapshot.commit_hash[:12]
    if result.report is None:
        console.print(f"  [dim]✓ Up to date at commit {commit}, reusing current document[/]")
    else:
        console.print(f"  [dim]✓ Ingested at commit {commit}: {result.report.summary()}[/]")
        if result.report.failed:
            _print_failures(result.report)

    if result.output_path is not None:
        console.print(f"\n  [green]✓[/] Written to [bold]{result.output_path}[/]")


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def split_slug(value: str) -> tuple[str, str]:
    """Split OWNER/REPO, exiting with an actionable message if malformed."""
    parts = value.strip().strip("/").split("/")
    if len(parts) != 2 or not all(p.strip() for p in parts):
        console.print(err_repo_slug(value))
        raise typer.Exit(1)
    return parts[0].strip(), parts[1].strip()


def _apply_flags(
    cfg: RepodocConfig,
    *,
    workers: int | None,
    output_dir: str | None,
    order: str | None,
    log_level: str | None,
) -> RepodocConfig:
    """Apply CLI flag overrides (highest priority layer) and re-validate."""
    if workers is not None:
        cfg.ingest.workers = workers
    if output_dir is not None:
        cfg.export.output_dir = output_dir
    if order is not None:
        if order not in ("insertion", "name"):
            raise ConfigError(f"--order must be insertion or name, got '{order}'")
        cfg.export.order = order
    if log_level is not None:
        cfg.logging.level = log_level.upper()
    return cfg


def _report_failure(slug: str, exc: GenerationError) -> None:
    if exc.report is not None and exc.report.failed:
        _print_failures(exc.report)

    message = str(exc).split(": ", 1)[-1]
    if exc.stage == "metadata":
        console.print(err_metadata(slug, message))
    elif exc.stage == "ingestion":
        console.print(err_ingestion(message))
    elif exc.stage == "assembly":
        console.print(err_assembly(message))
    else:
        console.print(err_output_path_unsafe(message))


def _print_failures(report: IngestionReport) -> None:
    table = Table(title="Failed files", show_lines=False)
    table.add_column("Path")
    table.add_column("Stage", style="dim")
    table.add_column("Error", style="red")
    for error in report.errors:
        table.add_row(error.path, error.stage, str(error.cause))
    console.print(table)
