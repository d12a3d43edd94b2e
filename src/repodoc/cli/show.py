"""repodoc show: print the current document of a repository."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from repodoc.cli.errors import err_no_db, err_not_generated
from repodoc.cli.generate import split_slug
from repodoc.db.connection import Database
from repodoc.db.repository import SqliteGraphStore

console = Console()

_DEFAULT_DB = Path(".repodoc.db")


def show_cmd(
    repository: Annotated[
        str,
        typer.Argument(help="Repository as OWNER/REPO."),
    ],
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .repodoc.db."),
    ] = _DEFAULT_DB,
) -> None:
    """Print the current document without contacting GitHub."""
    owner, repo = split_slug(repository)

    if not db.exists():
        console.print(err_no_db(str(db)))
        raise typer.Exit(1)

    store = SqliteGraphStore(Database(db))
    try:
        identity = store.get_repository(owner, repo)
        snapshot = store.get_current_snapshot(identity.audit.id) if identity else None
    finally:
        store.close()

    if snapshot is None:
        console.print(err_not_generated(f"{owner}/{repo}"))
        raise typer.Exit(1)

    typer.echo(snapshot.payload, nl=False)
