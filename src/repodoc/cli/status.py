"""repodoc status command.

Shows the database overview and, per known repository, the last fetched
commit and whether its current document matches it. Works offline.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from repodoc.db.connection import Database
from repodoc.db.repository import SqliteGraphStore
from repodoc.ingest.staleness import StalenessOracle

console = Console()

_DEFAULT_DB = Path(".repodoc.db")


def status_cmd(
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .repodoc.db."),
    ] = _DEFAULT_DB,
) -> None:
    """Show known repositories and whether their documents are current."""
    if not db.exists():
        console.print(
            Panel(
                "[yellow]No database found.[/]\n"
                "  Run:  repodoc generate OWNER/REPO",
                title="[bold]Repositories[/]",
                expand=False,
            )
        )
        return

    size_mb = db.stat().st_size / (1024 * 1024)
    console.print(Panel(f"Database:  {db} ({size_mb:.1f} MB)", title="[bold]Project[/]", expand=False))

    store = SqliteGraphStore(Database(db))
    try:
        _show_repositories_panel(store)
    finally:
        store.close()


def _show_repositories_panel(store: SqliteGraphStore) -> None:
    repositories = store.list_repositories()
    if not repositories:
        console.print(
            Panel("[dim]No repositories generated yet.[/]", title="[bold]Repositories[/]", expand=False)
        )
        return

    oracle = StalenessOracle(store)
    table = Table(show_header=True, box=None, padding=(0, 1))
    table.add_column("Repository", style="bold")
    table.add_column("Commit", style="dim")
    table.add_column("Document")
    table.add_column("Generated", style="dim")

    current = 0
    for identity in repositories:
        snapshot = oracle.current_snapshot(identity)
        if snapshot is None:
            status = "[dim]✗ Never generated[/]"
            generated = ""
        elif oracle.needs_regeneration(identity, identity.latest_commit_hash):
            status = f"[yellow]✗ Stale ({snapshot.commit_hash[:12]})[/]"
            generated = (snapshot.created_at or "")[:16]
        else:
            status = "[green]✓ Up to date[/]"
            generated = (snapshot.created_at or "")[:16]
            current += 1
        table.add_row(identity.slug, identity.latest_commit_hash[:12], status, generated)

    console.print(
        Panel(
            table,
            title=f"[bold]Repositories[/] [dim]({current}/{len(repositories)} up to date)[/]",
            expand=False,
        )
    )
