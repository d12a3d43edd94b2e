"""Repodoc rich error messages with actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from repodoc.cli.errors import err_no_db
    console.print(err_no_db(".repodoc.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_repo_slug(value: str) -> str:
    """Argument is not of the form OWNER/REPO."""
    return (
        f"[red]Error:[/] Invalid repository '{value}'.\n"
        "  Use the form OWNER/REPO, e.g.:  repodoc generate acme/widgets"
    )


def err_no_db(db_path: str = ".repodoc.db") -> str:
    """No database at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  repodoc generate OWNER/REPO"
    )


def err_not_generated(slug: str) -> str:
    """Repository known to nobody or never exported."""
    return (
        f"[yellow]No document for[/] '{slug}'.\n"
        f"  Run:  repodoc generate {slug}"
    )


def err_config(message: str) -> str:
    """Config file is invalid or contains a forbidden key."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {message}\n"
        "  Fix repodoc.yaml or ~/.repodoc/config.yaml and retry."
    )


def err_unsupported_language(language: str, supported: list[str]) -> str:
    return (
        f"[red]Error:[/] No parser for language '{language}'.\n"
        f"  Supported: {', '.join(supported)}\n"
        "  Set ingest.language in repodoc.yaml."
    )


def err_metadata(slug: str, message: str) -> str:
    """Repository metadata could not be fetched."""
    return (
        f"[red]Error:[/] Could not fetch repository metadata for '{slug}'.\n"
        f"  {message}\n"
        "  Check the repository name, and for private repositories set:\n"
        "    export GITHUB_TOKEN=<token>"
    )


def err_ingestion(message: str) -> str:
    return (
        f"[red]Error:[/] Ingestion failed: {message}\n"
        "  See the failed files above. Re-run with --log-level INFO for details."
    )


def err_assembly(message: str) -> str:
    return (
        f"[red]Error:[/] Document assembly failed: {message}\n"
        "  Re-run with --force to extract every file again."
    )


def err_output_path_unsafe(message: str) -> str:
    """--output-dir fails validation or cannot be written."""
    return (
        f"[red]Error:[/] Could not write the report: {message}\n"
        "  Use --output-dir with a writable directory inside the current working directory."
    )
