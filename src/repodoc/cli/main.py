"""Repodoc CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from repodoc.cli.generate import generate_cmd
from repodoc.cli.show import show_cmd
from repodoc.cli.status import status_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("repodoc")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"repodoc {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="repodoc",
    help=(
        "Repodoc: structural documentation for GitHub repositories.\n\n"
        "  repodoc generate  Extract types and members, export the report.\n"
        "  repodoc show      Print the current report from the local database."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """Repodoc: structural documentation for GitHub repositories."""


app.command("generate")(generate_cmd)
app.command("show")(show_cmd)
app.command("status")(status_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed repodoc version."""
    typer.echo(f"repodoc {_installed_version()}")


if __name__ == "__main__":
    app()
