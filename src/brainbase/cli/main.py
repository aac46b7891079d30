"""brainbase CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from brainbase.cli.config import config_cmd
from brainbase.cli.index import index_cmd
from brainbase.cli.search import search_cmd
from brainbase.cli.status import status_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("brainbase")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"brainbase {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="brainbase",
    help=(
        "brainbase — turn a directory of documents into a searchable vector database.\n\n"
        "  brainbase index   Extract, split, and embed documents (resumable).\n"
        "  brainbase status  Show per-document embedding progress.\n"
        "  brainbase search  Look up the fragments nearest to a query.\n"
        "  brainbase config  Show the effective configuration."
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
    """brainbase — document indexing CLI."""


app.command("index")(index_cmd)
app.command("status")(status_cmd)
app.command("search")(search_cmd)
app.command("config")(config_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed brainbase version."""
    typer.echo(f"brainbase {_installed_version()}")


if __name__ == "__main__":
    app()
