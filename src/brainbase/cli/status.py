"""brainbase status command.

Shows the database's embedding model and, per document, how many fragments
it has and how many still lack an embedding.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from brainbase.cli.errors import err_no_db, err_store_write
from brainbase.db.connection import Database
from brainbase.db.models import FULLY_EMBEDDED, PARTIALLY_EMBEDDED, DocumentProgress
from brainbase.db.repository import Repository
from brainbase.errors import StoreError

console = Console()

_DEFAULT_DB = Path("brainbase.db")

_STATE_STYLE = {
    FULLY_EMBEDDED: "[green]✓ fully embedded[/]",
    PARTIALLY_EMBEDDED: "[yellow]◐ partially embedded[/]",
}


def status_cmd(
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to the database file."),
    ] = _DEFAULT_DB,
) -> None:
    """Show index status: embedding model and per-document progress."""
    if not db.exists():
        console.print(err_no_db(str(db)))
        raise typer.Exit(1)

    try:
        with Database(db) as conn:
            repo = Repository(conn)
            meta = repo.get_meta()
            progress = repo.document_progress()
    except StoreError as exc:
        console.print(err_store_write(str(exc)))
        raise typer.Exit(1) from exc

    size_mb = db.stat().st_size / (1024 * 1024)
    lines = [f"Database:  {db} ({size_mb:.1f} MB)"]
    if meta is None:
        lines.append("Model:     [dim](not set — run brainbase index)[/]")
    else:
        lines.append(f"Model:     [bold]{meta.embedding_model}[/]")
        lines.append(f"Dimension: {meta.embedding_dimension}")
        lines.append(f"Schema:    v{meta.schema_version}")
    total = sum(p.fragments for p in progress)
    missing = sum(p.missing for p in progress)
    lines.append(
        f"Documents: [bold]{len(progress)}[/]  |  "
        f"Fragments: [bold]{total:,}[/]  |  "
        f"Pending embeddings: [bold]{missing:,}[/]"
    )
    console.print(Panel("\n".join(lines), title="[bold]Index[/]", expand=False))

    if not progress:
        console.print("[dim]No documents indexed yet.[/]")
        return
    _show_documents(progress)


def _show_documents(progress: list[DocumentProgress]) -> None:
    table = Table(box=None, padding=(0, 1))
    table.add_column("Document")
    table.add_column("Format", style="dim")
    table.add_column("Fragments", justify="right")
    table.add_column("Pending", justify="right")
    table.add_column("State")

    for item in progress:
        state = _STATE_STYLE.get(item.state, "[dim]✗ text extracted[/]")
        table.add_row(
            item.document.filename,
            item.document.format,
            str(item.fragments),
            str(item.missing),
            state,
        )
    console.print(Panel(table, title="[bold]Documents[/]", expand=False))
