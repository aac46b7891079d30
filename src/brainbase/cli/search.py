"""brainbase search — nearest fragments for a query, by cosine distance."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from brainbase.cli.errors import (
    err_embedding_batch,
    err_model_unavailable,
    err_no_api_key,
    err_no_db,
    err_store_write,
)
from brainbase.db.connection import Database
from brainbase.db.repository import Repository
from brainbase.errors import EmbedderUnavailableError, EmbeddingBatchError, StoreError
from brainbase.ingest.embedder import make_embedder

console = Console()

_DEFAULT_DB = Path("brainbase.db")
_EXCERPT_CHARS = 160


def search_cmd(
    query: Annotated[str, typer.Argument(help="Text to search for.")],
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to the database file."),
    ] = _DEFAULT_DB,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", min=1, max=50, help="Number of fragments to show."),
    ] = 5,
) -> None:
    """Find the fragments most similar to QUERY."""
    if not db.exists():
        console.print(err_no_db(str(db)))
        raise typer.Exit(1)

    try:
        conn = Database(db).connect()
    except StoreError as exc:
        console.print(err_store_write(str(exc)))
        raise typer.Exit(1) from exc

    try:
        repo = Repository(conn)
        meta = repo.get_meta()
        if meta is None:
            console.print("[yellow]Nothing indexed yet.[/] Run:  brainbase index --input-dir <dir>")
            raise typer.Exit(1)

        # Queries must be embedded by the same model the fragments were.
        embedder = make_embedder(meta.embedding_model, meta.embedding_dimension)
        try:
            embedder.check_ready()
        except EmbedderUnavailableError as exc:
            console.print(err_model_unavailable(meta.embedding_model, str(exc)))
            raise typer.Exit(1) from exc
        except RuntimeError as exc:
            console.print(err_no_api_key(meta.embedding_model.split("/")[0]))
            raise typer.Exit(1) from exc
        try:
            [vector] = embedder.embed_batch([query])
            hits = repo.search_similar(vector, limit=limit)
        except EmbeddingBatchError as exc:
            console.print(err_embedding_batch(str(exc)))
            raise typer.Exit(1) from exc
        except StoreError as exc:
            console.print(err_store_write(str(exc)))
            raise typer.Exit(1) from exc
        names = {d.id: d.filename for d in repo.list_documents()}
    finally:
        conn.close()

    if not hits:
        console.print("[dim]No embedded fragments to search.[/]")
        return

    table = Table(box=None, padding=(0, 1))
    table.add_column("#", style="dim", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Document", style="bold")
    table.add_column("Fragment")
    for rank, (fragment, distance) in enumerate(hits, start=1):
        excerpt = " ".join(fragment.content.split())
        if len(excerpt) > _EXCERPT_CHARS:
            excerpt = excerpt[:_EXCERPT_CHARS].rstrip() + "…"
        table.add_row(
            str(rank),
            f"{1.0 - distance:.3f}",
            f"{names.get(fragment.document_id, '?')} [dim]#{fragment.order}[/]",
            excerpt,
        )
    console.print(table)
