"""brainbase index — build or resume a searchable database from a directory.

Two phases, both resumable:
  1. Ingest: discover files → guard → split → store document + fragments
     (no embeddings yet). Files already in the database are left untouched.
  2. Embed: fill in every fragment still missing an embedding, in batches.

The embedding model is checked against the database before any document is
touched; a mismatch aborts with nothing written.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from brainbase.cli.errors import (
    err_config,
    err_embedding_batch,
    err_input_dir_missing,
    err_invalid_option,
    err_model_mismatch,
    err_model_unavailable,
    err_no_api_key,
    err_store_write,
)
from brainbase.config import BrainbaseConfig, ConfigError, load_config, validate
from brainbase.db.connection import Database
from brainbase.db.repository import Repository
from brainbase.errors import (
    EmbedderUnavailableError,
    EmbeddingBatchError,
    ModelMismatchError,
    StoreError,
)
from brainbase.ingest.context import FAILED, SKIPPED, FileOutcome, RunContext
from brainbase.ingest.embedder import Embedder, make_embedder
from brainbase.ingest.embedding_writer import EmbeddingWriter
from brainbase.ingest.indexer import Indexer, discover_files
from brainbase.log import configure_logging

console = Console()

_DEFAULT_DB = "brainbase.db"


def index_cmd(
    input_dir: Annotated[
        Path,
        typer.Option("--input-dir", "-i", help="Directory containing the documents to index."),
    ],
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to the database file (created if missing)."),
    ] = Path(_DEFAULT_DB),
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Embedding model, e.g. openai/text-embedding-3-small."),
    ] = None,
    dimensions: Annotated[
        int | None,
        typer.Option("--dimensions", help="Vector length of the embedding model."),
    ] = None,
    batch_size: Annotated[
        int | None,
        typer.Option("--batch-size", help="Fragments per embedding call."),
    ] = None,
    chunk_size: Annotated[
        int | None,
        typer.Option("--chunk-size", help="Maximum fragment size in characters."),
    ] = None,
    overlap: Annotated[
        int | None,
        typer.Option("--overlap", help="Characters of trailing context repeated between fragments."),
    ] = None,
    max_file_size_mb: Annotated[
        int | None,
        typer.Option("--max-file-size-mb", help="Skip files larger than this."),
    ] = None,
    max_text_length: Annotated[
        int | None,
        typer.Option("--max-text-length", help="Truncate extracted text beyond this many characters."),
    ] = None,
    recursive: Annotated[
        bool | None,
        typer.Option("--recursive/--no-recursive", help="Recurse into subdirectories (max 10 levels)."),
    ] = None,
    exclude: Annotated[
        list[str] | None,
        typer.Option("--exclude", help="Glob pattern to exclude (repeatable)."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Debug logging."),
    ] = False,
) -> None:
    """Index a directory of documents into a searchable database."""
    configure_logging(verbose)

    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc

    _apply_overrides(
        cfg,
        model=model,
        dimensions=dimensions,
        batch_size=batch_size,
        chunk_size=chunk_size,
        overlap=overlap,
        max_file_size_mb=max_file_size_mb,
        max_text_length=max_text_length,
        recursive=recursive,
        exclude=exclude,
    )
    try:
        validate(cfg)
    except ConfigError as exc:
        console.print(err_invalid_option(str(exc)))
        raise typer.Exit(1) from exc

    if not input_dir.is_dir():
        console.print(err_input_dir_missing(str(input_dir)))
        raise typer.Exit(1)

    embedder = make_embedder(cfg.embedding.model, cfg.embedding.dimensions)
    try:
        embedder.check_ready()
    except EmbedderUnavailableError as exc:
        console.print(err_model_unavailable(cfg.embedding.model, str(exc)))
        raise typer.Exit(1) from exc
    except RuntimeError as exc:
        console.print(err_no_api_key(cfg.embedding.model.split("/")[0]))
        raise typer.Exit(1) from exc

    try:
        conn = Database(db).connect()
    except StoreError as exc:
        console.print(err_store_write(str(exc)))
        raise typer.Exit(1) from exc
    repo = Repository(conn)
    ctx = RunContext.from_config(cfg)
    try:
        try:
            meta = repo.get_or_set_model_meta(embedder.model_name, embedder.dimension)
        except ModelMismatchError as exc:
            console.print(
                err_model_mismatch(
                    exc.stored_model,
                    exc.stored_dimension,
                    exc.requested_model,
                    exc.requested_dimension,
                )
            )
            raise typer.Exit(1) from exc
        console.print(
            f"[bold]→ {input_dir}[/]  [dim]{meta.embedding_model} · "
            f"{meta.embedding_dimension} dimensions · {db}[/]"
        )

        files = discover_files(
            input_dir,
            recursive=cfg.indexing.recursive,
            exclude=cfg.indexing.exclude,
        )
        if not files:
            console.print(f"[yellow]No supported files found in directory:[/] {input_dir}")

        _run_ingest(repo, ctx, files)
        _run_embed(repo, embedder, ctx)
    except EmbeddingBatchError as exc:
        _show_summary(ctx)
        console.print(err_embedding_batch(str(exc)))
        raise typer.Exit(1) from exc
    except (StoreError, sqlite3.Error) as exc:
        _show_summary(ctx)
        console.print(err_store_write(str(exc)))
        raise typer.Exit(1) from exc
    finally:
        conn.close()

    _show_summary(ctx)


# ------------------------------------------------------------------
# Phases
# ------------------------------------------------------------------


def _run_ingest(repo: Repository, ctx: RunContext, files: list[Path]) -> None:
    if not files:
        return
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TextColumn("[dim]{task.fields[current]}[/dim]"),
        transient=True,
        console=console,
    ) as prog:
        task = prog.add_task("Extracting…", total=len(files), current="")

        def _on_file(outcome: FileOutcome) -> None:
            prog.update(task, advance=1, current=Path(outcome.path).name)

        Indexer(repo, ctx).run(files, on_file=_on_file)
    console.print(
        f"  [green]✓[/] {ctx.documents_indexed} new documents, "
        f"{ctx.fragments_created:,} fragments"
    )


def _run_embed(repo: Repository, embedder: Embedder, ctx: RunContext) -> None:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TextColumn("[dim]{task.fields[calls]} embedding calls[/dim]"),
        transient=True,
        console=console,
    ) as prog:
        task = prog.add_task("Embedding…", total=None, calls=0)

        def _on_batch(done: int, total: int) -> None:
            prog.update(task, completed=done, total=total, calls=ctx.embedding_calls)

        stored = EmbeddingWriter(repo, embedder, ctx).run(on_progress=_on_batch)
    if stored:
        console.print(
            f"  [green]✓[/] Embedded {stored:,} fragments ({ctx.embedding_calls} embedding calls)"
        )
    else:
        console.print("  [dim]↷ All fragments already embedded[/]")


# ------------------------------------------------------------------
# Option handling
# ------------------------------------------------------------------


def _apply_overrides(
    cfg: BrainbaseConfig,
    *,
    model: str | None,
    dimensions: int | None,
    batch_size: int | None,
    chunk_size: int | None,
    overlap: int | None,
    max_file_size_mb: int | None,
    max_text_length: int | None,
    recursive: bool | None,
    exclude: list[str] | None,
) -> None:
    """CLI flags take precedence over every config layer."""
    if model is not None:
        cfg.embedding.model = model
    if dimensions is not None:
        cfg.embedding.dimensions = dimensions
    if batch_size is not None:
        cfg.embedding.batch_size = batch_size
    if chunk_size is not None:
        cfg.chunking.chunk_size = chunk_size
    if overlap is not None:
        cfg.chunking.overlap = overlap
    if max_file_size_mb is not None:
        cfg.limits.max_file_size_mb = max_file_size_mb
    if max_text_length is not None:
        cfg.limits.max_text_length = max_text_length
    if recursive is not None:
        cfg.indexing.recursive = recursive
    if exclude:
        cfg.indexing.exclude = [*cfg.indexing.exclude, *exclude]


# ------------------------------------------------------------------
# Summary
# ------------------------------------------------------------------


def _show_summary(ctx: RunContext) -> None:
    table = Table(title="Index summary", show_header=False, box=None, padding=(0, 1))
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Files seen", str(ctx.files_seen))
    table.add_row("Indexed", f"[green]{ctx.documents_indexed}[/]")
    table.add_row("Unchanged", f"[dim]{ctx.documents_unchanged}[/]")
    table.add_row("Skipped", f"[yellow]{ctx.files_skipped}[/]")
    table.add_row("Failed", f"[red]{ctx.files_failed}[/]")
    table.add_row("Truncated", str(ctx.documents_truncated))
    table.add_row("Fragments created", f"{ctx.fragments_created:,}")
    table.add_row("Fragments embedded", f"{ctx.fragments_embedded:,}")
    table.add_row("Empty fragments", str(ctx.fragments_empty))
    table.add_row("Embedding calls", str(ctx.embedding_calls))
    if ctx.embedding_failures:
        table.add_row("Write failures", f"[red]{ctx.embedding_failures}[/]")
    console.print(table)

    for outcome in ctx.outcomes:
        if outcome.status in (SKIPPED, FAILED):
            colour = "yellow" if outcome.status == SKIPPED else "red"
            console.print(
                f"  [{colour}]✗ {outcome.status}:[/] {outcome.path} [dim]({outcome.reason})[/]"
            )
        elif outcome.truncated_at is not None:
            console.print(
                f"  [yellow]✂ truncated:[/] {outcome.path} "
                f"[dim](at {outcome.truncated_at:,} chars)[/]"
            )

