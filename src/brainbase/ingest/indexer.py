"""Phase 1 — discover files, extract, split, and store fragments without embeddings.

One document is processed at a time; its text and fragment list live only for
the duration of ``Indexer.index_file()``, so peak memory is bounded by the
largest single document rather than the corpus.

Failure policy:
- Extraction or splitting problems → the file is recorded as skipped/failed and
  the run continues with the next file.
- ``StoreError`` → propagated; the run aborts. Documents committed so far stay
  valid and a rerun continues after them.
"""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path

from brainbase.db.store import Store
from brainbase.errors import DuplicatePathError
from brainbase.ingest.context import FAILED, INDEXED, SKIPPED, UNCHANGED, FileOutcome, RunContext
from brainbase.ingest.formats import SUPPORTED_EXTENSIONS
from brainbase.ingest.guard import ExtractionGuard, Skipped
from brainbase.ingest.splitter import FragmentSplitter

logger = logging.getLogger(__name__)

_MAX_DEPTH = 10


# ------------------------------------------------------------------
# Discovery
# ------------------------------------------------------------------


def discover_files(
    input_dir: Path,
    recursive: bool = False,
    exclude: Sequence[str] = (),
) -> list[Path]:
    """Return supported files in *input_dir*, sorted, optionally recursing.

    Entries whose name matches any glob in *exclude* are ignored (directories
    included). Recursion stops at depth 10. Unreadable directories are skipped.
    """
    return _scan_dir(input_dir, recursive=recursive, exclude=exclude, depth=0)


def _scan_dir(
    directory: Path,
    recursive: bool,
    exclude: Sequence[str],
    depth: int,
) -> list[Path]:
    files: list[Path] = []
    try:
        entries = sorted(directory.iterdir())
    except PermissionError:
        logger.warning("Permission denied, skipping directory %s", directory)
        return []
    for entry in entries:
        if any(fnmatch.fnmatch(entry.name, pat) for pat in exclude):
            continue
        if entry.is_file() and entry.suffix.lower() in SUPPORTED_EXTENSIONS:
            files.append(entry)
        elif entry.is_dir() and recursive and depth < _MAX_DEPTH:
            files.extend(_scan_dir(entry, recursive=recursive, exclude=exclude, depth=depth + 1))
    return files


# ------------------------------------------------------------------
# Per-document pipeline
# ------------------------------------------------------------------


class Indexer:
    """Ingest files into *store*: guard → splitter → document + fragment rows.

    Args:
        store: Persistence backend.
        ctx: Run context supplying limits and splitter settings, and
            collecting per-file outcomes.
    """

    def __init__(self, store: Store, ctx: RunContext) -> None:
        self._store = store
        self._ctx = ctx
        self._guard = ExtractionGuard(ctx.max_file_size, ctx.max_text_length)
        self._splitter = FragmentSplitter(
            chunk_size=ctx.chunk_size,
            overlap=ctx.overlap,
            min_sentence_length=ctx.min_sentence_length,
        )

    def run(
        self,
        files: Iterable[Path],
        on_file: Callable[[FileOutcome], None] | None = None,
    ) -> RunContext:
        """Index every path in *files* in order and return the run context."""
        for path in files:
            outcome = self.index_file(path)
            if on_file is not None:
                on_file(outcome)
        return self._ctx

    def index_file(self, path: Path) -> FileOutcome:
        """Index a single file. Already-known paths are left untouched."""
        source = Path(path).resolve()
        canonical = str(source)

        if self._store.has_document(canonical):
            logger.debug("Already indexed: %s", canonical)
            return self._ctx.record(FileOutcome(canonical, UNCHANGED))

        result = self._guard.extract(source)
        if isinstance(result, Skipped):
            logger.warning("Skipping %s: %s", canonical, result.reason)
            return self._ctx.record(FileOutcome(canonical, SKIPPED, reason=result.reason))

        try:
            fragments = self._splitter.split(result.text)
        except (ValueError, RuntimeError) as exc:
            logger.error("Failed to split %s: %s", canonical, exc)
            return self._ctx.record(FileOutcome(canonical, FAILED, reason=str(exc)))

        if not fragments:
            reason = "no fragments produced"
            logger.warning("Skipping %s: %s", canonical, reason)
            return self._ctx.record(FileOutcome(canonical, SKIPPED, reason=reason))

        try:
            data = source.read_bytes()
        except OSError as exc:
            logger.error("Failed to read %s: %s", canonical, exc)
            return self._ctx.record(FileOutcome(canonical, FAILED, reason=str(exc)))

        try:
            with self._store.unit_of_work():
                document_id = self._store.create_document(
                    source.name, canonical, result.format, data
                )
                self._store.create_fragments(document_id, fragments)
        except DuplicatePathError:
            logger.debug("Indexed concurrently, leaving as is: %s", canonical)
            return self._ctx.record(FileOutcome(canonical, UNCHANGED))

        logger.info(
            "Stored %d fragments for %s%s",
            len(fragments),
            source.name,
            f" (truncated at {result.truncated_at:,} chars)" if result.truncated else "",
        )
        return self._ctx.record(
            FileOutcome(
                canonical,
                INDEXED,
                fragments=len(fragments),
                truncated_at=result.truncated_at,
            )
        )
