"""Phase 2 — drain fragments without embeddings in bounded batches.

"No embedding yet" is a durable, queryable property of a fragment, so this
phase keeps no cursor: it asks the store for the next batch until the store
returns nothing. An interrupted run resumes exactly where it stopped.

Per batch:
1. Blank fragments are set aside; they receive the empty marker instead of a
   vector so they are never selected again.
2. All remaining texts go to the embedder in one call.
3. Vector count and lengths are checked before anything is written, so a bad
   batch leaves no partial writes behind.
4. Vectors are written one fragment at a time. A failed write is logged and
   that fragment stays pending for the next run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from brainbase.db.store import Store
from brainbase.errors import EmbeddingBatchError, StoreError
from brainbase.ingest.context import RunContext
from brainbase.ingest.embedder import Embedder

logger = logging.getLogger(__name__)


class EmbeddingWriter:
    """Fill in embeddings for every pending fragment in *store*.

    Args:
        store: Persistence backend.
        embedder: Embedding provider, called once per non-empty batch.
        ctx: Run context supplying ``batch_size`` and collecting counters.
    """

    def __init__(self, store: Store, embedder: Embedder, ctx: RunContext) -> None:
        if ctx.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._store = store
        self._embedder = embedder
        self._ctx = ctx
        # Fragments whose write failed this run; excluded until the next run.
        self._failed: set[str] = set()

    def run(self, on_progress: Callable[[int, int], None] | None = None) -> int:
        """Embed pending fragments until none remain.

        Args:
            on_progress: Called after each batch with (handled, total pending at start).

        Returns:
            Number of fragments that received an embedding or the empty marker.

        Raises:
            EmbeddingBatchError: The embedder failed or returned malformed
                output. Batches written before the failure remain valid.
        """
        total = self._store.count_fragments_missing_embedding()
        if total == 0:
            logger.info("No fragments require embeddings")
            return 0

        logger.info("Embedding %d fragments in batches of %d", total, self._ctx.batch_size)
        handled = 0
        stored = 0
        while True:
            batch = self._next_batch()
            if not batch:
                break
            stored += self._process_batch(batch)
            handled += len(batch)
            logger.debug("Embedded %d/%d fragments", handled, total)
            if on_progress is not None:
                on_progress(handled, total)
        return stored

    def _next_batch(self) -> list[tuple[str, str]]:
        size = self._ctx.batch_size
        rows = self._store.fragments_missing_embedding(size + len(self._failed))
        return [row for row in rows if row[0] not in self._failed][:size]

    def _process_batch(self, batch: list[tuple[str, str]]) -> int:
        blanks = [fragment_id for fragment_id, content in batch if not content.strip()]
        pending = [(fragment_id, content) for fragment_id, content in batch if content.strip()]

        vectors: list[list[float]] = []
        if pending:
            texts = [content for _, content in pending]
            vectors = self._embedder.embed_batch(texts)
            self._ctx.embedding_calls += 1
            self._check_batch(vectors, len(texts))

        stored = 0
        for fragment_id in blanks:
            if self._write(fragment_id, None):
                self._ctx.fragments_empty += 1
                stored += 1
        for (fragment_id, _), vector in zip(pending, vectors):
            if self._write(fragment_id, vector):
                self._ctx.fragments_embedded += 1
                stored += 1
        return stored

    def _check_batch(self, vectors: Sequence[Sequence[float]], expected: int) -> None:
        if len(vectors) != expected:
            raise EmbeddingBatchError(
                f"Embedding count mismatch: expected {expected}, got {len(vectors)}"
            )
        dimension = self._embedder.dimension
        for vector in vectors:
            if len(vector) != dimension:
                raise EmbeddingBatchError(
                    f"{self._embedder.model_name} returned a {len(vector)}-dimensional "
                    f"vector, expected {dimension}"
                )

    def _write(self, fragment_id: str, vector: Sequence[float] | None) -> bool:
        try:
            if vector is None:
                self._store.mark_embedding_empty(fragment_id)
            else:
                self._store.set_embedding(fragment_id, vector)
        except StoreError as exc:
            logger.warning("Could not store embedding for fragment %s: %s", fragment_id, exc)
            self._failed.add(fragment_id)
            self._ctx.embedding_failures += 1
            return False
        return True
