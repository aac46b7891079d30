"""Storage capability used by the indexing pipeline.

The ingest and embed phases depend only on this interface; each backend
provides one concrete subclass (``brainbase.db.repository.Repository`` for
SQLite + sqlite-vec).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from contextlib import AbstractContextManager

from brainbase.db.models import Document, DocumentProgress, Fragment, MetaInfo


class Store(ABC):
    """Document / fragment / meta persistence."""

    # ------------------------------------------------------------------
    # Meta
    # ------------------------------------------------------------------

    @abstractmethod
    def get_meta(self) -> MetaInfo | None:
        """Return the recorded model meta, or None for a fresh store."""

    @abstractmethod
    def get_or_set_model_meta(self, model_name: str, dimension: int) -> MetaInfo:
        """Record *model_name* / *dimension* on first use, verify them afterwards.

        Raises:
            ModelMismatchError: If the store was built with a different model
                or dimension. Nothing is written in that case.
        """

    # ------------------------------------------------------------------
    # Documents and fragments (phase 1)
    # ------------------------------------------------------------------

    @abstractmethod
    def has_document(self, path: str) -> bool: ...

    @abstractmethod
    def create_document(self, filename: str, path: str, format: str, data: bytes) -> str:
        """Insert a document row and return its new id.

        Raises:
            DuplicatePathError: If *path* is already stored.
            StoreWriteError: On any other write failure.
        """

    @abstractmethod
    def create_fragments(self, document_id: str, contents: Sequence[str]) -> list[str]:
        """Insert fragments in order (``order`` = position) with no embedding."""

    @abstractmethod
    def unit_of_work(self) -> AbstractContextManager[None]:
        """Group writes so they commit together or not at all."""

    # ------------------------------------------------------------------
    # Embeddings (phase 2)
    # ------------------------------------------------------------------

    @abstractmethod
    def fragments_missing_embedding(self, limit: int) -> list[tuple[str, str]]:
        """Return up to *limit* ``(fragment_id, content)`` pairs lacking an embedding.

        Ordered by document insertion order, then fragment order.
        """

    @abstractmethod
    def count_fragments_missing_embedding(self) -> int: ...

    @abstractmethod
    def set_embedding(self, fragment_id: str, embedding: Sequence[float]) -> None:
        """Persist *embedding* for *fragment_id*.

        Raises:
            DimensionMismatchError: If the length disagrees with the recorded dimension.
        """

    @abstractmethod
    def mark_embedding_empty(self, fragment_id: str) -> None:
        """Flag a blank fragment so it is never selected for embedding again."""

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @abstractmethod
    def list_documents(self) -> list[Document]: ...

    @abstractmethod
    def get_fragments(self, document_id: str) -> list[Fragment]: ...

    @abstractmethod
    def document_progress(self) -> list[DocumentProgress]: ...

    @abstractmethod
    def search_similar(
        self, embedding: Sequence[float], limit: int = 5
    ) -> list[tuple[Fragment, float]]:
        """Nearest fragments by cosine distance, closest first."""
