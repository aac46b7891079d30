"""Exception hierarchy for the brainbase indexing pipeline.

Per-file problems (``SkippableFileError``) are recovered by the ingest phase;
everything deriving from ``StoreError``, ``ModelMismatchError`` and
``EmbeddingBatchError`` aborts the run and is reported by the CLI.
"""

from __future__ import annotations


class BrainbaseError(Exception):
    """Base class for all brainbase errors."""


# ---------------------------------------------------------------------------
# Per-file (recoverable)
# ---------------------------------------------------------------------------


class SkippableFileError(BrainbaseError):
    """A file cannot be indexed this run; the run continues with the next file."""


class ExtractionError(SkippableFileError):
    """An extractor could not parse the document as a whole."""


class TruncationWarning(UserWarning):
    """Extracted text reached the configured ceiling and was cut."""


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class StoreError(BrainbaseError):
    """Base class for persistence failures."""


class StoreWriteError(StoreError):
    """An insert or update could not be committed."""


class DuplicatePathError(StoreError):
    """A document with the same canonical path already exists."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Document already indexed: {path}")
        self.path = path


class DimensionMismatchError(StoreError):
    """An embedding does not have the database's recorded dimension."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Embedding has {actual} dimensions, database expects {expected}")
        self.expected = expected
        self.actual = actual


class ModelMismatchError(BrainbaseError):
    """The database was built with a different embedding model or dimension."""

    def __init__(
        self,
        stored_model: str,
        stored_dimension: int,
        requested_model: str,
        requested_dimension: int,
    ) -> None:
        super().__init__(
            f"Embedding model mismatch: database uses {stored_model} ({stored_dimension}d), "
            f"requested {requested_model} ({requested_dimension}d)"
        )
        self.stored_model = stored_model
        self.stored_dimension = stored_dimension
        self.requested_model = requested_model
        self.requested_dimension = requested_dimension


# ---------------------------------------------------------------------------
# Embedding
# ---------------------------------------------------------------------------


class EmbeddingBatchError(BrainbaseError):
    """The embedding collaborator failed for a whole batch."""


class EmbedderUnavailableError(BrainbaseError):
    """The embedding model cannot be loaded (not installed, unknown name, no network)."""
