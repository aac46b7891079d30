"""Shared pytest fixtures."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from brainbase.db.connection import Database
from brainbase.db.repository import Repository
from brainbase.errors import EmbeddingBatchError
from brainbase.ingest.embedder import Embedder


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    conn = Database(tmp_path / "brainbase.db").connect()
    yield conn
    conn.close()


@pytest.fixture
def repo(tmp_db):
    """Repository with a 3-dimensional test model recorded."""
    r = Repository(tmp_db)
    r.get_or_set_model_meta("test/fake-embedder", 3)
    return r


class FakeEmbedder(Embedder):
    """Deterministic in-memory embedder; records every batch it receives.

    ``fail_on_call`` (1-based) makes that call raise EmbeddingBatchError;
    ``dim`` and ``model`` may be changed by a test after construction.
    """

    def __init__(
        self,
        dimension: int = 3,
        model: str = "test/fake-embedder",
        fail_on_call: int | None = None,
    ) -> None:
        self.dim = dimension
        self.model = model
        self.fail_on_call = fail_on_call
        self.batches: list[list[str]] = []

    @property
    def model_name(self) -> str:
        return self.model

    @property
    def dimension(self) -> int:
        return self.dim

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        self.batches.append(list(texts))
        if self.fail_on_call is not None and len(self.batches) == self.fail_on_call:
            raise EmbeddingBatchError(f"simulated failure on call {self.fail_on_call}")
        return [
            [float(len(text) % 7 + 1)] + [0.5] * (self.dim - 1) for text in texts
        ]


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()
