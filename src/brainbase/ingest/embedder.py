"""Embedding providers: LiteLLM (hosted models) and sentence-transformers (local).

Model strings follow LiteLLM's ``provider/model`` convention. The ``local/``
prefix selects a sentence-transformers model running in-process, e.g.
``local/all-MiniLM-L6-v2``.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING

import litellm

from brainbase.errors import EmbedderUnavailableError, EmbeddingBatchError

if TYPE_CHECKING:
    from sentence_transformers import SentenceTransformer

LOCAL_PREFIX = "local/"

_PROVIDER_ENV = {
    "openai": "OPENAI_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "voyage": "VOYAGE_API_KEY",
    "azure": "AZURE_API_KEY",
}


class Embedder(ABC):
    """Opaque text → vector function, called once per batch."""

    @property
    @abstractmethod
    def model_name(self) -> str: ...

    @property
    @abstractmethod
    def dimension(self) -> int: ...

    @abstractmethod
    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Return one vector per text, in input order.

        Raises:
            EmbeddingBatchError: If the model fails for the batch.
        """

    def check_ready(self) -> None:
        """Raise RuntimeError if the provider cannot be used (missing key, etc.)."""


class LiteLLMEmbedder(Embedder):
    """Hosted embedding models through ``litellm.embedding()``.

    Args:
        model: LiteLLM model id, e.g. ``openai/text-embedding-3-small``.
        dimensions: Vector length the model produces.
    """

    def __init__(self, model: str, dimensions: int) -> None:
        self._model = model
        self._dimensions = dimensions

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def dimension(self) -> int:
        return self._dimensions

    @property
    def provider(self) -> str:
        return self._model.split("/")[0].lower() if "/" in self._model else ""

    def check_ready(self) -> None:
        """Raise RuntimeError if no API key is available for the embedding model."""
        required_env = _PROVIDER_ENV.get(self.provider)
        if required_env and not os.environ.get(required_env):
            raise RuntimeError(
                f"No API key found for provider '{self.provider}'. "
                f"Set the {required_env} environment variable."
            )

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            response = litellm.embedding(model=self._model, input=list(texts))
        except Exception as exc:
            raise EmbeddingBatchError(
                f"{self._model} failed on a batch of {len(texts)} texts: {exc}"
            ) from exc
        return [list(item["embedding"]) for item in response.data]


class SentenceTransformerEmbedder(Embedder):
    """In-process sentence-transformers model (``local/<name>``).

    The model is loaded lazily on first use; embeddings are L2-normalised for
    cosine similarity.
    """

    def __init__(self, model: str) -> None:
        self._model_id = model
        self._name = model.removeprefix(LOCAL_PREFIX)
        self._model: SentenceTransformer | None = None

    @property
    def model(self) -> SentenceTransformer:
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            self._model = SentenceTransformer(self._name)
        return self._model

    def check_ready(self) -> None:
        """Load the model now; raise EmbedderUnavailableError if that fails."""
        try:
            self.model.get_sentence_embedding_dimension()
        except (ImportError, OSError, ValueError) as exc:
            raise EmbedderUnavailableError(str(exc)) from exc

    @property
    def model_name(self) -> str:
        return self._model_id

    @property
    def dimension(self) -> int:
        return int(self.model.get_sentence_embedding_dimension())

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            embeddings = self.model.encode(
                list(texts),
                convert_to_numpy=True,
                normalize_embeddings=True,
            )
        except Exception as exc:
            raise EmbeddingBatchError(
                f"{self._model_id} failed on a batch of {len(texts)} texts: {exc}"
            ) from exc
        return [row.tolist() for row in embeddings]


def make_embedder(model: str, dimensions: int) -> Embedder:
    """Return the provider for *model*; *dimensions* applies to hosted models only."""
    if model.startswith(LOCAL_PREFIX):
        return SentenceTransformerEmbedder(model)
    return LiteLLMEmbedder(model, dimensions)
