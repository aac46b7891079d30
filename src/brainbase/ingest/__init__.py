"""brainbase ingest pipeline — extractors, guard, splitter, and both indexing phases."""

from brainbase.ingest.base import BaseExtractor
from brainbase.ingest.embedder import Embedder, LiteLLMEmbedder, SentenceTransformerEmbedder, make_embedder
from brainbase.ingest.embedding_writer import EmbeddingWriter
from brainbase.ingest.guard import Extracted, ExtractionGuard, Skipped
from brainbase.ingest.indexer import Indexer, discover_files
from brainbase.ingest.splitter import FragmentSplitter

__all__ = [
    "BaseExtractor",
    "Embedder",
    "EmbeddingWriter",
    "Extracted",
    "ExtractionGuard",
    "FragmentSplitter",
    "Indexer",
    "LiteLLMEmbedder",
    "SentenceTransformerEmbedder",
    "Skipped",
    "discover_files",
    "make_embedder",
]
