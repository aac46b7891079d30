"""Domain models for the brainbase database layer."""

from __future__ import annotations

from dataclasses import dataclass

TEXT_EXTRACTED = "text_extracted"
PARTIALLY_EMBEDDED = "partially_embedded"
FULLY_EMBEDDED = "fully_embedded"


@dataclass
class Document:
    id: str
    filename: str
    path: str
    format: str
    size_bytes: int = 0
    created_at: str | None = None


@dataclass
class Fragment:
    id: str
    document_id: str
    order: int
    content: str
    embedding: list[float] | None = None
    created_at: str | None = None

    @property
    def is_marked_empty(self) -> bool:
        """True for blank fragments that carry the zero-length marker."""
        return self.embedding == []


@dataclass
class MetaInfo:
    schema_version: int
    embedding_model: str
    embedding_dimension: int


@dataclass
class DocumentProgress:
    """Per-document embedding progress, derived from fragment rows on every read."""

    document: Document
    fragments: int
    missing: int

    @property
    def state(self) -> str:
        if self.missing == 0:
            return FULLY_EMBEDDED
        if self.missing < self.fragments:
            return PARTIALLY_EMBEDDED
        return TEXT_EXTRACTED
