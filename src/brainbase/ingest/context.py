"""Run context threaded through both indexing phases.

Holds the run's settings and counters explicitly; nothing in the pipeline
keeps process-wide mutable state.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from brainbase.config import BrainbaseConfig

INDEXED = "indexed"
UNCHANGED = "unchanged"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class FileOutcome:
    """What phase 1 did with one candidate file."""

    path: str
    status: str
    fragments: int = 0
    reason: str = ""
    truncated_at: int | None = None


@dataclass
class RunContext:
    # settings
    chunk_size: int = 800
    overlap: int = 100
    min_sentence_length: int = 6
    max_file_size: int = 100 * 1024 * 1024
    max_text_length: int = 5_000_000
    batch_size: int = 50

    # phase 1 counters
    files_seen: int = 0
    documents_indexed: int = 0
    documents_unchanged: int = 0
    files_skipped: int = 0
    files_failed: int = 0
    documents_truncated: int = 0
    fragments_created: int = 0
    outcomes: list[FileOutcome] = field(default_factory=list)

    # phase 2 counters
    embedding_calls: int = 0
    fragments_embedded: int = 0
    fragments_empty: int = 0
    embedding_failures: int = 0

    @classmethod
    def from_config(cls, cfg: BrainbaseConfig) -> RunContext:
        return cls(
            chunk_size=cfg.chunking.chunk_size,
            overlap=cfg.chunking.overlap,
            min_sentence_length=cfg.chunking.min_sentence_length,
            max_file_size=cfg.limits.max_file_size,
            max_text_length=cfg.limits.max_text_length,
            batch_size=cfg.embedding.batch_size,
        )

    def record(self, outcome: FileOutcome) -> FileOutcome:
        """Append *outcome* and bump the matching counter."""
        self.outcomes.append(outcome)
        self.files_seen += 1
        if outcome.status == INDEXED:
            self.documents_indexed += 1
            self.fragments_created += outcome.fragments
            if outcome.truncated_at is not None:
                self.documents_truncated += 1
        elif outcome.status == UNCHANGED:
            self.documents_unchanged += 1
        elif outcome.status == SKIPPED:
            self.files_skipped += 1
        elif outcome.status == FAILED:
            self.files_failed += 1
        return outcome
