"""Plain text extractor — streamed, one paragraph per unit."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from brainbase.errors import ExtractionError
from brainbase.ingest.base import BaseExtractor


class PlainTextExtractor(BaseExtractor):
    """Read UTF-8 text (Markdown, reStructuredText, logs, CSV) paragraph by paragraph.

    Paragraphs are separated by blank lines. Undecodable bytes are replaced
    rather than aborting the document.
    """

    format = "text"
    extensions = frozenset({".txt", ".text", ".md", ".markdown", ".rst", ".log", ".csv"})

    def units(self, path: Path) -> Iterator[str]:
        try:
            fh = path.open(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ExtractionError(f"Cannot read {path}: {exc}") from exc

        with fh:
            block: list[str] = []
            for line in fh:
                if line.strip():
                    block.append(line.rstrip("\n"))
                elif block:
                    yield "\n".join(block)
                    block = []
            if block:
                yield "\n".join(block)
