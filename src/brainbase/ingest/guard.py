"""Extraction guard — file-size and text-length ceilings around the extractors.

The guard never raises for per-file problems. It returns one of two explicit
results so callers (and tests) can act on them without parsing log output:

- ``Extracted(text, format, truncated_at)`` — ``truncated_at`` is set when the
  text ceiling was reached and the remainder of the document was dropped.
- ``Skipped(reason)`` — the file is not indexed this run.
"""

from __future__ import annotations

import logging
import re
import warnings
from dataclasses import dataclass
from pathlib import Path

from brainbase.errors import SkippableFileError, TruncationWarning
from brainbase.ingest.formats import select_extractor

_INLINE_WS = re.compile(r"[^\S\n]+")
_CONTROL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_PARAGRAPH_BREAK = re.compile(r"\n[^\S\n]*\n")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Extracted:
    text: str
    format: str
    truncated_at: int | None = None

    @property
    def truncated(self) -> bool:
        return self.truncated_at is not None


@dataclass(frozen=True)
class Skipped:
    reason: str


ExtractionResult = Extracted | Skipped


def clean_text(text: str) -> str:
    """Normalise extracted text.

    Control characters are removed, runs of spaces/tabs collapse to one space,
    blank lines are trimmed and paragraphs are separated by exactly one blank
    line. The result is never longer than the input.
    """
    text = _CONTROL.sub("", text.replace("\r\n", "\n").replace("\r", "\n"))
    paragraphs: list[str] = []
    for block in _PARAGRAPH_BREAK.split(text):
        lines = (_INLINE_WS.sub(" ", line).strip() for line in block.split("\n"))
        paragraph = "\n".join(line for line in lines if line)
        if paragraph:
            paragraphs.append(paragraph)
    return "\n\n".join(paragraphs)


class ExtractionGuard:
    """Bound memory and time spent on any single document.

    Args:
        max_file_size: Files larger than this many bytes are skipped unread.
        max_text_length: Extraction stops once this many characters have
            been accumulated; the text is cut to this length.
    """

    def __init__(self, max_file_size: int, max_text_length: int) -> None:
        if max_file_size < 1:
            raise ValueError("max_file_size must be >= 1")
        if max_text_length < 1:
            raise ValueError("max_text_length must be >= 1")
        self.max_file_size = max_file_size
        self.max_text_length = max_text_length

    def extract(self, path: Path) -> ExtractionResult:
        """Extract *path* within the configured ceilings."""
        try:
            size = path.stat().st_size
        except OSError as exc:
            return Skipped(f"cannot stat file: {exc}")
        if size > self.max_file_size:
            return Skipped(
                f"file too large: {size / (1024 * 1024):.1f} MB "
                f"(max {self.max_file_size / (1024 * 1024):.1f} MB)"
            )

        extractor = select_extractor(path)
        if extractor is None:
            return Skipped(f"unsupported format: {path.suffix or '(no extension)'}")

        stopped = False

        def _on_unit(length: int) -> bool:
            nonlocal stopped
            if length >= self.max_text_length:
                stopped = True
                return False
            return True

        try:
            text = clean_text(extractor.extract(path, on_unit=_on_unit))
        except SkippableFileError as exc:
            return Skipped(str(exc))
        except Exception as exc:
            logger.warning("Extractor for %s failed: %s", path, exc)
            return Skipped(f"extraction failed: {exc}")

        if not text:
            return Skipped("no text extracted")

        if stopped or len(text) > self.max_text_length:
            text = text[: self.max_text_length]
            warnings.warn(
                f"{path}: text limit of {self.max_text_length:,} characters reached, "
                "indexing a truncated document",
                TruncationWarning,
                stacklevel=2,
            )
            return Extracted(text, extractor.format, truncated_at=len(text))

        return Extracted(text, extractor.format)
