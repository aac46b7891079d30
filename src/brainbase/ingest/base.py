"""Base extractor interface for all supported document formats."""

from __future__ import annotations

import zipfile
import zlib
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from pathlib import Path

# Called after each unit with the running text length; return False to stop.
UnitCallback = Callable[[int], bool]

# Raised by ZipFile.read on a missing, corrupt, encrypted or unsupported member.
ARCHIVE_READ_ERRORS = (
    KeyError,
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
    NotImplementedError,
    RuntimeError,
    OSError,
)


class BaseExtractor(ABC):
    """Abstract base for format-specific text extractors.

    Subclasses implement ``units()``, yielding the text of one logical unit
    (page, slide, chapter, paragraph) at a time so the caller can stop early
    without materialising the rest of the document.

    Failure contract:
    - A document that cannot be opened or parsed at all raises
      ``ExtractionError``.
    - A single unit that fails is logged and skipped inside ``units()``.
    """

    format: str = ""
    extensions: frozenset[str] = frozenset()

    @abstractmethod
    def units(self, path: Path) -> Iterator[str]:
        """Yield the text of each logical unit of the document at *path*."""

    def extract(self, path: Path, on_unit: UnitCallback | None = None) -> str:
        """Concatenate non-blank units of *path*, one per line block.

        Args:
            path: Document to read.
            on_unit: Invoked after each unit with the accumulated text length.
                Returning False stops extraction after that unit.

        Returns:
            The accumulated text (possibly empty).
        """
        parts: list[str] = []
        length = 0
        for unit in self.units(path):
            text = unit.strip()
            if not text:
                continue
            length += len(text) + (2 if parts else 0)
            parts.append(text)
            if on_unit is not None and not on_unit(length):
                break
        return "\n\n".join(parts)
