"""PDF extractor — page-by-page text via pypdf."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pypdf
from pypdf.errors import PyPdfError

from brainbase.errors import ExtractionError
from brainbase.ingest.base import BaseExtractor

logger = logging.getLogger(__name__)


class PdfExtractor(BaseExtractor):
    """Extract a PDF one page at a time.

    Pages that yield no text (scanned images, etc.) are skipped silently;
    pages whose text extraction raises are logged and skipped.
    """

    format = "pdf"
    extensions = frozenset({".pdf"})

    def units(self, path: Path) -> Iterator[str]:
        try:
            reader = pypdf.PdfReader(str(path))
            page_count = len(reader.pages)
        except (PyPdfError, OSError, ValueError) as exc:
            raise ExtractionError(f"Cannot read PDF {path}: {exc}") from exc

        logger.debug("Reading %s (%d pages)", path, page_count)
        for number in range(page_count):
            try:
                text = reader.pages[number].extract_text() or ""
            except Exception as exc:
                logger.warning("Skipping page %d/%d of %s: %s", number + 1, page_count, path, exc)
                continue
            yield text
