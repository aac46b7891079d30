"""Extractor dispatch by file extension, with a magic-byte sniff fallback.

  .pdf                                   → PdfExtractor
  .txt .text .md .markdown .rst .log .csv → PlainTextExtractor
  .html .htm .xhtml                      → HtmlExtractor
  .epub                                  → EpubExtractor
  .docx / .pptx / .xlsx                  → DocxExtractor / PptxExtractor / XlsxExtractor
  anything else starting with %PDF-      → PdfExtractor
"""

from __future__ import annotations

from pathlib import Path

from brainbase.ingest.base import BaseExtractor
from brainbase.ingest.epub import EpubExtractor
from brainbase.ingest.html_doc import HtmlExtractor
from brainbase.ingest.office import DocxExtractor, PptxExtractor, XlsxExtractor
from brainbase.ingest.pdf import PdfExtractor
from brainbase.ingest.plaintext import PlainTextExtractor

EXTRACTORS: tuple[BaseExtractor, ...] = (
    PdfExtractor(),
    PlainTextExtractor(),
    HtmlExtractor(),
    EpubExtractor(),
    DocxExtractor(),
    PptxExtractor(),
    XlsxExtractor(),
)

_BY_EXTENSION: dict[str, BaseExtractor] = {
    ext: extractor for extractor in EXTRACTORS for ext in extractor.extensions
}

SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(_BY_EXTENSION)

_PDF_MAGIC = b"%PDF-"


def select_extractor(path: Path) -> BaseExtractor | None:
    """Return the extractor for *path*, or None if the format is unsupported."""
    extractor = _BY_EXTENSION.get(path.suffix.lower())
    if extractor is not None:
        return extractor
    try:
        with path.open("rb") as fh:
            head = fh.read(len(_PDF_MAGIC))
    except OSError:
        return None
    if head == _PDF_MAGIC:
        return _BY_EXTENSION[".pdf"]
    return None
