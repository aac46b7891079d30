"""Office Open XML extractors — DOCX, PPTX and XLSX via zipfile + bs4.

All three formats are ZIP archives of XML parts. The parts are parsed with
BeautifulSoup's ``html.parser``, which keeps namespaced tag names such as
``w:p`` intact (lowercased), so no lxml / python-docx dependency is needed.
"""

from __future__ import annotations

import logging
import re
import warnings
import zipfile
from collections.abc import Iterator
from pathlib import Path

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from brainbase.errors import ExtractionError
from brainbase.ingest.base import ARCHIVE_READ_ERRORS, BaseExtractor

warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

logger = logging.getLogger(__name__)

_SLIDE_RE = re.compile(r"^ppt/slides/slide(\d+)\.xml$")
_SHEET_RE = re.compile(r"^xl/worksheets/sheet(\d+)\.xml$")


def _open_archive(path: Path) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(path, "r")
    except (zipfile.BadZipFile, OSError) as exc:
        raise ExtractionError(f"Cannot open {path}: {exc}") from exc


def _read_xml(zf: zipfile.ZipFile, name: str) -> BeautifulSoup:
    return BeautifulSoup(zf.read(name).decode("utf-8", errors="replace"), "html.parser")


def _numbered_parts(names: list[str], pattern: re.Pattern[str]) -> list[str]:
    """Archive members matching *pattern*, ordered by their numeric suffix."""
    numbered = [(int(m.group(1)), name) for name in names if (m := pattern.match(name))]
    return [name for _, name in sorted(numbered)]


class DocxExtractor(BaseExtractor):
    """Word document: one unit per paragraph of ``word/document.xml``."""

    format = "docx"
    extensions = frozenset({".docx"})

    def units(self, path: Path) -> Iterator[str]:
        with _open_archive(path) as zf:
            try:
                soup = _read_xml(zf, "word/document.xml")
            except ARCHIVE_READ_ERRORS as exc:
                raise ExtractionError(f"Malformed DOCX {path}: {exc}") from exc

        for paragraph in soup.find_all("w:p"):
            yield "".join(t.get_text() for t in paragraph.find_all("w:t"))


class PptxExtractor(BaseExtractor):
    """PowerPoint deck: one unit per slide, paragraphs on separate lines."""

    format = "pptx"
    extensions = frozenset({".pptx"})

    def units(self, path: Path) -> Iterator[str]:
        with _open_archive(path) as zf:
            slides = _numbered_parts(zf.namelist(), _SLIDE_RE)
            if not slides:
                raise ExtractionError(f"No slides found in {path}")
            for name in slides:
                try:
                    soup = _read_xml(zf, name)
                except ARCHIVE_READ_ERRORS as exc:
                    logger.warning("Skipping %s of %s: %s", name, path, exc)
                    continue
                lines = [
                    "".join(t.get_text() for t in paragraph.find_all("a:t"))
                    for paragraph in soup.find_all("a:p")
                ]
                yield "\n".join(line for line in lines if line.strip())


class XlsxExtractor(BaseExtractor):
    """Excel workbook: one unit per worksheet, one line per row, cells tab-separated."""

    format = "xlsx"
    extensions = frozenset({".xlsx"})

    def units(self, path: Path) -> Iterator[str]:
        with _open_archive(path) as zf:
            names = zf.namelist()
            sheets = _numbered_parts(names, _SHEET_RE)
            if not sheets:
                raise ExtractionError(f"No worksheets found in {path}")
            try:
                shared = self._shared_strings(zf, names)
            except ARCHIVE_READ_ERRORS as exc:
                raise ExtractionError(f"Malformed XLSX {path}: {exc}") from exc

            for name in sheets:
                try:
                    soup = _read_xml(zf, name)
                except ARCHIVE_READ_ERRORS as exc:
                    logger.warning("Skipping %s of %s: %s", name, path, exc)
                    continue
                rows = []
                for row in soup.find_all("row"):
                    cells = [self._cell_text(cell, shared) for cell in row.find_all("c")]
                    cells = [c for c in cells if c]
                    if cells:
                        rows.append("\t".join(cells))
                yield "\n".join(rows)

    @staticmethod
    def _shared_strings(zf: zipfile.ZipFile, names: list[str]) -> list[str]:
        if "xl/sharedStrings.xml" not in names:
            return []
        soup = _read_xml(zf, "xl/sharedStrings.xml")
        return ["".join(t.get_text() for t in si.find_all("t")) for si in soup.find_all("si")]

    @staticmethod
    def _cell_text(cell, shared: list[str]) -> str:
        cell_type = cell.get("t", "").lower()
        if cell_type == "inlinestr":
            return "".join(t.get_text() for t in cell.find_all("t")).strip()
        value = cell.find("v")
        if value is None:
            return ""
        raw = value.get_text().strip()
        if cell_type == "s":
            try:
                return shared[int(raw)].strip()
            except (ValueError, IndexError):
                logger.debug("Dangling shared string reference %r", raw)
                return ""
        return raw
