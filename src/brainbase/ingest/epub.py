"""EPUB extractor — chapter units via zipfile + bs4 + html2text.

License note: html2text is GPL-3.0. ebooklib (AGPL-3.0) is NOT used.
"""

from __future__ import annotations

import logging
import warnings
import zipfile
from collections.abc import Iterator
from pathlib import Path

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from brainbase.errors import ExtractionError
from brainbase.ingest.base import ARCHIVE_READ_ERRORS, BaseExtractor
from brainbase.ingest.html_doc import html_to_text

# OPF/container XML is parsed with html.parser; lxml is not a dependency.
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

logger = logging.getLogger(__name__)


class EpubExtractor(BaseExtractor):
    """Extract an EPUB one spine chapter at a time.

    Strategy:
    - Read ``META-INF/container.xml`` to locate the OPF package file.
    - Walk the OPF ``<spine>`` for chapter order (all HTML manifest items if
      there is no spine).
    - Convert each chapter to plain text with beautifulsoup4 + html2text.
    """

    format = "epub"
    extensions = frozenset({".epub"})

    def units(self, path: Path) -> Iterator[str]:
        try:
            zf = zipfile.ZipFile(path, "r")
        except (zipfile.BadZipFile, OSError) as exc:
            raise ExtractionError(f"Cannot open EPUB {path}: {exc}") from exc

        with zf:
            names = set(zf.namelist())
            try:
                opf_path = _find_opf_path(zf, names)
                hrefs = _parse_opf_spine(zf, opf_path)
            except (*ARCHIVE_READ_ERRORS, ValueError) as exc:
                raise ExtractionError(f"Malformed EPUB {path}: {exc}") from exc

            opf_dir = str(Path(opf_path).parent)
            for href in hrefs:
                full_path = f"{opf_dir}/{href}".lstrip("/") if opf_dir != "." else href
                if full_path not in names:
                    full_path = href
                if full_path not in names:
                    logger.warning("Chapter %s missing from %s", href, path)
                    continue
                try:
                    html = zf.read(full_path).decode("utf-8", errors="replace")
                except ARCHIVE_READ_ERRORS as exc:
                    logger.warning("Skipping chapter %s of %s: %s", href, path, exc)
                    continue
                yield html_to_text(html)


def _find_opf_path(zf: zipfile.ZipFile, names: set[str]) -> str:
    """Find the OPF package file path from META-INF/container.xml."""
    if "META-INF/container.xml" in names:
        xml = zf.read("META-INF/container.xml").decode("utf-8", errors="replace")
        soup = BeautifulSoup(xml, "html.parser")
        rootfile = soup.find("rootfile")
        if rootfile and rootfile.get("full-path"):
            return rootfile["full-path"]
    for name in sorted(names):
        if name.endswith(".opf"):
            return name
    raise ValueError("no OPF package file in archive")


def _parse_opf_spine(zf: zipfile.ZipFile, opf_path: str) -> list[str]:
    """Return chapter hrefs in reading order."""
    opf_xml = zf.read(opf_path).decode("utf-8", errors="replace")
    soup = BeautifulSoup(opf_xml, "html.parser")

    manifest: dict[str, str] = {}
    for item in soup.find_all("item"):
        href = item.get("href", "")
        media_type = item.get("media-type", "")
        if "html" in media_type or href.endswith((".html", ".xhtml", ".htm")):
            manifest[item.get("id", "")] = href

    hrefs = [
        manifest[itemref.get("idref", "")]
        for itemref in soup.find_all("itemref")
        if itemref.get("idref", "") in manifest
    ]
    return hrefs or list(manifest.values())
