"""HTML extractor — markup stripped via beautifulsoup4 + html2text."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import html2text
from bs4 import BeautifulSoup

from brainbase.errors import ExtractionError
from brainbase.ingest.base import BaseExtractor

# html2text converter — shared instance, thread-safe for read operations
_h2t = html2text.HTML2Text()
_h2t.ignore_links = True
_h2t.ignore_images = True
_h2t.ignore_emphasis = True
_h2t.body_width = 0  # no line wrapping

_NON_CONTENT_TAGS = ["script", "style", "nav", "footer", "head", "noscript"]


def html_to_text(html: str) -> str:
    """Strip HTML markup and return plain text via html2text."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(_NON_CONTENT_TAGS):
        tag.decompose()
    return _h2t.handle(str(soup)).strip()


class HtmlExtractor(BaseExtractor):
    """Extract the visible text of a saved HTML page as a single unit."""

    format = "html"
    extensions = frozenset({".html", ".htm", ".xhtml"})

    def units(self, path: Path) -> Iterator[str]:
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise ExtractionError(f"Cannot read {path}: {exc}") from exc
        yield html_to_text(raw.decode("utf-8", errors="replace"))
