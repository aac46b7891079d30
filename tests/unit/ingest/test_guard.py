"""Tests for ExtractionGuard and text cleaning."""

from __future__ import annotations

import warnings
from unittest.mock import patch

import pytest

from brainbase.errors import TruncationWarning
from brainbase.ingest.base import BaseExtractor
from brainbase.ingest.guard import Extracted, ExtractionGuard, Skipped, clean_text

_MB = 1024 * 1024


@pytest.fixture
def guard():
    return ExtractionGuard(max_file_size=100 * _MB, max_text_length=5_000_000)


# ------------------------------------------------------------------
# clean_text
# ------------------------------------------------------------------


def test_clean_text_collapses_inline_whitespace():
    assert clean_text("a  \t b") == "a b"


def test_clean_text_removes_control_characters():
    assert clean_text("bell\x07 and null\x00 gone") == "bell and null gone"


def test_clean_text_normalises_paragraphs():
    assert clean_text("one\r\n\r\n\r\n  \ntwo\nthree  \n\n") == "one\n\ntwo\nthree"


def test_clean_text_never_grows():
    raw = "  x \n\n\n y\t\tz \x01 "
    assert len(clean_text(raw)) <= len(raw)


# ------------------------------------------------------------------
# Limits validation
# ------------------------------------------------------------------


@pytest.mark.parametrize("size,length", [(0, 10), (10, 0)])
def test_guard_rejects_non_positive_limits(size, length):
    with pytest.raises(ValueError):
        ExtractionGuard(max_file_size=size, max_text_length=length)


# ------------------------------------------------------------------
# Extraction outcomes
# ------------------------------------------------------------------


def test_extract_plain_text(guard, tmp_path):
    f = tmp_path / "doc.txt"
    f.write_text("Hello there.\n\nSecond paragraph.")
    result = guard.extract(f)
    assert isinstance(result, Extracted)
    assert result.text == "Hello there.\n\nSecond paragraph."
    assert result.format == "text"
    assert not result.truncated


def test_oversized_file_skipped_without_reading(guard, tmp_path):
    f = tmp_path / "huge.txt"
    with f.open("wb") as fh:
        fh.truncate(150 * _MB)
    with patch("brainbase.ingest.guard.select_extractor") as mock_select:
        result = guard.extract(f)
    assert isinstance(result, Skipped)
    assert "file too large" in result.reason
    assert "150.0 MB" in result.reason
    mock_select.assert_not_called()


def test_unsupported_format_skipped(guard, tmp_path):
    f = tmp_path / "photo.png"
    f.write_bytes(b"\x89PNG\r\n")
    result = guard.extract(f)
    assert isinstance(result, Skipped)
    assert result.reason == "unsupported format: .png"


def test_missing_file_skipped(guard, tmp_path):
    result = guard.extract(tmp_path / "gone.txt")
    assert isinstance(result, Skipped)
    assert "cannot stat" in result.reason


def test_zero_text_skipped(guard, tmp_path):
    f = tmp_path / "blank.txt"
    f.write_text("   \n\n\t\n")
    result = guard.extract(f)
    assert result == Skipped("no text extracted")


def test_extraction_error_becomes_skipped(guard, tmp_path):
    f = tmp_path / "broken.epub"
    f.write_text("not a zip archive")
    result = guard.extract(f)
    assert isinstance(result, Skipped)
    assert "Cannot open EPUB" in result.reason


def test_text_over_ceiling_truncated_with_warning(tmp_path):
    f = tmp_path / "long.txt"
    paragraphs = [f"Paragraph {i} " + "x" * 80 for i in range(50)]
    f.write_text("\n\n".join(paragraphs))
    guard = ExtractionGuard(max_file_size=_MB, max_text_length=500)

    with pytest.warns(TruncationWarning, match="text limit"):
        result = guard.extract(f)

    assert isinstance(result, Extracted)
    assert result.truncated
    assert result.truncated_at == 500
    assert len(result.text) == 500
    assert result.text.startswith("Paragraph 0 ")


def test_extraction_stops_early_at_ceiling(tmp_path):
    f = tmp_path / "long.txt"
    f.write_text("\n\n".join(f"Paragraph {i} is here." for i in range(1000)))
    guard = ExtractionGuard(max_file_size=_MB, max_text_length=100)

    with pytest.warns(TruncationWarning):
        result = guard.extract(f)

    assert "Paragraph 999" not in result.text
    assert len(result.text) <= 100


def test_text_below_ceiling_not_truncated(tmp_path):
    f = tmp_path / "short.txt"
    f.write_text("y" * 99)
    guard = ExtractionGuard(max_file_size=_MB, max_text_length=100)
    with warnings.catch_warnings():
        warnings.simplefilter("error", TruncationWarning)
        result = guard.extract(f)
    assert isinstance(result, Extracted)
    assert not result.truncated


class _CountingExtractor(BaseExtractor):
    format = "text"
    extensions = frozenset({".txt"})

    def __init__(self, units: list[str]) -> None:
        self._units = units
        self.read = 0

    def units(self, path):
        for unit in self._units:
            self.read += 1
            yield unit


def test_extraction_stops_when_ceiling_reached_exactly(tmp_path):
    f = tmp_path / "doc.txt"
    f.write_text("placeholder")
    extractor = _CountingExtractor(["z" * 100, "never read", "nor this"])
    guard = ExtractionGuard(max_file_size=_MB, max_text_length=100)

    with patch("brainbase.ingest.guard.select_extractor", return_value=extractor):
        with pytest.warns(TruncationWarning):
            result = guard.extract(f)

    assert extractor.read == 1
    assert result.text == "z" * 100
    assert result.truncated_at == 100


def test_unexpected_extractor_error_becomes_skipped(guard, tmp_path):
    f = tmp_path / "doc.txt"
    f.write_text("Some text.")
    extractor = _CountingExtractor([])
    with patch.object(extractor, "extract", side_effect=NotImplementedError("compression 99")):
        with patch("brainbase.ingest.guard.select_extractor", return_value=extractor):
            result = guard.extract(f)
    assert result == Skipped("extraction failed: compression 99")
