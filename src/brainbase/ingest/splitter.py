"""Sentence-based fragment splitter with whole-sentence overlap.

Strategy:
- Break the text into sentences at ``.``, ``!`` or ``?`` when the next
  character is whitespace, an uppercase letter, or the end of the line. This
  leaves decimals ("3.14") intact; abbreviations followed by a space are split.
- Drop sentence candidates shorter than ``min_sentence_length`` (page numbers,
  stray headers and similar extraction noise).
- Greedily pack whole sentences into fragments of at most ``chunk_size``
  characters. Each new fragment starts with the trailing sentences of the
  previous one, enough to cover ``overlap`` characters (all of it when the
  previous fragment is shorter).

``chunk_size`` is a soft bound: a sentence longer than it is emitted whole
rather than cut.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

_TERMINAL = re.compile(r"[.!?]")


class FragmentSplitter:
    """Split document text into ordered, overlapping fragments.

    Args:
        chunk_size: Target fragment length in characters.
        overlap: Minimum characters of trailing context repeated at the start
            of the next fragment. Must be smaller than *chunk_size*.
        min_sentence_length: Sentences shorter than this are discarded.
    """

    def __init__(
        self, chunk_size: int = 800, overlap: int = 100, min_sentence_length: int = 6
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if not 0 <= overlap < chunk_size:
            raise ValueError("overlap must be in [0, chunk_size)")
        if min_sentence_length < 1:
            raise ValueError("min_sentence_length must be >= 1")
        self.chunk_size = chunk_size
        self.overlap = overlap
        self.min_sentence_length = min_sentence_length

    def split(self, text: str) -> list[str]:
        """Return all fragments of *text* in order."""
        return list(self.iter_fragments(text))

    def iter_fragments(self, text: str) -> Iterator[str]:
        """Yield fragments of *text* lazily. Calling it again restarts from scratch."""
        current: list[str] = []
        length = 0

        for sentence in self.split_sentences(text):
            added = len(sentence) + (1 if current else 0)
            if current and length + added > self.chunk_size:
                yield " ".join(current)
                current = self._overlap_tail(current)
                length = _joined_length(current)
                added = len(sentence) + (1 if current else 0)
            current.append(sentence)
            length += added

        if current:
            yield " ".join(current)

    def split_sentences(self, text: str) -> list[str]:
        """Split *text* into sentences, discarding fragments below the noise threshold."""
        sentences: list[str] = []
        pending = ""

        for raw_line in text.splitlines():
            line = raw_line.strip()
            if not line:
                continue

            start = 0
            for match in _TERMINAL.finditer(line):
                end = match.end()
                if end < len(line) and not (line[end].isspace() or line[end].isupper()):
                    continue
                piece = line[start:end].strip()
                candidate = f"{pending} {piece}" if pending else piece
                pending = ""
                start = end
                if len(candidate) >= self.min_sentence_length:
                    sentences.append(candidate)

            rest = line[start:].strip()
            if rest:
                pending = f"{pending} {rest}" if pending else rest

        if len(pending) >= self.min_sentence_length:
            sentences.append(pending)
        return sentences

    def _overlap_tail(self, sentences: list[str]) -> list[str]:
        """Trailing sentences of an emitted fragment to seed the next one.

        Takes the fewest whole sentences covering ``overlap`` characters, or
        the whole fragment when it is shorter than that.
        """
        if self.overlap == 0:
            return []
        tail: list[str] = []
        covered = 0
        for sentence in reversed(sentences):
            tail.append(sentence)
            covered += len(sentence) + (1 if len(tail) > 1 else 0)
            if covered >= self.overlap:
                break
        tail.reverse()
        return tail


def _joined_length(sentences: list[str]) -> int:
    if not sentences:
        return 0
    return sum(len(s) for s in sentences) + len(sentences) - 1
