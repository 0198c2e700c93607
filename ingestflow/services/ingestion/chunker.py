"""Sentence-aware text chunking with overlapping windows.

Splits extracted text into :class:`~ingestflow.models.segment.TextChunk`
objects sized for embedding models (~500 tokens each with a ~50-token
overlap).

The chunking strategy has two goals:

1. **Sentence-preserving** -- chunk boundaries always fall between sentences,
   so no chunk starts or ends mid-thought.  A sentence is a maximal run of
   non-terminator characters followed by ``.``, ``!`` or ``?`` and any
   trailing whitespace, or the trailing remainder of the text.

2. **Overlapping windows** -- consecutive chunks share the trailing sentences
   of the previous chunk so a concept spanning a boundary is captured whole
   in at least one chunk.

Token counts are approximated from word counts at a fixed 0.75 tokens/word
ratio: approximate counting is good enough for staying under provider input
limits and keeps the chunker free of tokenizer dependencies.

Every sentence keeps its span in the source text, so chunk offsets are exact:
``text[chunk.char_start:chunk.char_end] == chunk.content`` for every chunk,
including the ones that begin with carried-over overlap.
"""

from __future__ import annotations

import re
from typing import NamedTuple

import structlog

from ingestflow.models.segment import TextChunk

logger = structlog.get_logger(logger_name=__name__)

TOKENS_PER_WORD = 0.75

DEFAULT_CHUNK_SIZE_TOKENS = 500
DEFAULT_OVERLAP_TOKENS = 50

_SENTENCE_RE = re.compile(r"[^.!?]*[.!?]+\s*|[^.!?]+$")


class _Sentence(NamedTuple):
    start: int
    end: int
    words: int


def tokens_to_words(tokens: int) -> int:
    """Convert a token budget into an approximate word budget."""
    return max(1, round(tokens / TOKENS_PER_WORD))


def word_count(chunks: list[TextChunk]) -> int:
    """Return the total number of words across *chunks* (overlap counted twice)."""
    return sum(chunk.word_count for chunk in chunks)


class TextChunker:
    """Splits text into overlapping, sentence-aligned chunks.

    Parameters
    ----------
    chunk_size:
        Target maximum token count per chunk (default 500).
    overlap:
        Token budget of the window carried into the next chunk (default 50).
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE_TOKENS,
        overlap: int = DEFAULT_OVERLAP_TOKENS,
    ) -> None:
        if chunk_size <= 0:
            msg = f"chunk_size must be positive, got {chunk_size}"
            raise ValueError(msg)
        if overlap < 0 or overlap >= chunk_size:
            msg = f"overlap must be in [0, chunk_size), got {overlap}"
            raise ValueError(msg)
        self._chunk_size = chunk_size
        self._overlap = overlap
        self._word_budget = tokens_to_words(chunk_size)
        self._overlap_budget = round(overlap / TOKENS_PER_WORD)

    @property
    def word_budget(self) -> int:
        return self._word_budget

    @property
    def overlap_budget(self) -> int:
        return self._overlap_budget

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str) -> list[TextChunk]:
        """Split *text* into overlapping :class:`TextChunk` objects.

        Returns
        -------
        list[TextChunk]
            Chunks with contiguous ``segment_index`` values starting at 0.
            Empty or whitespace-only input returns an empty list.
        """
        if not text or not text.strip():
            return []

        sentences = self._split_sentences(text)
        windows = self._accumulate(sentences)

        chunks: list[TextChunk] = []
        for first, last in windows:
            chunk = self._make_chunk(text, sentences[first], sentences[last], len(chunks))
            if chunk is not None:
                chunks.append(chunk)

        logger.debug(
            "chunking_complete",
            num_chunks=len(chunks),
            num_sentences=len(sentences),
            word_budget=self._word_budget,
            overlap_budget=self._overlap_budget,
        )
        return chunks

    # ------------------------------------------------------------------
    # Sentence splitting
    # ------------------------------------------------------------------

    @staticmethod
    def _split_sentences(text: str) -> list[_Sentence]:
        """Split *text* into sentences, keeping each one's source span.

        The pattern matches every character of *text* exactly once, so the
        spans tile the whole string.
        """
        return [
            _Sentence(m.start(), m.end(), len(m.group().split()))
            for m in _SENTENCE_RE.finditer(text)
        ]

    # ------------------------------------------------------------------
    # Accumulation
    # ------------------------------------------------------------------

    def _accumulate(self, sentences: list[_Sentence]) -> list[tuple[int, int]]:
        """Group sentence indices into ``(first, last)`` inclusive windows."""
        windows: list[tuple[int, int]] = []
        start = 0
        words = 0
        # Index of the first sentence not carried over from the previous chunk.
        fresh = 0

        for idx, sentence in enumerate(sentences):
            if idx > fresh and words + sentence.words > self._word_budget:
                windows.append((start, idx - 1))
                start = self._overlap_start(sentences, start, idx, sentence.words)
                words = sum(s.words for s in sentences[start:idx])
                fresh = idx
            words += sentence.words

        if start < len(sentences):
            windows.append((start, len(sentences) - 1))
        return windows

    def _overlap_start(
        self,
        sentences: list[_Sentence],
        closed_start: int,
        closed_end: int,
        next_words: int,
    ) -> int:
        """Return the index the next chunk starts at, including its overlap.

        Walks backward from the end of the closed chunk, adding whole
        sentences until the overlap budget is met.  The closed chunk's first
        sentence is never carried, and the carried window plus the next
        sentence must still fit the chunk budget.
        """
        if self._overlap_budget == 0:
            return closed_end

        overlap_words = 0
        start = closed_end
        while start - 1 > closed_start and overlap_words < self._overlap_budget:
            candidate = sentences[start - 1].words
            if overlap_words + candidate + next_words > self._word_budget:
                break
            overlap_words += candidate
            start -= 1
        return start

    @staticmethod
    def _make_chunk(
        text: str,
        first: _Sentence,
        last: _Sentence,
        segment_index: int,
    ) -> TextChunk | None:
        raw = text[first.start : last.end]
        content = raw.strip()
        if not content:
            return None
        char_start = first.start + (len(raw) - len(raw.lstrip()))
        return TextChunk(
            content=content,
            segment_index=segment_index,
            char_start=char_start,
            char_end=char_start + len(content),
        )
