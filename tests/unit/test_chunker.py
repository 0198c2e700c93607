"""Unit tests for the TextChunker - sentence-aligned overlapping text chunking."""

from __future__ import annotations

import pytest

from ingestflow.services.ingestion.chunker import (
    TextChunker,
    tokens_to_words,
    word_count,
)
from tests.conftest import sentences

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_chunker(chunk_size: int = 500, overlap: int = 50) -> TextChunker:
    """Build a TextChunker with a predictable configuration."""
    return TextChunker(chunk_size=chunk_size, overlap=overlap)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestBudgets:
    def test_default_word_budgets(self) -> None:
        chunker = _make_chunker()
        assert chunker.word_budget == 667
        assert chunker.overlap_budget == 67

    def test_tokens_to_words_never_zero(self) -> None:
        assert tokens_to_words(0) == 1
        assert tokens_to_words(75) == 100

    @pytest.mark.parametrize(("size", "overlap"), [(0, 0), (-5, 0), (100, 100), (100, -1)])
    def test_invalid_configuration_rejected(self, size: int, overlap: int) -> None:
        with pytest.raises(ValueError):
            TextChunker(chunk_size=size, overlap=overlap)


class TestEmptyInput:
    @pytest.mark.parametrize("text", ["", "   ", "\n\n\t  \n"])
    def test_blank_text_produces_no_chunks(self, text: str) -> None:
        assert _make_chunker().chunk(text) == []


class TestTwelveHundredWords:
    """120 ten-word sentences at 500 tokens / 50 overlap split into two chunks."""

    def setup_method(self) -> None:
        self.text = sentences(120)
        self.chunks = _make_chunker().chunk(self.text)

    def test_two_chunks(self) -> None:
        assert len(self.chunks) == 2
        assert [c.segment_index for c in self.chunks] == [0, 1]

    def test_first_chunk_holds_sixty_six_sentences(self) -> None:
        first = self.chunks[0]
        assert first.char_start == 0
        assert first.content.startswith("w0x0")
        assert first.content.endswith("end65.")
        assert first.word_count == 660

    def test_second_chunk_carries_seven_sentence_overlap(self) -> None:
        second = self.chunks[1]
        assert second.content.startswith("w59x0")
        assert second.content.endswith("end119.")
        assert second.char_start == self.text.index("w59x0")
        assert second.word_count == 610

    def test_overlap_is_shared_text(self) -> None:
        first, second = self.chunks
        assert second.char_start < first.char_end
        overlap = self.text[second.char_start : first.char_end]
        assert first.content.endswith(overlap)
        assert second.content.startswith(overlap)

    def test_offsets_are_exact(self) -> None:
        for chunk in self.chunks:
            assert self.text[chunk.char_start : chunk.char_end] == chunk.content

    def test_word_count_includes_overlap(self) -> None:
        assert word_count(self.chunks) == 1270


class TestSentenceBoundaries:
    def test_chunks_end_on_sentence_terminators(self) -> None:
        text = sentences(300, words_per_sentence=13)
        chunks = _make_chunker(chunk_size=200, overlap=30).chunk(text)

        assert len(chunks) > 3
        for chunk in chunks:
            assert chunk.content[-1] in ".!?"
            assert chunk.content.split()[0].startswith("w")

    def test_oversized_sentence_is_never_split(self) -> None:
        text = " ".join(f"word{i}" for i in range(1000))
        chunks = _make_chunker().chunk(text)

        assert len(chunks) == 1
        assert chunks[0].content == text

    def test_short_text_is_single_chunk(self) -> None:
        text = "  Mitochondria produce energy. Ribosomes build proteins!  "
        chunks = _make_chunker().chunk(text)

        assert len(chunks) == 1
        assert chunks[0].content == "Mitochondria produce energy. Ribosomes build proteins!"
        assert chunks[0].char_start == 2

    def test_trailing_text_without_terminator_is_kept(self) -> None:
        text = "First sentence here. And a dangling remainder"
        chunks = _make_chunker().chunk(text)
        assert chunks[0].content.endswith("dangling remainder")

    def test_zero_overlap_produces_disjoint_chunks(self) -> None:
        text = sentences(200)
        chunks = _make_chunker(chunk_size=150, overlap=0).chunk(text)

        for previous, current in zip(chunks, chunks[1:]):
            assert current.char_start >= previous.char_end

    def test_offsets_exact_with_irregular_whitespace(self) -> None:
        text = "\n\n".join(
            f"Paragraph {i} opens here.\tIt continues   with detail? Yes!" for i in range(200)
        )
        chunks = _make_chunker(chunk_size=100, overlap=20).chunk(text)

        assert len(chunks) > 1
        for index, chunk in enumerate(chunks):
            assert chunk.segment_index == index
            assert text[chunk.char_start : chunk.char_end] == chunk.content


_COVERAGE_TEXTS = [
    sentences(120),
    "no terminal punctuation at all " * 40,
    "Line one.\n\nLine two!\n\n\tIndented three?  Four.\n",
    "Ünïcödé wörds here. Façade café naïve résumé. Done.",
    "  Leading and trailing space.   ",
    sentences(3, words_per_sentence=60),
]


class TestCoverage:
    @pytest.mark.parametrize("text", _COVERAGE_TEXTS)
    @pytest.mark.parametrize(("size", "overlap"), [(500, 50), (40, 10), (12, 0), (5, 4)])
    def test_every_non_whitespace_character_is_covered(
        self, text: str, size: int, overlap: int
    ) -> None:
        chunks = _make_chunker(size, overlap).chunk(text)

        covered: set[int] = set()
        for chunk in chunks:
            assert text[chunk.char_start : chunk.char_end] == chunk.content
            covered.update(range(chunk.char_start, chunk.char_end))

        missing = [i for i, ch in enumerate(text) if not ch.isspace() and i not in covered]
        assert missing == []
        assert [c.segment_index for c in chunks] == list(range(len(chunks)))
