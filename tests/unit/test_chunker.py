"""Unit tests for the TextChunker - sentence-aligned chunking under a token budget."""

from __future__ import annotations

import pytest

from coach_rag.services.ingestion.chunker import TextChunker, estimate_tokens
from coach_rag.utils.errors import InvalidInputError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _sentence(tokens: int, fill: str = "a") -> str:
    """Build a sentence whose estimate is exactly *tokens* (ends with '.')."""
    return fill * (tokens * 4 - 1) + "."


def _chunk_tokens(chunk: str) -> int:
    return sum(estimate_tokens(s) for s in TextChunker.split_sentences(chunk))


_SAMPLE = (
    "Red meat is nutrient dense! Organ meats add vitamin A. "
    "Do you need fibre? Most carnivore coaches say no.\n\n"
    "Electrolytes matter during adaptation. Salt   your food generously. "
    "Magnesium helps with cramps"
)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestEstimateTokens:
    def test_rounds_up(self) -> None:
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2


class TestSentenceSplitting:
    def test_split_keeps_punctuation_and_tail(self) -> None:
        sentences = TextChunker.split_sentences(_SAMPLE)

        assert sentences[0] == "Red meat is nutrient dense!"
        assert sentences[2] == "Do you need fibre?"
        assert sentences[-1] == "Magnesium helps with cramps"
        assert len(sentences) == 7

    def test_internal_whitespace_preserved(self) -> None:
        sentences = TextChunker.split_sentences(_SAMPLE)
        assert "Salt   your food generously." in sentences

    def test_period_without_space_does_not_split(self) -> None:
        assert TextChunker.split_sentences("Version 2.5 is out. Enjoy") == [
            "Version 2.5 is out.",
            "Enjoy",
        ]


class TestScenarios:
    def test_short_text_is_one_chunk(self) -> None:
        text = "Eat meat. Drink water. Sleep well today."
        assert len(text) < 60

        chunks = TextChunker().chunk(text, max_tokens=100)

        assert chunks == ["Eat meat. Drink water. Sleep well today."]

    def test_budget_boundary_fits_exactly(self) -> None:
        first, second, third = _sentence(3000), _sentence(3000, "b"), _sentence(500, "c")
        text = f"{first} {second} {third}"

        assert len(TextChunker().chunk(text, max_tokens=6500)) == 1

    def test_budget_boundary_splits(self) -> None:
        first, second, third = _sentence(3000), _sentence(3000, "b"), _sentence(500, "c")
        text = f"{first} {second} {third}"

        chunks = TextChunker().chunk(text, max_tokens=6000)

        assert chunks == [f"{first} {second}", third]


class TestCoverage:
    @pytest.mark.parametrize("max_tokens", [1, 5, 12, 40, 6000])
    def test_every_sentence_once_in_order(self, max_tokens: int) -> None:
        chunks = TextChunker().chunk(_SAMPLE, max_tokens=max_tokens)

        rejoined = [s for c in chunks for s in TextChunker.split_sentences(c)]
        assert rejoined == TextChunker.split_sentences(_SAMPLE)

    @pytest.mark.parametrize("max_tokens", [5, 12, 40])
    def test_chunks_respect_budget(self, max_tokens: int) -> None:
        chunks = TextChunker().chunk(_SAMPLE, max_tokens=max_tokens)

        for chunk in chunks:
            sentences = TextChunker.split_sentences(chunk)
            if len(sentences) > 1:
                assert _chunk_tokens(chunk) <= max_tokens

    def test_oversized_sentence_is_its_own_chunk(self) -> None:
        long_sentence = _sentence(50)
        text = f"Short one. {long_sentence} Short two."

        chunks = TextChunker().chunk(text, max_tokens=10)

        assert chunks == ["Short one.", long_sentence, "Short two."]

    def test_chunker_is_pure(self) -> None:
        chunker = TextChunker(max_tokens=12)
        assert chunker.chunk(_SAMPLE) == chunker.chunk(_SAMPLE)


class TestInvalidInput:
    @pytest.mark.parametrize("text", ["", "   \n\t "])
    def test_empty_text_rejected(self, text: str) -> None:
        with pytest.raises(InvalidInputError):
            TextChunker().chunk(text)

    @pytest.mark.parametrize("budget", [0, -5])
    def test_non_positive_budget_rejected(self, budget: int) -> None:
        with pytest.raises(InvalidInputError):
            TextChunker().chunk("Hello.", max_tokens=budget)

    def test_non_positive_default_rejected(self) -> None:
        with pytest.raises(InvalidInputError):
            TextChunker(max_tokens=0)

    def test_default_budget(self) -> None:
        assert TextChunker().max_tokens == 6000
