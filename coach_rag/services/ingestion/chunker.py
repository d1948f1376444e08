"""Sentence-aligned text chunking under a token budget.

Splits document text into chunks sized for the embedding provider.  The
provider accepts roughly 8000 tokens per request; ingestion uses a 6000-token
budget to leave headroom for titles and metadata.

The algorithm is a single greedy pass:

1. **Split into sentences** -- a sentence ends at ``.``, ``!`` or ``?``
   followed by whitespace or the end of the text.  Trailing text without
   terminal punctuation is its own sentence.
2. **Accumulate** -- sentences are added to the running chunk until the next
   one would push it over budget; the chunk is then closed and the sentence
   starts a new one.  A sentence that alone exceeds the budget still becomes
   a chunk of its own; sentences are never split.

A chunk's token count is the sum of its sentences' estimates, so the single
spaces used to join sentences do not count against the budget.

Token counts are an explicit approximation (:func:`estimate_tokens`), not a
tokenizer.
"""

from __future__ import annotations

import math
import re

import structlog

from coach_rag.utils.errors import InvalidInputError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_MAX_TOKENS = 6000

# Terminal punctuation (possibly repeated, e.g. "?!") followed by whitespace or end.
_SENTENCE_END = re.compile(r"[.!?]+(?=\s|$)")


def estimate_tokens(text: str) -> int:
    """Approximate the token count of *text* as ``ceil(len(text) / 4)``."""
    return math.ceil(len(text) / 4)


class TextChunker:
    """Splits text into sentence-aligned chunks that fit a token budget.

    Parameters
    ----------
    max_tokens:
        Default budget per chunk when :meth:`chunk` is called without one.
    """

    def __init__(self, max_tokens: int = DEFAULT_MAX_TOKENS) -> None:
        if max_tokens <= 0:
            raise InvalidInputError(f"max_tokens must be positive, got {max_tokens}")
        self._max_tokens = max_tokens

    @property
    def max_tokens(self) -> int:
        return self._max_tokens

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str, max_tokens: int | None = None) -> list[str]:
        """Split *text* into chunks of at most *max_tokens* estimated tokens.

        Parameters
        ----------
        text:
            The full document text.
        max_tokens:
            Budget override; defaults to the instance budget.

        Returns
        -------
        list[str]
            Chunks in document order.  Every sentence of *text* appears in
            exactly one chunk, and sentences inside a chunk are joined by a
            single space.

        Raises
        ------
        InvalidInputError
            If *text* is empty or whitespace-only, or *max_tokens* <= 0.
        """
        if not text or not text.strip():
            raise InvalidInputError("Cannot chunk empty text")
        budget = self._max_tokens if max_tokens is None else max_tokens
        if budget <= 0:
            raise InvalidInputError(f"max_tokens must be positive, got {budget}")

        chunks: list[str] = []
        current: list[str] = []
        current_tokens = 0

        for sentence in self.split_sentences(text):
            sentence_tokens = estimate_tokens(sentence)
            if current and current_tokens + sentence_tokens > budget:
                chunks.append(" ".join(current))
                current = []
                current_tokens = 0
            current.append(sentence)
            current_tokens += sentence_tokens

        if current:
            chunks.append(" ".join(current))

        logger.debug(
            "chunking_complete",
            num_chunks=len(chunks),
            max_tokens=budget,
            total_tokens=estimate_tokens(text),
        )
        return chunks

    @staticmethod
    def split_sentences(text: str) -> list[str]:
        """Split *text* at terminal punctuation, keeping the punctuation.

        Whitespace between sentences is dropped; whitespace inside a sentence
        is kept as-is.
        """
        sentences: list[str] = []
        last = 0
        for match in _SENTENCE_END.finditer(text):
            sentence = text[last : match.end()].strip()
            if sentence:
                sentences.append(sentence)
            last = match.end()

        tail = text[last:].strip()
        if tail:
            sentences.append(tail)
        return sentences
