"""Coach-scoped similarity search over the knowledge base.

Embeds a query and retrieves the chunks granted to one coach, ranked by
cosine similarity.  When the store's similarity primitive fails or is
missing, the service falls back to an unscored listing of the coach's
active chunks.  Those results are returned with a placeholder score of
``0.0`` and ``degraded=True`` on the response and on every result, so a
caller can never mistake them for ranked matches.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from coach_rag.models.rag import SearchResponse, SearchResult
from coach_rag.utils.errors import (
    EmptyQueryError,
    InvalidInputError,
    ProviderUnavailableError,
    StorageError,
)

if TYPE_CHECKING:
    from coach_rag.interfaces.document_store import IDocumentStore
    from coach_rag.services.ingestion.embedding_client import EmbeddingClient

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_LIMIT = 5
DEFAULT_THRESHOLD = 0.7
_FALLBACK_SCORE = 0.0


class SimilaritySearchService:
    """Answers ``search(query, coach_id)`` with ranked or degraded results.

    Parameters
    ----------
    store:
        Provides the similarity primitive and the fallback listing.
    embedding_client:
        Embeds queries; must produce vectors of the store's dimension.
    default_limit:
        Result count used when :meth:`search` is called without *limit*.
    default_threshold:
        Minimum similarity used when :meth:`search` is called without
        *threshold*.
    """

    def __init__(
        self,
        store: IDocumentStore,
        embedding_client: EmbeddingClient,
        default_limit: int = DEFAULT_LIMIT,
        default_threshold: float = DEFAULT_THRESHOLD,
    ) -> None:
        self._store = store
        self._client = embedding_client
        self._default_limit = default_limit
        self._default_threshold = default_threshold

    async def search(
        self,
        query: str,
        coach_id: str,
        limit: int | None = None,
        threshold: float | None = None,
    ) -> SearchResponse:
        """Return up to *limit* chunks for *coach_id* scoring >= *threshold*.

        Raises
        ------
        EmptyQueryError
            If *query* is empty or whitespace-only.
        InvalidInputError
            If *coach_id* is blank, *limit* < 1 or *threshold* is outside [0, 1].
        DimensionMismatchError
            If the query embedding has the wrong length.
        StorageError
            If both the similarity search and the fallback listing fail.
        """
        limit = self._default_limit if limit is None else limit
        threshold = self._default_threshold if threshold is None else threshold

        if not query or not query.strip():
            raise EmptyQueryError()
        if not coach_id or not coach_id.strip():
            raise InvalidInputError("coach_id is required")
        if limit < 1:
            raise InvalidInputError(f"limit must be >= 1, got {limit}")
        if not 0.0 <= threshold <= 1.0:
            raise InvalidInputError(f"threshold must be within [0, 1], got {threshold}")

        vector = await self._client.embed(query)

        try:
            rows = await self._store.vector_similarity_search(vector, coach_id, limit, threshold)
        except (StorageError, ProviderUnavailableError) as exc:
            logger.warning(
                "similarity_search_degraded",
                coach_id=coach_id,
                store=self._store.get_provider_name(),
                error=str(exc),
            )
            return await self._fallback(query, coach_id, limit)

        # Stable sort: ties keep the store's insertion order.
        results = sorted(
            (r for r in rows if r.score >= threshold),
            key=lambda r: -r.score,
        )[:limit]
        logger.info(
            "similarity_search_complete",
            coach_id=coach_id,
            results=len(results),
            top_score=results[0].score if results else None,
        )
        return SearchResponse(query=query, coach_id=coach_id, results=results)

    async def _fallback(self, query: str, coach_id: str, limit: int) -> SearchResponse:
        try:
            rows = await self._store.list_active_chunks(coach_id, limit)
        except ProviderUnavailableError as exc:
            raise StorageError(
                message=f"Fallback listing failed: {exc.message}",
                provider_name=exc.provider_name,
            ) from exc

        results = [
            r.model_copy(update={"score": _FALLBACK_SCORE, "degraded": True})
            for r in rows[:limit]
        ]
        return SearchResponse(query=query, coach_id=coach_id, results=results, degraded=True)


def format_context(results: list[SearchResult], max_chars: int = 500) -> str:
    """Render search results as a context block for a coach prompt.

    Each result becomes a ``[Source n: title]`` header followed by its
    content, cut to *max_chars* characters.  An empty list renders as ``""``.
    """
    if not results:
        return ""

    parts = ["Based on the following knowledge:\n"]
    for index, result in enumerate(results, start=1):
        content = result.content
        if len(content) > max_chars:
            content = content[:max_chars] + "..."
        parts.append(f"[Source {index}: {result.title}]\n{content}\n")
    return "\n".join(parts)
