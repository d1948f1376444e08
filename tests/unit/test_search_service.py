"""Unit tests for SimilaritySearchService and format_context."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from coach_rag.interfaces.document_store import IDocumentStore
from coach_rag.models.rag import AccessTier, DocumentChunk, SearchResult
from coach_rag.providers.document_store.memory_store import InMemoryDocumentStore
from coach_rag.services.ingestion.embedding_client import EmbeddingClient
from coach_rag.services.search_service import SimilaritySearchService, format_context
from coach_rag.utils.errors import (
    DimensionMismatchError,
    EmptyQueryError,
    InvalidInputError,
    ProviderUnavailableError,
    StorageError,
)
from tests.conftest import TEST_DIMENSION, FakeEmbeddingProvider


def _mock_store(**overrides) -> MagicMock:
    store = MagicMock(spec=IDocumentStore)
    store.get_provider_name.return_value = "mock-store"
    store.vector_similarity_search = AsyncMock(return_value=[])
    store.list_active_chunks = AsyncMock(return_value=[])
    for name, value in overrides.items():
        setattr(store, name, value)
    return store


def _result(chunk_id: str, score: float, title: str = "Doc") -> SearchResult:
    return SearchResult(chunk_id=chunk_id, title=title, content=f"text {chunk_id}", score=score)


def _unit(index: int) -> list[float]:
    vector = [0.0] * TEST_DIMENSION
    vector[index] = 1.0
    return vector


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   "])
    async def test_empty_query(self, embedding_client: EmbeddingClient, query: str) -> None:
        service = SimilaritySearchService(_mock_store(), embedding_client)

        with pytest.raises(EmptyQueryError):
            await service.search(query, "keto")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("limit", "threshold"),
        [(0, 0.7), (-1, 0.7), (5, -0.1), (5, 1.1)],
    )
    async def test_bad_limit_or_threshold(
        self, embedding_client: EmbeddingClient, limit: int, threshold: float
    ) -> None:
        service = SimilaritySearchService(_mock_store(), embedding_client)

        with pytest.raises(InvalidInputError):
            await service.search("fat", "keto", limit=limit, threshold=threshold)

    @pytest.mark.asyncio
    async def test_blank_coach(self, embedding_client: EmbeddingClient) -> None:
        service = SimilaritySearchService(_mock_store(), embedding_client)

        with pytest.raises(InvalidInputError):
            await service.search("fat", " ")

    @pytest.mark.asyncio
    async def test_dimension_mismatch_propagates(self, rate_limiter) -> None:
        client = EmbeddingClient(
            FakeEmbeddingProvider(returned_dimension=3),
            dimension=TEST_DIMENSION,
            rate_limiter=rate_limiter,
        )
        service = SimilaritySearchService(_mock_store(), client)

        with pytest.raises(DimensionMismatchError):
            await service.search("fat", "keto")


# ---------------------------------------------------------------------------
# Primary path
# ---------------------------------------------------------------------------


class TestPrimarySearch:
    @pytest.mark.asyncio
    async def test_defaults_passed_to_store(self, embedding_client: EmbeddingClient) -> None:
        store = _mock_store()
        service = SimilaritySearchService(store, embedding_client)

        await service.search("fat", "keto")

        _, coach_id, limit, threshold = store.vector_similarity_search.await_args.args
        assert (coach_id, limit, threshold) == ("keto", 5, 0.7)

    @pytest.mark.asyncio
    async def test_sorted_filtered_truncated(self, embedding_client: EmbeddingClient) -> None:
        rows = [
            _result("c", 0.80),
            _result("a", 0.95),
            _result("low", 0.40),
            _result("b", 0.80),
            _result("d", 0.75),
        ]
        store = _mock_store(vector_similarity_search=AsyncMock(return_value=rows))
        service = SimilaritySearchService(store, embedding_client)

        response = await service.search("fat", "keto", limit=3, threshold=0.7)

        assert [r.chunk_id for r in response.results] == ["a", "c", "b"]
        assert response.degraded is False
        assert not any(r.degraded for r in response.results)

    @pytest.mark.asyncio
    async def test_ties_keep_insertion_order(self, rate_limiter) -> None:
        provider = FakeEmbeddingProvider(vectors={"organ meats": _unit(0)})
        client = EmbeddingClient(provider, dimension=TEST_DIMENSION, rate_limiter=rate_limiter)
        store = InMemoryDocumentStore()
        source = await store.insert_source({"title": "Doc", "source_type": "md"})
        ids = await store.insert_chunks(
            [
                DocumentChunk(
                    source_id=source.id,
                    title=f"P{i}",
                    content=f"Same text {i}.",
                    chunk_index=i,
                    total_chunks=20,
                    embedding=_unit(0),
                )
                for i in range(20)
            ]
        )
        for chunk_id in ids:
            await store.grant_coach_access(chunk_id, ["keto"], AccessTier.FREE)

        response = await SimilaritySearchService(store, client).search(
            "organ meats", "keto", limit=20
        )

        assert [r.title for r in response.results] == [f"P{i}" for i in range(20)]

    @pytest.mark.asyncio
    async def test_coach_without_documents(self, embedding_client: EmbeddingClient) -> None:
        service = SimilaritySearchService(InMemoryDocumentStore(), embedding_client)

        response = await service.search("anything at all", "carnivore", threshold=0.7)

        assert response.results == []
        assert response.degraded is False

    @pytest.mark.asyncio
    async def test_ranks_against_memory_store(self, rate_limiter) -> None:
        provider = FakeEmbeddingProvider(vectors={"organ meats": _unit(0)})
        client = EmbeddingClient(provider, dimension=TEST_DIMENSION, rate_limiter=rate_limiter)
        store = InMemoryDocumentStore()
        source = await store.insert_source({"title": "Doc", "source_type": "md"})
        liver, steak = await store.insert_chunks(
            [
                DocumentChunk(
                    source_id=source.id,
                    title="Doc - Part 1/2",
                    content="Liver is rich in vitamin A.",
                    chunk_index=0,
                    total_chunks=2,
                    embedding=_unit(0),
                ),
                DocumentChunk(
                    source_id=source.id,
                    title="Doc - Part 2/2",
                    content="Steak is tasty.",
                    chunk_index=1,
                    total_chunks=2,
                    embedding=_unit(1),
                ),
            ]
        )
        for chunk_id in (liver, steak):
            await store.grant_coach_access(chunk_id, ["carnivore"], AccessTier.FREE)

        response = await SimilaritySearchService(store, client).search("organ meats", "carnivore")

        assert [r.chunk_id for r in response.results] == [liver]
        assert response.results[0].score == pytest.approx(1.0)


# ---------------------------------------------------------------------------
# Degraded fallback
# ---------------------------------------------------------------------------


class TestFallback:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            StorageError("rpc failed", provider_name="supabase"),
            ProviderUnavailableError("function missing", provider_name="supabase"),
        ],
    )
    async def test_every_result_marked_degraded(
        self, embedding_client: EmbeddingClient, error: Exception
    ) -> None:
        store = _mock_store(
            vector_similarity_search=AsyncMock(side_effect=error),
            list_active_chunks=AsyncMock(return_value=[_result("x", 0.0), _result("y", 0.0)]),
        )
        service = SimilaritySearchService(store, embedding_client)

        response = await service.search("fat", "keto", limit=2)

        assert response.degraded is True
        assert [r.chunk_id for r in response.results] == ["x", "y"]
        assert all(r.degraded and r.score == 0.0 for r in response.results)
        store.list_active_chunks.assert_awaited_once_with("keto", 2)

    @pytest.mark.asyncio
    async def test_fallback_failure_raises_storage_error(
        self, embedding_client: EmbeddingClient
    ) -> None:
        store = _mock_store(
            vector_similarity_search=AsyncMock(side_effect=ProviderUnavailableError("down")),
            list_active_chunks=AsyncMock(side_effect=ProviderUnavailableError("still down")),
        )
        service = SimilaritySearchService(store, embedding_client)

        with pytest.raises(StorageError):
            await service.search("fat", "keto")

    @pytest.mark.asyncio
    async def test_degraded_empty_listing(self, embedding_client: EmbeddingClient) -> None:
        store = _mock_store(vector_similarity_search=AsyncMock(side_effect=StorageError("x")))

        response = await SimilaritySearchService(store, embedding_client).search("fat", "keto")

        assert response.degraded is True
        assert len(response) == 0


# ---------------------------------------------------------------------------
# format_context
# ---------------------------------------------------------------------------


class TestFormatContext:
    def test_empty(self) -> None:
        assert format_context([]) == ""

    def test_headers_and_truncation(self) -> None:
        long = SearchResult(chunk_id="1", title="Fat Guide", content="x" * 600, score=0.9)
        short = SearchResult(chunk_id="2", title="Salt", content="Salt your food.", score=0.8)

        context = format_context([long, short])

        assert context.startswith("Based on the following knowledge:")
        assert "[Source 1: Fat Guide]\n" + "x" * 500 + "...\n" in context
        assert "[Source 2: Salt]\nSalt your food.\n" in context
        assert "x" * 501 not in context
