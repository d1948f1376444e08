"""Integration tests for FastAPI API endpoints using TestClient."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from coach_rag.api.middleware import ErrorHandlingMiddleware, RequestLoggingMiddleware
from coach_rag.api.routes import router as api_router
from coach_rag.models.rag import SearchResponse, SearchResult
from coach_rag.providers.document_store.memory_store import InMemoryDocumentStore
from coach_rag.services.ingestion.ingestion_service import DocumentIngestionPipeline
from coach_rag.services.search_service import SimilaritySearchService
from coach_rag.utils.errors import EmptyQueryError, StorageError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _create_test_app(
    search_service=None,  # noqa: ANN001
    ingestion_pipeline=None,  # noqa: ANN001
    provider_registry: dict | None = None,
) -> FastAPI:
    """Create a FastAPI app with services placed directly on ``app.state``."""
    app = FastAPI()
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(api_router)

    app.state.search_service = search_service or MagicMock(spec=SimilaritySearchService)
    app.state.ingestion_pipeline = ingestion_pipeline
    app.state.provider_registry = provider_registry or {}
    return app


def _mock_search(**kwargs) -> MagicMock:
    service = MagicMock(spec=SimilaritySearchService)
    service.search = AsyncMock(**kwargs)
    return service


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class TestHealth:
    @pytest.mark.parametrize(
        ("registry", "expected"),
        [
            ({"embedding": True, "document_store": True}, "healthy"),
            ({"embedding": True, "document_store": False}, "degraded"),
            ({}, "unhealthy"),
        ],
    )
    def test_status(self, registry: dict, expected: str) -> None:
        client = TestClient(_create_test_app(provider_registry=registry))

        response = client.get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == expected
        assert body["version"] == "0.1.0"


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class TestSearchEndpoint:
    def test_returns_results(self) -> None:
        service = _mock_search(
            return_value=SearchResponse(
                query="fat",
                coach_id="keto",
                results=[SearchResult(chunk_id="1", title="Fat", content="...", score=0.9)],
            )
        )
        client = TestClient(_create_test_app(search_service=service))

        response = client.post(
            "/api/v1/rag/search", json={"query": "fat", "coach_id": "keto", "limit": 3}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["degraded"] is False
        assert body["results"][0]["chunk_id"] == "1"
        service.search.assert_awaited_once_with("fat", coach_id="keto", limit=3, threshold=None)

    def test_invalid_input_is_400(self) -> None:
        service = _mock_search(side_effect=EmptyQueryError())
        client = TestClient(_create_test_app(search_service=service))

        response = client.post("/api/v1/rag/search", json={"query": " ", "coach_id": "keto"})

        assert response.status_code == 400
        assert response.json()["error"] == "EmptyQueryError"

    def test_storage_failure_is_502(self) -> None:
        service = _mock_search(side_effect=StorageError("fallback failed", provider_name="supabase"))
        client = TestClient(_create_test_app(search_service=service))

        response = client.post("/api/v1/rag/search", json={"query": "fat", "coach_id": "keto"})

        assert response.status_code == 502
        assert response.json()["detail"] == "fallback failed"

    def test_degraded_flag_passed_through(self) -> None:
        service = _mock_search(
            return_value=SearchResponse(
                query="fat",
                coach_id="keto",
                results=[SearchResult(chunk_id="1", score=0.0, degraded=True)],
                degraded=True,
            )
        )
        client = TestClient(_create_test_app(search_service=service))

        body = client.post(
            "/api/v1/rag/search", json={"query": "fat", "coach_id": "keto"}
        ).json()

        assert body["degraded"] is True
        assert body["results"][0]["degraded"] is True


# ---------------------------------------------------------------------------
# Document ingestion
# ---------------------------------------------------------------------------


class TestDocumentsEndpoint:
    def test_ingest_expands_groups(
        self,
        pipeline: DocumentIngestionPipeline,
        memory_store: InMemoryDocumentStore,
    ) -> None:
        client = TestClient(_create_test_app(ingestion_pipeline=pipeline))

        response = client.post(
            "/api/v1/rag/documents",
            json={
                "title": "Electrolytes",
                "content": "Salt your food. Drink water.",
                "coaches": "all-diet",
                "tier": "premium",
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["processed_count"] == 1
        assert len(body["coaches"]) == 7
        [source] = memory_store.sources.values()
        assert source.title == "Electrolytes"
        assert source.source_type == "text"

    def test_blank_coaches_is_400(self, pipeline: DocumentIngestionPipeline) -> None:
        client = TestClient(_create_test_app(ingestion_pipeline=pipeline))

        response = client.post(
            "/api/v1/rag/documents",
            json={"title": "X", "content": "Some text.", "coaches": " , "},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidInputError"

    def test_empty_content_is_400(self, pipeline: DocumentIngestionPipeline) -> None:
        client = TestClient(_create_test_app(ingestion_pipeline=pipeline))

        response = client.post(
            "/api/v1/rag/documents",
            json={"title": "X", "content": "   ", "coaches": "keto"},
        )

        assert response.status_code == 400

    def test_missing_title_is_422(self, pipeline: DocumentIngestionPipeline) -> None:
        client = TestClient(_create_test_app(ingestion_pipeline=pipeline))

        response = client.post(
            "/api/v1/rag/documents", json={"title": "", "content": "x.", "coaches": "keto"}
        )

        assert response.status_code == 422
