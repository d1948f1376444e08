"""Unit tests for factory functions in coach_rag/main.py and the CLI.

Covers embedding provider selection, document store selection, the
``_build_all`` component wiring and the ``create_app`` factory, with the
Gemini SDK patched so no network calls or real keys are required.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi import FastAPI

from coach_rag.config.settings import Settings

_GENAI = "coach_rag.providers.embedding.gemini_embedding_provider.genai"


# ======================================================================
# Shared helpers
# ======================================================================


def _settings(**overrides) -> Settings:
    """Build a Settings instance with empty credentials and optional overrides."""
    defaults = {
        "supabase_url": "",
        "supabase_service_key": "",
        "embedding_provider": "gemini",
        "gemini_api_key": "",
        "openai_api_key": "",
        "embedding_model": "",
        "app_env": "test",
    }
    defaults.update(overrides)
    return Settings(**defaults)


# ======================================================================
# _build_embedding_provider
# ======================================================================


class TestBuildEmbeddingProvider:
    def test_gemini_default(self) -> None:
        from coach_rag.cli.ingest import _build_embedding_provider
        from coach_rag.providers.embedding.gemini_embedding_provider import (
            GeminiEmbeddingProvider,
        )

        with patch(_GENAI):
            provider = _build_embedding_provider(_settings(gemini_api_key="g"))

        assert isinstance(provider, GeminiEmbeddingProvider)
        assert provider.is_available() is True

    def test_openai_selected(self) -> None:
        from coach_rag.cli.ingest import _build_embedding_provider
        from coach_rag.providers.embedding.openai_embedding_provider import (
            OpenAIEmbeddingProvider,
        )

        provider = _build_embedding_provider(
            _settings(embedding_provider="openai", openai_api_key="sk-test")
        )

        assert isinstance(provider, OpenAIEmbeddingProvider)
        assert provider.get_dimension() == 768


# ======================================================================
# _build_all
# ======================================================================


class TestBuildAll:
    @pytest.mark.asyncio
    async def test_memory_store_without_supabase(self) -> None:
        from coach_rag.main import _build_all

        with patch(_GENAI):
            components = _build_all(_settings(gemini_api_key="g"))
        try:
            registry = components["provider_registry"]
            assert registry["document_store_provider"] == "memory"
            assert registry["document_store"] is False
            assert registry["embedding"] is True
        finally:
            await components["http_client"].aclose()

    @pytest.mark.asyncio
    async def test_supabase_store_when_configured(self) -> None:
        from coach_rag.main import _build_all
        from coach_rag.providers.document_store.supabase_store import SupabaseDocumentStore

        with patch(_GENAI):
            components = _build_all(
                _settings(
                    gemini_api_key="g",
                    supabase_url="https://proj.supabase.co",
                    supabase_service_key="key",
                )
            )
        try:
            assert isinstance(components["document_store"], SupabaseDocumentStore)
            assert components["provider_registry"]["document_store"] is True
        finally:
            await components["http_client"].aclose()

    @pytest.mark.asyncio
    async def test_query_and_document_clients_share_limiter(self) -> None:
        from coach_rag.main import _build_all

        with patch(_GENAI):
            components = _build_all(_settings(gemini_api_key="g"))
        try:
            search_client = components["search_service"]._client
            ingest_client = components["ingestion_pipeline"]._orchestrator._client
            assert search_client is not ingest_client
            assert search_client._rate_limiter is ingest_client._rate_limiter
        finally:
            await components["http_client"].aclose()


# ======================================================================
# create_app
# ======================================================================


class TestCreateApp:
    def test_routes_registered(self) -> None:
        from coach_rag.main import create_app

        app = create_app()

        assert isinstance(app, FastAPI)
        paths = {getattr(route, "path", None) for route in app.routes}
        paths |= set(app.openapi()["paths"])
        assert {"/api/v1/health", "/api/v1/rag/search", "/api/v1/rag/documents"} <= paths
