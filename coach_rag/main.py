"""coach-rag FastAPI application entry point.

Wires providers, services and routes together.  Configuration comes from the
environment / ``.env`` via :class:`Settings`; logging is configured once at
import time.

Without Supabase credentials the app still starts (useful in development)
but uses the in-memory store and reports itself as ``degraded`` on
``/api/v1/health``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from coach_rag import __version__
from coach_rag.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from coach_rag.api.routes import router as api_router
from coach_rag.cli.ingest import _build_embedding_provider
from coach_rag.config.settings import Settings
from coach_rag.interfaces.document_store import IDocumentStore
from coach_rag.providers.document_store.memory_store import InMemoryDocumentStore
from coach_rag.providers.document_store.supabase_store import SupabaseDocumentStore
from coach_rag.services.ingestion.batch_embedder import BatchEmbeddingOrchestrator
from coach_rag.services.ingestion.embedding_client import EmbeddingClient
from coach_rag.services.ingestion.ingestion_service import DocumentIngestionPipeline
from coach_rag.services.search_service import SimilaritySearchService
from coach_rag.utils.logging import configure_logging, get_logger
from coach_rag.utils.rate_limiter import MinIntervalRateLimiter

settings = Settings()
configure_logging(settings.log_level)
_logger: structlog.BoundLogger = get_logger(__name__)


def _build_document_store(app_settings: Settings, http_client: httpx.AsyncClient) -> IDocumentStore:
    if app_settings.supabase_url and app_settings.supabase_service_key:
        return SupabaseDocumentStore(
            http_client=http_client,
            base_url=app_settings.supabase_url,
            service_key=app_settings.supabase_service_key,
            timeout=app_settings.supabase_timeout,
        )
    _logger.warning(
        "supabase_not_configured",
        message="SUPABASE_URL / SUPABASE_SERVICE_KEY unset; using the in-memory store",
    )
    return InMemoryDocumentStore()


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Instantiate every provider and service.

    Returns a flat dict of named components to be stored on ``app.state``.
    Document and query embeddings use separate clients (different Gemini task
    hints) sharing one rate limiter, since both draw on the same quota.
    """
    http_client = httpx.AsyncClient()
    store = _build_document_store(app_settings, http_client)

    limiter = MinIntervalRateLimiter(app_settings.embedding_requests_per_minute)
    document_provider = _build_embedding_provider(app_settings, task_type="retrieval_document")
    query_provider = _build_embedding_provider(app_settings, task_type="retrieval_query")

    document_client = EmbeddingClient(
        provider=document_provider,
        dimension=app_settings.embedding_dimension,
        rate_limiter=limiter,
    )
    query_client = EmbeddingClient(
        provider=query_provider,
        dimension=app_settings.embedding_dimension,
        rate_limiter=limiter,
    )

    ingestion_pipeline = DocumentIngestionPipeline(
        store=store,
        orchestrator=BatchEmbeddingOrchestrator(document_client),
        max_tokens=app_settings.chunk_max_tokens,
        finalize_max_attempts=app_settings.finalize_max_attempts,
        finalize_retry_backoff=app_settings.finalize_retry_backoff,
    )
    search_service = SimilaritySearchService(
        store=store,
        embedding_client=query_client,
        default_limit=app_settings.search_default_limit,
        default_threshold=app_settings.search_default_threshold,
    )

    provider_registry = {
        "embedding": document_provider.is_available(),
        "embedding_provider": document_provider.get_provider_name(),
        "document_store": store.is_available() and store.get_provider_name() != "memory",
        "document_store_provider": store.get_provider_name(),
    }

    return {
        "http_client": http_client,
        "document_store": store,
        "ingestion_pipeline": ingestion_pipeline,
        "search_service": search_service,
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise providers and services on startup, clean up on shutdown."""
    components = _build_all(settings)
    for key, value in components.items():
        setattr(application.state, key, value)

    _logger.info(
        "app_startup",
        version=__version__,
        environment=settings.app_env,
        providers=components["provider_registry"],
    )

    yield

    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="coach-rag API",
        version=__version__,
        description=(
            "Ingest documents into the diet-coach knowledge base and run "
            "coach-scoped similarity search over them."
        ),
        lifespan=_lifespan,
    )

    # Last added = first executed.
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    application.include_router(api_router)
    return application


app = create_app()


def run() -> None:
    """Console-script entry point: serve the API with uvicorn."""
    uvicorn.run(
        "coach_rag.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )


if __name__ == "__main__":
    run()
