"""FastAPI routes for the coach knowledge base.

Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern, so tests can build an app with
fakes on ``app.state`` and no network.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint                   Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/health             GET     Health check + provider availability
# /api/v1/rag/search         POST    Coach-scoped similarity search
# /api/v1/rag/documents      POST    Ingest a text document for coaches
#
# Application errors raised here are mapped to status codes by
# ErrorHandlingMiddleware (400 validation, 502 storage / provider).
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Request

from coach_rag import __version__
from coach_rag.api.schemas import (
    ErrorResponse,
    HealthResponse,
    IngestDocumentRequest,
    SearchRequest,
)
from coach_rag.config.coaches import expand_coach_selection
from coach_rag.models.rag import Attribution, IngestionOptions, IngestionResult, SearchResponse
from coach_rag.services.ingestion.document_reader import document_from_text
from coach_rag.services.ingestion.ingestion_service import DocumentIngestionPipeline
from coach_rag.services.search_service import SimilaritySearchService
from coach_rag.utils.errors import InvalidInputError
from coach_rag.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


def _get_search_service(request: Request) -> SimilaritySearchService:
    """Return the search service from application state."""
    return request.app.state.search_service


def _get_ingestion_pipeline(request: Request) -> DocumentIngestionPipeline:
    """Return the ingestion pipeline from application state."""
    return request.app.state.ingestion_pipeline


SearchServiceDep = Annotated[SimilaritySearchService, Depends(_get_search_service)]
IngestionPipelineDep = Annotated[DocumentIngestionPipeline, Depends(_get_ingestion_pipeline)]


# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability.

    ``degraded`` means the app runs but cannot reach its real store or
    embedding provider (e.g. missing credentials in development).
    """
    providers: dict[str, Any] = dict(getattr(request.app.state, "provider_registry", {}))
    critical = [providers.get("embedding", False), providers.get("document_store", False)]
    if all(critical):
        status = "healthy"
    elif any(critical):
        status = "degraded"
    else:
        status = "unhealthy"
    return HealthResponse(status=status, version=__version__, providers=providers)


# ---------------------------------------------------------------------------
# RAG endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/rag/search",
    response_model=SearchResponse,
    responses=_ERROR_RESPONSES,
    summary="Search a coach's knowledge base",
)
async def rag_search(body: SearchRequest, service: SearchServiceDep) -> SearchResponse:
    """Embed the query and return the coach's best-matching chunks.

    ``degraded: true`` in the response means the similarity function was
    unavailable and the results are an unranked listing.
    """
    return await service.search(
        body.query,
        coach_id=body.coach_id,
        limit=body.limit,
        threshold=body.threshold,
    )


@router.post(
    "/rag/documents",
    response_model=IngestionResult,
    responses=_ERROR_RESPONSES,
    summary="Ingest a text document for one or more coaches",
)
async def ingest_document(
    body: IngestDocumentRequest,
    pipeline: IngestionPipelineDep,
) -> IngestionResult:
    """Chunk, embed, store and grant a document; coach groups are expanded."""
    coaches = expand_coach_selection(body.coaches)
    if not coaches:
        raise InvalidInputError("At least one coach id or group is required")

    document = document_from_text(body.title, body.content, source_url=body.source_url)
    options = IngestionOptions(
        coaches=coaches,
        title=body.title,
        tier=body.tier,
        tags=body.tags,
        attribution=Attribution(
            supplied_by=body.supplied_by,
            supplier_type=body.supplier_type,
            supplier_email=body.supplier_email,
            license_type=body.license_type,
            copyright_holder=body.copyright_holder,
        ),
        source_url=body.source_url,
        skip_duplicates=not body.allow_duplicates,
    )
    result = await pipeline.ingest(document, options)
    _logger.info(
        "api_document_ingested",
        source_id=result.source_id,
        duplicate_of=result.duplicate_of,
        processed=result.processed_count,
        errors=result.error_count,
    )
    return result
