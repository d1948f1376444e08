"""Pydantic request/response schemas for the coach-rag API.

Search and ingestion responses reuse the domain models
(:class:`~coach_rag.models.rag.SearchResponse`,
:class:`~coach_rag.models.rag.IngestionResult`) directly; only request
bodies and the health / error envelopes are defined here.

Request bodies leave ``query`` and ``content`` unconstrained; an empty value
reaches the service and is reported as a 400 with the service's own message.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from coach_rag.models.rag import AccessTier


class SearchRequest(BaseModel):
    """Body of ``POST /api/v1/rag/search``."""

    query: str
    coach_id: str
    limit: int | None = Field(default=None, description="Defaults to SEARCH_DEFAULT_LIMIT.")
    threshold: float | None = Field(
        default=None, description="Defaults to SEARCH_DEFAULT_THRESHOLD."
    )


class IngestDocumentRequest(BaseModel):
    """Body of ``POST /api/v1/rag/documents``."""

    title: str = Field(min_length=1)
    content: str
    coaches: list[str] | str = Field(
        description='Coach ids, a CSV string, or a group name such as "all-diet".'
    )
    tier: AccessTier = AccessTier.FREE
    tags: list[str] = Field(default_factory=list)
    source_url: str | None = None
    supplied_by: str = "Internal Team"
    supplier_type: str = "internal_team"
    supplier_email: str | None = None
    license_type: str = "proprietary"
    copyright_holder: str = "NoiseMeld"
    allow_duplicates: bool = False


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
