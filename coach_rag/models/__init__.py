"""coach-rag domain models - re-exports all public model classes.

Import from ``coach_rag.models`` rather than the individual module so callers
do not depend on how the models are split across files.
"""

from __future__ import annotations

from coach_rag.models.rag import (
    AccessTier,
    Attribution,
    CoachAccessGrant,
    DocumentChunk,
    DocumentSource,
    EmbeddingBatchResult,
    EmbeddingOutcome,
    EmbeddingProgress,
    GrantReport,
    IngestionOptions,
    IngestionResult,
    ProcessStatus,
    SearchResponse,
    SearchResult,
    SourceDocument,
)

__all__ = [
    "AccessTier",
    "Attribution",
    "CoachAccessGrant",
    "DocumentChunk",
    "DocumentSource",
    "EmbeddingBatchResult",
    "EmbeddingOutcome",
    "EmbeddingProgress",
    "GrantReport",
    "IngestionOptions",
    "IngestionResult",
    "ProcessStatus",
    "SearchResponse",
    "SearchResult",
    "SourceDocument",
]
