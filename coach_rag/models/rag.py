"""RAG data models for the coach knowledge base.

Defines Pydantic v2 models for document sources, chunks, coach access
grants, embedding batch results, ingestion results and search results.
Persistent models mirror the rows of the ``document_sources``,
``coach_documents`` and ``coach_document_access`` tables.  All models use
frozen config so a chunk or result cannot be mutated after it is built.

Overview of the flow these models describe:

    1. INGESTION: A SourceDocument (file or transcript) becomes a
       DocumentSource row with status ``processing``.
    2. CHUNKING: The content is split into sentence-aligned chunks.
    3. EMBEDDING: Each chunk becomes a fixed-length vector.  Failed items
       are recorded in an EmbeddingBatchResult, not raised.
    4. STORAGE: Successfully embedded chunks become DocumentChunk rows and
       are granted to coaches via CoachAccessGrant rows.
    5. RETRIEVAL: A query is embedded and matched against a coach's chunks,
       producing SearchResult objects inside a SearchResponse.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------
class ProcessStatus(str, Enum):
    """Processing status of a DocumentSource.

    Transitions only move forward: ``pending -> processing -> completed``
    or ``pending -> processing -> failed``.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    def can_transition(self, target: ProcessStatus) -> bool:
        """Return ``True`` if moving from this status to *target* is allowed."""
        return target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: dict[ProcessStatus, frozenset[ProcessStatus]] = {
    ProcessStatus.PENDING: frozenset({ProcessStatus.PROCESSING}),
    ProcessStatus.PROCESSING: frozenset({ProcessStatus.COMPLETED, ProcessStatus.FAILED}),
    ProcessStatus.COMPLETED: frozenset(),
    ProcessStatus.FAILED: frozenset(),
}


class AccessTier(str, Enum):
    """Entitlement level gating a chunk's visibility to end users."""

    FREE = "free"
    PREMIUM = "premium"
    PRO = "pro"


# ---------------------------------------------------------------------------
# Source documents
# ---------------------------------------------------------------------------
class Attribution(BaseModel):
    """Who supplied a document and under which license."""

    model_config = ConfigDict(frozen=True)

    supplied_by: str = Field(default="Internal Team")
    supplier_type: str = Field(
        default="internal_team",
        description="partner_doctor, internal_team, community, ...",
    )
    supplier_email: str | None = Field(default=None)
    license_type: str = Field(
        default="proprietary",
        description="proprietary, cc_by, public_domain, youtube_transcript, ...",
    )
    copyright_holder: str = Field(default="NoiseMeld")


class SourceDocument(BaseModel):
    """A raw document read from disk (or a transcript), before ingestion."""

    model_config = ConfigDict(frozen=True)

    file_name: str
    file_type: str = Field(description='File extension without the dot, or "youtube".')
    file_size: int = Field(default=0, ge=0)
    content: str
    content_hash: str = Field(description="sha256 hex digest of the content.")
    metadata: dict[str, Any] = Field(default_factory=dict)


class DocumentSource(BaseModel):
    """One ingested unit (a file, a video transcript, ...).

    Created with status ``processing`` when ingestion starts and updated once
    at the end.  ``error_message`` is set iff the status is ``failed``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    source_type: str
    file_size_bytes: int = Field(default=0, ge=0)
    process_status: ProcessStatus = ProcessStatus.PENDING
    last_processed: datetime | None = None
    error_message: str | None = None
    supplied_by: str = "Internal Team"
    supplier_type: str = "internal_team"
    supplier_email: str | None = None
    license_type: str = "proprietary"
    copyright_holder: str = "NoiseMeld"
    file_hash: str | None = None
    source_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator(
        "file_size_bytes",
        "supplied_by",
        "supplier_type",
        "license_type",
        "copyright_holder",
        "metadata",
        mode="before",
    )
    @classmethod
    def _null_column_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        # Rows written by older uploaders leave these columns NULL.
        if value is None:
            field = cls.model_fields[info.field_name]
            return field.get_default(call_default_factory=True)
        return value


# ---------------------------------------------------------------------------
# DocumentChunk - the unit that is embedded, stored and searched.
# ---------------------------------------------------------------------------
class DocumentChunk(BaseModel):
    """One embeddable slice of a DocumentSource's content.

    ``id`` is ``None`` until the store assigns one.  The embedding must be
    non-empty; dimension checks happen upstream in the EmbeddingClient so a
    wrong-sized vector never reaches this model.
    """

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    source_id: str
    title: str = Field(description='"{source title} - Part {i}/{n}", i is 1-based.')
    content: str
    chunk_index: int = Field(ge=0)
    total_chunks: int = Field(ge=1)
    embedding: list[float] = Field(min_length=1)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _index_within_total(self) -> DocumentChunk:
        if self.chunk_index >= self.total_chunks:
            raise ValueError(
                f"chunk_index {self.chunk_index} must be < total_chunks {self.total_chunks}"
            )
        return self


class CoachAccessGrant(BaseModel):
    """A (document, coach) pair with the tier at which the coach may serve it."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    coach_id: str
    access_tier: AccessTier = AccessTier.FREE


class GrantReport(BaseModel):
    """Outcome of granting one document to a set of coaches."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    granted: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(
        default_factory=dict, description="coach_id -> failure reason"
    )

    @property
    def ok(self) -> bool:
        return not self.failed


# ---------------------------------------------------------------------------
# Embedding batch results (transient, never persisted)
# ---------------------------------------------------------------------------
class EmbeddingProgress(BaseModel):
    """Advisory progress snapshot emitted after each embedded item."""

    model_config = ConfigDict(frozen=True)

    current: int = Field(ge=1, description="1-based count of items handled so far.")
    total: int = Field(ge=1)
    percentage: int = Field(ge=0, le=100)


class EmbeddingOutcome(BaseModel):
    """One slot of an EmbeddingBatchResult: a vector or a failure reason."""

    model_config = ConfigDict(frozen=True)

    text: str
    vector: list[float] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.vector is not None


class EmbeddingBatchResult(BaseModel):
    """Ordered embedding outcomes, positionally aligned with the input chunks."""

    model_config = ConfigDict(frozen=True)

    outcomes: list[EmbeddingOutcome] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.outcomes)

    @property
    def vectors(self) -> list[list[float] | None]:
        return [o.vector for o in self.outcomes]

    @property
    def failures(self) -> list[tuple[int, str]]:
        return [
            (i, o.error or "unknown error")
            for i, o in enumerate(self.outcomes)
            if o.vector is None
        ]

    @property
    def success_count(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)


# ---------------------------------------------------------------------------
# Ingestion inputs / outputs
# ---------------------------------------------------------------------------
class IngestionOptions(BaseModel):
    """Caller-provided settings for one ingestion.

    ``coaches`` must already be concrete coach ids; group names such as
    ``all-diet`` are expanded by :func:`coach_rag.config.expand_coach_selection`.
    """

    model_config = ConfigDict(frozen=True)

    coaches: list[str] = Field(min_length=1)
    title: str | None = None
    tier: AccessTier = AccessTier.FREE
    tags: list[str] = Field(default_factory=list)
    attribution: Attribution = Field(default_factory=Attribution)
    source_url: str | None = None
    skip_duplicates: bool = True


class IngestionResult(BaseModel):
    """Summary of a single document ingestion run."""

    model_config = ConfigDict(frozen=True)

    source_id: str | None = Field(default=None, description="None when skipped as duplicate.")
    processed_count: int = Field(default=0, ge=0, description="Chunks persisted.")
    error_count: int = Field(default=0, ge=0, description="Chunks whose embedding failed.")
    total_chunks: int = Field(default=0, ge=0)
    coaches: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    access_failures: int = Field(default=0, ge=0)
    status_finalized: bool = True
    duplicate_of: str | None = None
    ingestion_time: float = Field(default=0.0, ge=0.0)

    @property
    def final_status(self) -> ProcessStatus:
        return ProcessStatus.FAILED if self.error_count else ProcessStatus.COMPLETED


# ---------------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------------
class SearchResult(BaseModel):
    """One chunk returned by a coach-scoped search.

    ``degraded`` is ``True`` when the result came from the unscored fallback
    listing; its ``score`` is then a placeholder, not a similarity.
    """

    model_config = ConfigDict(frozen=True)

    chunk_id: str
    title: str = "Untitled"
    content: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    score: float = Field(default=0.0, ge=-1.0, le=1.0)
    degraded: bool = False


class SearchResponse(BaseModel):
    """The result list of one search plus the degraded-mode marker."""

    model_config = ConfigDict(frozen=True)

    query: str
    coach_id: str
    results: list[SearchResult] = Field(default_factory=list)
    degraded: bool = False

    def __len__(self) -> int:
        return len(self.results)
