"""Abstract base class for the document store collaborator.

The store owns three tables and two retrieval primitives:

* ``document_sources``      - one row per ingested document
* ``coach_documents``       - embedded chunks (cascade-deleted with the source)
* ``coach_document_access`` - (document, coach) grants with an access tier
* vector similarity search  - scored, coach-scoped, thresholded
* active chunk listing      - unscored fallback when similarity is unavailable

Every method is async so network-backed stores never block the event loop.
Failures surface as :class:`~coach_rag.utils.errors.StorageError` (or a
subclass); the similarity primitive may instead raise
:class:`~coach_rag.utils.errors.ProviderUnavailableError` when the backing
function does not exist or cannot be reached.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from coach_rag.models.rag import (
    AccessTier,
    CoachAccessGrant,
    DocumentChunk,
    DocumentSource,
    SearchResult,
)


# Concrete implementations (coach_rag/providers/document_store/):
#   SupabaseDocumentStore  - PostgREST over httpx, pgvector similarity RPC
#   InMemoryDocumentStore  - dict-backed, cosine similarity; tests and dry runs
class IDocumentStore(ABC):
    """Contract for the storage collaborator used by ingestion and search."""

    @abstractmethod
    async def insert_source(self, fields: dict[str, Any]) -> DocumentSource:
        """Create a ``document_sources`` row and return it with its new id.

        Raises
        ------
        coach_rag.utils.errors.SourceCreationError
            If the store rejects the insert.
        """

    @abstractmethod
    async def insert_chunks(self, chunks: list[DocumentChunk]) -> list[str]:
        """Insert all *chunks* in one all-or-nothing batch.

        Returns
        -------
        list[str]
            The new chunk ids, positionally aligned with *chunks*.

        Raises
        ------
        coach_rag.utils.errors.PersistenceError
            If the batch write fails; no chunk is stored in that case.
        """

    @abstractmethod
    async def update_source(self, source_id: str, fields: dict[str, Any]) -> None:
        """Update status / metadata fields on an existing source."""

    @abstractmethod
    async def grant_coach_access(
        self,
        document_id: str,
        coach_ids: list[str],
        tier: AccessTier,
    ) -> None:
        """Upsert one grant per coach for *document_id* at *tier*.

        Re-granting an existing (document, coach) pair replaces its tier
        instead of adding a second row.
        """

    @abstractmethod
    async def get_coach_access(self, document_id: str) -> list[CoachAccessGrant]:
        """Return every grant recorded for *document_id*."""

    @abstractmethod
    async def vector_similarity_search(
        self,
        query_vector: list[float],
        coach_id: str,
        limit: int,
        threshold: float,
    ) -> list[SearchResult]:
        """Return up to *limit* chunks granted to *coach_id* scoring >= *threshold*.

        Results are ordered by descending similarity.
        """

    @abstractmethod
    async def list_active_chunks(self, coach_id: str, limit: int) -> list[SearchResult]:
        """Return up to *limit* active chunks granted to *coach_id*, unscored."""

    @abstractmethod
    async def find_source(
        self,
        file_hash: str | None = None,
        video_id: str | None = None,
    ) -> DocumentSource | None:
        """Return an existing source matching the content hash or video id."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"supabase"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store is configured."""
