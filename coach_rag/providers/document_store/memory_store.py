"""In-memory document store.

Dict-backed implementation of :class:`IDocumentStore` used by the test suite
and by the CLI's ``--dry-run`` mode.  Similarity is plain cosine similarity
over the stored vectors; grants are keyed by (document, coach) so
re-granting replaces the tier.  Nothing survives the process.
"""

from __future__ import annotations

import math
import uuid
from typing import Any

import structlog

from coach_rag.interfaces.document_store import IDocumentStore
from coach_rag.models.rag import (
    AccessTier,
    CoachAccessGrant,
    DocumentChunk,
    DocumentSource,
    ProcessStatus,
    SearchResult,
)
from coach_rag.utils.errors import PersistenceError, SourceCreationError, StorageError

logger = structlog.get_logger(logger_name=__name__)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Return the cosine similarity of two equal-length vectors (0.0 if either is zero)."""
    if len(a) != len(b):
        raise ValueError(f"vector length mismatch: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


class InMemoryDocumentStore(IDocumentStore):
    """Process-local store with the same semantics as the Supabase tables."""

    def __init__(self) -> None:
        self._sources: dict[str, DocumentSource] = {}
        # Insertion order doubles as the similarity tiebreak.
        self._chunks: dict[str, DocumentChunk] = {}
        self._inactive: set[str] = set()
        self._grants: dict[tuple[str, str], CoachAccessGrant] = {}

    # ------------------------------------------------------------------
    # Inspection helpers (not part of IDocumentStore)
    # ------------------------------------------------------------------

    @property
    def sources(self) -> dict[str, DocumentSource]:
        return dict(self._sources)

    @property
    def chunks(self) -> dict[str, DocumentChunk]:
        return dict(self._chunks)

    @property
    def grants(self) -> list[CoachAccessGrant]:
        return list(self._grants.values())

    def deactivate_chunk(self, chunk_id: str) -> None:
        """Hide a chunk from retrieval, like ``is_active = false`` in Postgres."""
        self._inactive.add(chunk_id)

    # ------------------------------------------------------------------
    # IDocumentStore implementation
    # ------------------------------------------------------------------

    async def insert_source(self, fields: dict[str, Any]) -> DocumentSource:
        try:
            source = DocumentSource(id=str(uuid.uuid4()), **fields)
        except ValueError as exc:
            raise SourceCreationError(
                message=f"Failed to create document source: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        self._sources[source.id] = source
        return source

    async def insert_chunks(self, chunks: list[DocumentChunk]) -> list[str]:
        missing = {c.source_id for c in chunks} - self._sources.keys()
        if missing:
            raise PersistenceError(
                message=f"Failed to insert documents: unknown source ids {sorted(missing)}",
                provider_name=self.get_provider_name(),
            )
        ids: list[str] = []
        staged: dict[str, DocumentChunk] = {}
        for chunk in chunks:
            chunk_id = str(uuid.uuid4())
            staged[chunk_id] = chunk.model_copy(update={"id": chunk_id})
            ids.append(chunk_id)
        self._chunks.update(staged)
        return ids

    async def update_source(self, source_id: str, fields: dict[str, Any]) -> None:
        current = self._sources.get(source_id)
        if current is None:
            raise StorageError(
                message=f"Source {source_id} not found",
                provider_name=self.get_provider_name(),
            )
        if "process_status" in fields:
            target = ProcessStatus(fields["process_status"])
            if not current.process_status.can_transition(target):
                raise StorageError(
                    message=(
                        f"Illegal status transition {current.process_status.value}"
                        f" -> {target.value}"
                    ),
                    provider_name=self.get_provider_name(),
                )
        self._sources[source_id] = DocumentSource.model_validate(
            {**current.model_dump(), **fields}
        )

    async def grant_coach_access(
        self,
        document_id: str,
        coach_ids: list[str],
        tier: AccessTier,
    ) -> None:
        if document_id not in self._chunks:
            raise StorageError(
                message=f"Document {document_id} not found",
                provider_name=self.get_provider_name(),
            )
        for coach_id in coach_ids:
            self._grants[(document_id, coach_id)] = CoachAccessGrant(
                document_id=document_id,
                coach_id=coach_id,
                access_tier=AccessTier(tier),
            )

    async def get_coach_access(self, document_id: str) -> list[CoachAccessGrant]:
        return [g for (doc_id, _), g in self._grants.items() if doc_id == document_id]

    async def vector_similarity_search(
        self,
        query_vector: list[float],
        coach_id: str,
        limit: int,
        threshold: float,
    ) -> list[SearchResult]:
        scored: list[tuple[float, int, str, DocumentChunk]] = []
        for position, chunk_id in enumerate(self._visible_chunk_ids(coach_id)):
            chunk = self._chunks[chunk_id]
            score = cosine_similarity(query_vector, chunk.embedding)
            if score >= threshold:
                scored.append((score, position, chunk_id, chunk))

        scored.sort(key=lambda item: (-item[0], item[1]))
        return [
            self._to_result(chunk_id, chunk, score=max(-1.0, min(1.0, score)))
            for score, _, chunk_id, chunk in scored[:limit]
        ]

    async def list_active_chunks(self, coach_id: str, limit: int) -> list[SearchResult]:
        return [
            self._to_result(chunk_id, self._chunks[chunk_id], score=0.0)
            for chunk_id in self._visible_chunk_ids(coach_id)[:limit]
        ]

    async def find_source(
        self,
        file_hash: str | None = None,
        video_id: str | None = None,
    ) -> DocumentSource | None:
        for source in self._sources.values():
            if file_hash and source.file_hash == file_hash:
                return source
            if video_id and source.metadata.get("video_id") == video_id:
                return source
        return None

    def get_provider_name(self) -> str:
        return "memory"

    def is_available(self) -> bool:
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _visible_chunk_ids(self, coach_id: str) -> list[str]:
        granted = {doc_id for (doc_id, c_id) in self._grants if c_id == coach_id}
        return [
            chunk_id
            for chunk_id in self._chunks
            if chunk_id in granted and chunk_id not in self._inactive
        ]

    @staticmethod
    def _to_result(chunk_id: str, chunk: DocumentChunk, score: float) -> SearchResult:
        return SearchResult(
            chunk_id=chunk_id,
            title=chunk.title,
            content=chunk.content,
            metadata=dict(chunk.metadata),
            score=score,
        )
