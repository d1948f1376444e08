"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **dedupe -> chunk -> source row -> embed -> store -> grant -> finalize**.

:class:`DocumentIngestionPipeline` coordinates the chunker, the batch
embedding orchestrator, the document store and the access grantor without
any of them knowing about each other:

    0. Duplicate check -- an existing source with the same content hash
       (or YouTube video id) short-circuits the run.
    1. TextChunker -- sentence-aligned chunks under the ingestion budget.
    2. IDocumentStore.insert_source -- a ``document_sources`` row in
       ``processing`` state.  Rejection raises SourceCreationError.
    3. BatchEmbeddingOrchestrator -- one vector-or-None per chunk.
    4. IDocumentStore.insert_chunks -- one all-or-nothing batch of the
       successfully embedded chunks.  Failure raises PersistenceError after
       a best-effort attempt to mark the source ``failed``.
    5. CoachAccessGrantor -- grants per persisted chunk; failures are
       counted, never fatal.
    6. Finalize -- ``completed`` iff no embedding failed, else ``failed``
       with the joined reasons.  Retried a bounded number of times; if it
       still fails the result says ``status_finalized=False``.

Per-chunk embedding failures are data, not exceptions: the run continues and
reports them in :class:`IngestionResult`.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable

import structlog

from coach_rag.models.rag import (
    DocumentChunk,
    DocumentSource,
    IngestionOptions,
    IngestionResult,
    ProcessStatus,
    SourceDocument,
)
from coach_rag.services.ingestion.access_grantor import CoachAccessGrantor
from coach_rag.services.ingestion.chunker import DEFAULT_MAX_TOKENS, TextChunker
from coach_rag.utils.errors import PersistenceError, StorageError

if TYPE_CHECKING:
    from coach_rag.interfaces.document_store import IDocumentStore
    from coach_rag.services.ingestion.batch_embedder import (
        BatchEmbeddingOrchestrator,
        ProgressObserver,
    )

logger = structlog.get_logger(logger_name=__name__)


class DocumentIngestionPipeline:
    """Ingests one document at a time into the coach knowledge base.

    Parameters
    ----------
    store:
        Persistence for sources, chunks and grants.
    orchestrator:
        Batch embedder sharing one rate-limited client.
    chunker:
        Sentence-aligned splitter; a default one is built if omitted.
    grantor:
        Access grantor; defaults to one bound to *store*.
    max_tokens:
        Chunk budget used for ingestion.
    finalize_max_attempts:
        How many times the final status update is tried.
    finalize_retry_backoff:
        Base delay in seconds between finalize attempts (linear backoff).
    sleep:
        Coroutine used for the finalize backoff; injectable for tests.
    """

    def __init__(
        self,
        store: IDocumentStore,
        orchestrator: BatchEmbeddingOrchestrator,
        chunker: TextChunker | None = None,
        grantor: CoachAccessGrantor | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        finalize_max_attempts: int = 3,
        finalize_retry_backoff: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._orchestrator = orchestrator
        self._chunker = chunker or TextChunker(max_tokens=max_tokens)
        self._grantor = grantor or CoachAccessGrantor(store)
        self._max_tokens = max_tokens
        self._finalize_max_attempts = max(1, finalize_max_attempts)
        self._finalize_retry_backoff = finalize_retry_backoff
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(
        self,
        document: SourceDocument,
        options: IngestionOptions,
        on_progress: ProgressObserver | None = None,
    ) -> IngestionResult:
        """Run the full pipeline for *document*.

        Raises
        ------
        InvalidInputError
            If the document has no text to chunk.
        SourceCreationError
            If the store rejects the source row.
        PersistenceError
            If the chunk batch write fails.
        """
        start = time.monotonic()

        if options.skip_duplicates:
            existing = await self._find_duplicate(document)
            if existing is not None:
                logger.info(
                    "duplicate_document_skipped",
                    file_name=document.file_name,
                    existing_source_id=existing.id,
                    existing_title=existing.title,
                )
                return IngestionResult(
                    coaches=list(options.coaches),
                    duplicate_of=existing.id,
                    ingestion_time=time.monotonic() - start,
                )

        chunks = self._chunker.chunk(document.content, self._max_tokens)
        source = await self._store.insert_source(self._source_fields(document, options))

        with structlog.contextvars.bound_contextvars(source_id=source.id):
            logger.info(
                "ingestion_started",
                title=source.title,
                num_chunks=len(chunks),
                coaches=options.coaches,
                tier=options.tier.value,
            )

            batch = await self._orchestrator.embed_all(chunks, on_progress=on_progress)

            records: list[DocumentChunk] = []
            errors: list[str] = []
            for i, (text, vector) in enumerate(zip(chunks, batch.vectors)):
                if vector is None:
                    errors.append(f"Chunk {i + 1}: Failed to generate embedding")
                    continue
                records.append(
                    DocumentChunk(
                        source_id=source.id,
                        title=f"{source.title} - Part {i + 1}/{len(chunks)}",
                        content=text,
                        chunk_index=i,
                        total_chunks=len(chunks),
                        embedding=vector,
                        metadata={
                            "chunk_size": len(text),
                            "position": i,
                            "access_tier": options.tier.value,
                        },
                    )
                )

            chunk_ids = await self._persist(source.id, records)

            access_failures = 0
            for chunk_id in chunk_ids:
                report = await self._grantor.grant(chunk_id, options.coaches, options.tier)
                access_failures += len(report.failed)

            finalized = await self._finalize(source.id, errors)

            result = IngestionResult(
                source_id=source.id,
                processed_count=len(chunk_ids),
                error_count=len(errors),
                total_chunks=len(chunks),
                coaches=list(options.coaches),
                errors=errors,
                access_failures=access_failures,
                status_finalized=finalized,
                ingestion_time=time.monotonic() - start,
            )
            logger.info(
                "ingestion_complete",
                processed=result.processed_count,
                errors=result.error_count,
                access_failures=access_failures,
                status=result.final_status.value,
                status_finalized=finalized,
                elapsed_s=round(result.ingestion_time, 2),
            )
        return result

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _find_duplicate(self, document: SourceDocument) -> DocumentSource | None:
        existing = await self._store.find_source(file_hash=document.content_hash)
        if existing is None and document.metadata.get("video_id"):
            existing = await self._store.find_source(video_id=str(document.metadata["video_id"]))
        return existing

    @staticmethod
    def _source_fields(document: SourceDocument, options: IngestionOptions) -> dict[str, Any]:
        attribution = options.attribution
        source_type = "youtube" if document.metadata.get("video_id") else document.file_type
        return {
            "title": options.title or document.file_name,
            "source_type": source_type,
            "file_size_bytes": document.file_size,
            "process_status": ProcessStatus.PROCESSING,
            "file_hash": document.content_hash,
            "source_url": options.source_url,
            "metadata": {
                **document.metadata,
                "access_tier": options.tier.value,
                "tags": list(options.tags),
                "coaches": list(options.coaches),
            },
            "supplied_by": attribution.supplied_by,
            "supplier_type": attribution.supplier_type,
            "supplier_email": attribution.supplier_email,
            "license_type": attribution.license_type,
            "copyright_holder": attribution.copyright_holder,
        }

    async def _persist(self, source_id: str, records: list[DocumentChunk]) -> list[str]:
        if not records:
            return []
        try:
            return await self._store.insert_chunks(records)
        except PersistenceError as exc:
            logger.error("chunk_persistence_failed", chunks=len(records), error=str(exc))
            try:
                await self._store.update_source(
                    source_id,
                    {
                        "process_status": ProcessStatus.FAILED,
                        "last_processed": datetime.now(timezone.utc),
                        "error_message": exc.message,
                    },
                )
            except StorageError as mark_exc:
                logger.warning("source_mark_failed_failed", error=str(mark_exc))
            raise

    async def _finalize(self, source_id: str, errors: list[str]) -> bool:
        fields = {
            "process_status": ProcessStatus.FAILED if errors else ProcessStatus.COMPLETED,
            "last_processed": datetime.now(timezone.utc),
            "error_message": "; ".join(errors) if errors else None,
        }
        for attempt in range(1, self._finalize_max_attempts + 1):
            try:
                await self._store.update_source(source_id, fields)
                return True
            except StorageError as exc:
                logger.warning(
                    "source_finalize_failed",
                    attempt=attempt,
                    max_attempts=self._finalize_max_attempts,
                    error=str(exc),
                )
                if attempt < self._finalize_max_attempts:
                    await self._sleep(self._finalize_retry_backoff * attempt)
        logger.error("source_status_stale", status=fields["process_status"].value)
        return False
