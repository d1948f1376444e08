"""Document ingestion pipeline for the coach knowledge base.

Orchestrates the full pipeline: **read -> chunk -> embed -> store -> grant**.

1. **Read** (document_reader.py) -- Files and raw text become SourceDocument
   objects carrying a sha256 content hash and, for transcripts, the YouTube
   video id used for duplicate detection.

2. **Chunk** (chunker.py / TextChunker) -- Sentence-aligned chunks under a
   6000-token budget.  Sentences are never split.

3. **Embed** (embedding_client.py / batch_embedder.py) -- A rate-limited
   EmbeddingClient checks every vector's dimension; the
   BatchEmbeddingOrchestrator embeds chunks in order and turns per-item
   failures into ``None`` slots.

4. **Store** (via IDocumentStore) -- Successful chunks are written in one
   batch to ``coach_documents``.

5. **Grant** (access_grantor.py / CoachAccessGrantor) -- Each stored chunk is
   granted to the target coaches at the requested access tier.

DocumentIngestionPipeline (ingestion_service.py) runs all five stages.
"""

from coach_rag.services.ingestion.access_grantor import CoachAccessGrantor
from coach_rag.services.ingestion.batch_embedder import BatchEmbeddingOrchestrator
from coach_rag.services.ingestion.chunker import TextChunker, estimate_tokens
from coach_rag.services.ingestion.document_reader import (
    document_from_text,
    extract_youtube_video_id,
    read_document,
)
from coach_rag.services.ingestion.embedding_client import EmbeddingClient
from coach_rag.services.ingestion.ingestion_service import DocumentIngestionPipeline

__all__ = [
    "BatchEmbeddingOrchestrator",
    "CoachAccessGrantor",
    "DocumentIngestionPipeline",
    "EmbeddingClient",
    "TextChunker",
    "document_from_text",
    "estimate_tokens",
    "extract_youtube_video_id",
    "read_document",
]
