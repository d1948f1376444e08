# =============================================================================
# coach_rag/cli/ingest.py - CLI Ingest Command (Coach Knowledge Base)
# =============================================================================
#
# Standalone CLI for adding one document to the coach knowledge base.  The
# document is chunked, embedded, stored in Supabase and granted to one or
# more coaches at an access tier.
#
# The ingestion pipeline for each document:
#   0. Skip the file if its content hash (or YouTube video id) is known
#   1. Chunk the text into sentence-aligned windows (6000-token budget)
#   2. Create the document_sources row (status "processing")
#   3. Generate embeddings (Gemini embedding-001 or OpenAI, 768 dims)
#   4. Store successfully embedded chunks in coach_documents
#   5. Grant each chunk to the selected coaches at the selected tier
#   6. Mark the source completed / failed
#
# Coach selection accepts ids and group names; "all-diet" expands through
# COACH_GROUPS in coach_rag/config/coaches.py before the pipeline runs.
#
# Exit codes:
#   0 - success (or duplicate skipped)
#   1 - missing file, missing credentials, or a fatal storage error
#   2 - bad usage (argparse)
#   3 - some chunks failed to embed
#
# Usage examples:
#   python -m coach_rag.cli.ingest guide.md --coaches carnivore,keto --tier premium
#   python -m coach_rag.cli.ingest transcript.txt --coaches all-diet \
#       --source-url "https://youtu.be/abc123" --license youtube_transcript
#   python -m coach_rag.cli.ingest notes.txt --coaches paleo --dry-run
# =============================================================================

"""Standalone CLI for ingesting documents into the coach knowledge base.

Usage::

    python -m coach_rag.cli.ingest guide.md --coaches carnivore,keto --tier premium

    python -m coach_rag.cli.ingest notes.txt --coaches all-diet --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from coach_rag.config.coaches import COACH_GROUPS, expand_coach_selection
from coach_rag.config.settings import Settings
from coach_rag.utils.errors import ConfigurationError, InvalidInputError, StorageError
from coach_rag.utils.logging import configure_logging

_EXIT_OK = 0
_EXIT_ERROR = 1
_EXIT_PARTIAL = 3


# ---------------------------------------------------------------------------
# Provider factories (shared with coach_rag.cli.search and coach_rag.main)
# ---------------------------------------------------------------------------


def _require_credentials(app_settings: Settings, dry_run: bool = False) -> None:
    """Raise :class:`ConfigurationError` listing any missing env vars.

    A dry run never talks to Supabase, so only the embedding key is needed.
    """
    missing = app_settings.missing_credentials()
    if dry_run:
        missing = [name for name in missing if not name.startswith("SUPABASE_")]
    if missing:
        raise ConfigurationError(
            "Missing required environment variables: " + ", ".join(missing)
        )


def _build_embedding_provider(app_settings: Settings, task_type: str = "retrieval_document"):  # noqa: ANN202
    """Build the configured embedding provider.

    Imports are deferred so the unused SDK is never loaded.
    """
    if app_settings.embedding_provider == "openai":
        from coach_rag.providers.embedding.openai_embedding_provider import (
            OpenAIEmbeddingProvider,
        )

        return OpenAIEmbeddingProvider(
            api_key=app_settings.openai_api_key,
            model=app_settings.embedding_model,
            dimension=app_settings.embedding_dimension,
        )

    from coach_rag.providers.embedding.gemini_embedding_provider import (
        GeminiEmbeddingProvider,
    )

    return GeminiEmbeddingProvider(
        api_key=app_settings.gemini_api_key,
        model=app_settings.embedding_model,
        task_type=task_type,
    )


def _build_embedding_client(app_settings: Settings, task_type: str = "retrieval_document"):  # noqa: ANN202
    from coach_rag.services.ingestion.embedding_client import EmbeddingClient

    return EmbeddingClient(
        provider=_build_embedding_provider(app_settings, task_type=task_type),
        dimension=app_settings.embedding_dimension,
        requests_per_minute=app_settings.embedding_requests_per_minute,
    )


@asynccontextmanager
async def _open_document_store(app_settings: Settings, dry_run: bool = False) -> AsyncIterator:
    """Yield a document store, closing its HTTP client on exit.

    ``dry_run`` swaps in the in-memory store so nothing is written.
    """
    if dry_run:
        from coach_rag.providers.document_store.memory_store import InMemoryDocumentStore

        yield InMemoryDocumentStore()
        return

    import httpx

    from coach_rag.providers.document_store.supabase_store import SupabaseDocumentStore

    async with httpx.AsyncClient() as http_client:
        yield SupabaseDocumentStore(
            http_client=http_client,
            base_url=app_settings.supabase_url,
            service_key=app_settings.supabase_service_key,
            timeout=app_settings.supabase_timeout,
        )


def _build_pipeline(app_settings: Settings, store):  # noqa: ANN001, ANN202
    """Wire the ingestion pipeline around *store*."""
    from coach_rag.services.ingestion.batch_embedder import BatchEmbeddingOrchestrator
    from coach_rag.services.ingestion.ingestion_service import DocumentIngestionPipeline

    return DocumentIngestionPipeline(
        store=store,
        orchestrator=BatchEmbeddingOrchestrator(_build_embedding_client(app_settings)),
        max_tokens=app_settings.chunk_max_tokens,
        finalize_max_attempts=app_settings.finalize_max_attempts,
        finalize_retry_backoff=app_settings.finalize_retry_backoff,
    )


# ---------------------------------------------------------------------------
# Command handler
# ---------------------------------------------------------------------------


def _print_progress(progress) -> None:  # noqa: ANN001
    sys.stdout.write(
        f"\r   Progress: {progress.current}/{progress.total} ({progress.percentage}%)"
    )
    sys.stdout.flush()


async def _handle_ingest(
    args: argparse.Namespace,
    coaches: list[str],
    app_settings: Settings,
) -> int:
    """Read, ingest and summarise one file."""
    from coach_rag.models.rag import AccessTier, Attribution, IngestionOptions
    from coach_rag.services.ingestion.document_reader import read_document

    document = read_document(args.file, source_url=args.source_url)
    options = IngestionOptions(
        coaches=coaches,
        title=args.title,
        tier=AccessTier(args.tier),
        tags=[t.strip() for t in (args.tags or "").split(",") if t.strip()],
        attribution=Attribution(
            supplied_by=args.supplied_by,
            supplier_type=args.supplier_type,
            supplier_email=args.supplier_email,
            license_type=args.license,
            copyright_holder=args.copyright,
        ),
        source_url=args.source_url,
        skip_duplicates=not args.allow_duplicates,
    )

    print(f"Ingesting: {options.title or document.file_name}")
    print(f"  File:    {args.file} ({document.file_size} bytes)")
    print(f"  Coaches: {', '.join(coaches)}")
    print(f"  Tier:    {options.tier.value}")
    if args.dry_run:
        print("  Mode:    dry run (nothing is written to Supabase)")
    print()

    async with _open_document_store(app_settings, dry_run=args.dry_run) as store:
        pipeline = _build_pipeline(app_settings, store)
        try:
            result = await pipeline.ingest(document, options, on_progress=_print_progress)
        except (InvalidInputError, StorageError) as exc:
            print(f"\nError: {exc}", file=sys.stderr)
            return _EXIT_ERROR

    if result.duplicate_of:
        print(f"Skipped: this file has already been uploaded (source {result.duplicate_of}).")
        print("Use --allow-duplicates to ingest it again.")
        return _EXIT_OK

    print("\n\nIngestion complete:")
    print(f"  Source ID:       {result.source_id}")
    print(f"  Chunks stored:   {result.processed_count}/{result.total_chunks}")
    print(f"  Errors:          {result.error_count}")
    print(f"  Status:          {result.final_status.value}")
    print(f"  Time:            {result.ingestion_time:.2f}s")
    if result.access_failures:
        print(f"  Access grants failed: {result.access_failures}")
    if not result.status_finalized:
        print("  Warning: the source status could not be updated.", file=sys.stderr)
    for reason in result.errors:
        print(f"    - {reason}")

    return _EXIT_PARTIAL if result.error_count else _EXIT_OK


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ingestion CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m coach_rag.cli.ingest",
        description="Add a document to the coach knowledge base.",
    )
    parser.add_argument("file", help="Path to the document (text, markdown, transcript)")
    parser.add_argument(
        "--coaches",
        required=True,
        help=(
            "Comma-separated coach ids, or a group name "
            f"({', '.join(sorted(COACH_GROUPS))})"
        ),
    )
    parser.add_argument("--title", default=None, help="Document title (defaults to file name)")
    parser.add_argument(
        "--tier",
        choices=["free", "premium", "pro"],
        default="free",
        help="Access tier (default: free)",
    )
    parser.add_argument("--tags", default="", help="Comma-separated tags")

    attribution = parser.add_argument_group("attribution")
    attribution.add_argument("--supplied-by", dest="supplied_by", default="Internal Team")
    attribution.add_argument(
        "--supplier-type",
        dest="supplier_type",
        default="internal_team",
        help="partner_doctor, internal_team, community, ...",
    )
    attribution.add_argument("--supplier-email", dest="supplier_email", default=None)
    attribution.add_argument(
        "--license",
        default="proprietary",
        help="proprietary, cc_by, public_domain, youtube_transcript, ...",
    )
    attribution.add_argument("--copyright", default="NoiseMeld", help="Copyright holder")

    parser.add_argument(
        "--source-url",
        dest="source_url",
        default=None,
        help="Original URL; YouTube URLs enable video-level duplicate detection",
    )
    parser.add_argument(
        "--allow-duplicates",
        dest="allow_duplicates",
        action="store_true",
        help="Ingest even if the same content was uploaded before",
    )
    parser.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        help="Chunk and embed, but store in memory instead of Supabase",
    )
    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ingestion tool.

    Validates the file and credentials before doing any work, then runs the
    pipeline and exits with a code describing the outcome.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    coaches = expand_coach_selection(args.coaches)
    if not coaches:
        parser.error("--coaches must name at least one coach or group")

    app_settings = Settings()
    configure_logging(app_settings.log_level)

    if not Path(args.file).is_file():
        print(f"Error: file not found: {args.file}", file=sys.stderr)
        sys.exit(_EXIT_ERROR)

    try:
        _require_credentials(app_settings, dry_run=args.dry_run)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(_EXIT_ERROR)

    exit_code = asyncio.run(_handle_ingest(args, coaches, app_settings))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
