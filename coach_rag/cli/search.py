# =============================================================================
# coach_rag/cli/search.py - CLI Search Command
# =============================================================================
#
# Runs one coach-scoped similarity search against the knowledge base and
# prints the matches.  Useful for checking what a coach will "see" for a
# question after new documents were ingested.
#
# When the similarity function is unavailable the service falls back to an
# unranked listing of the coach's documents; the CLI prints a notice so the
# operator knows the scores are placeholders.
#
# Usage examples:
#   python -m coach_rag.cli.search "how much fat on carnivore" --coach carnivore
#   python -m coach_rag.cli.search "electrolytes" --coach keto --limit 10 \
#       --threshold 0.5 --verbose
# =============================================================================

"""Standalone CLI for searching the coach knowledge base.

Usage::

    python -m coach_rag.cli.search "how much fat on carnivore" --coach carnivore
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from coach_rag.cli.ingest import _build_embedding_client, _open_document_store, _require_credentials
from coach_rag.config.settings import Settings
from coach_rag.utils.errors import ConfigurationError, EmbeddingError, InvalidInputError, StorageError
from coach_rag.utils.logging import configure_logging

_PREVIEW_CHARS = 200


async def _handle_search(args: argparse.Namespace, app_settings: Settings) -> int:
    """Run the search and print the results."""
    from coach_rag.services.search_service import SimilaritySearchService

    async with _open_document_store(app_settings) as store:
        service = SimilaritySearchService(
            store=store,
            embedding_client=_build_embedding_client(app_settings, task_type="retrieval_query"),
            default_limit=app_settings.search_default_limit,
            default_threshold=app_settings.search_default_threshold,
        )
        try:
            response = await service.search(
                args.query,
                coach_id=args.coach,
                limit=args.limit,
                threshold=args.threshold,
            )
        except (InvalidInputError, EmbeddingError, StorageError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1

    print(f'Search: "{response.query}" (coach: {response.coach_id})')
    if response.degraded:
        print(
            "Notice: similarity search unavailable; showing unranked documents "
            "(scores are placeholders)."
        )
    print("=" * 60)

    if not response.results:
        print("No matching documents.")
        return 0

    for index, result in enumerate(response.results, start=1):
        score = "n/a" if result.degraded else f"{result.score:.3f}"
        print(f"{index}. {result.title}  [score: {score}]")
        if args.verbose:
            print(f"   id: {result.chunk_id}")
            if result.metadata:
                print(f"   metadata: {result.metadata}")
            print(f"   {result.content}")
        else:
            preview = result.content[:_PREVIEW_CHARS].replace("\n", " ")
            suffix = "..." if len(result.content) > _PREVIEW_CHARS else ""
            print(f"   {preview}{suffix}")
        print()
    return 0


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the search CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m coach_rag.cli.search",
        description="Search the coach knowledge base.",
    )
    parser.add_argument("query", help="Natural-language query")
    parser.add_argument("--coach", required=True, help="Coach id to search as")
    parser.add_argument("--limit", type=int, default=None, help="Maximum results (default: 5)")
    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Minimum similarity in [0, 1] (default: 0.7)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Print full content and metadata"
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the search tool."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    app_settings = Settings()
    configure_logging(app_settings.log_level)

    try:
        _require_credentials(app_settings)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    exit_code = asyncio.run(_handle_search(args, app_settings))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
