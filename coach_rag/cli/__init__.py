# =============================================================================
# coach_rag/cli/__init__.py - CLI Module Overview
# =============================================================================
#
# Command-line tools for operators maintaining the coach knowledge base.
# Each submodule is self-contained and runs via `python -m coach_rag.cli.<module>`:
#
#   1. INGESTION (ingest.py)
#      Reads one document, chunks and embeds it, stores the chunks in
#      Supabase and grants them to the selected coaches.
#
#   2. SEARCH (search.py)
#      Runs a coach-scoped similarity search and prints the matches,
#      including a notice when results come from the degraded fallback.
#
# Architecture Notes:
#   - argparse for argument parsing.
#   - Heavy imports (provider SDKs, httpx) are deferred inside functions.
#   - Credentials are checked before any network call; a missing key exits 1.
# =============================================================================

"""CLI tools for the coach knowledge base.

- ``python -m coach_rag.cli.ingest`` - ingest a document for one or more coaches
- ``python -m coach_rag.cli.search`` - run a coach-scoped similarity search
"""
