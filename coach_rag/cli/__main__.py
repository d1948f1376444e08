"""Allow ``python -m coach_rag.cli`` execution (defaults to the ingest tool)."""

from coach_rag.cli.ingest import main

main()
