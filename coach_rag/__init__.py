"""coach-rag: document ingestion and coach-scoped retrieval for the diet coach."""

__version__ = "0.1.0"
