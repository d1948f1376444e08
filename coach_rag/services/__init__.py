"""Business services: document ingestion and coach-scoped similarity search."""
