"""HTTP API for the coach knowledge base (FastAPI routes, schemas, middleware)."""
