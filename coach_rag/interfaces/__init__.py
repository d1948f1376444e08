"""Public interface definitions for the external collaborators.

Every external service the core touches is accessed through the abstract
base classes in this package.  Concrete adapters live in
``coach_rag/providers/`` and are injected at runtime, so tests can swap in
fakes and the CLI can swap Gemini for OpenAI without touching the services.

    Interface            →  Concrete implementations
    ─────────────────────────────────────────────────────────────
    IEmbeddingProvider   →  GeminiEmbeddingProvider, OpenAIEmbeddingProvider
    IDocumentStore       →  SupabaseDocumentStore, InMemoryDocumentStore
"""

from coach_rag.interfaces.document_store import IDocumentStore
from coach_rag.interfaces.embedding_provider import IEmbeddingProvider

__all__ = ["IDocumentStore", "IEmbeddingProvider"]
