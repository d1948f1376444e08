"""Document store implementations of IDocumentStore.

    SupabaseDocumentStore - production store (Postgres + pgvector via PostgREST)
    InMemoryDocumentStore - process-local store for tests and dry runs
"""

from coach_rag.providers.document_store.memory_store import InMemoryDocumentStore
from coach_rag.providers.document_store.supabase_store import SupabaseDocumentStore

__all__ = ["InMemoryDocumentStore", "SupabaseDocumentStore"]
