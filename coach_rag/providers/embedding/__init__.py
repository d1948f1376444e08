"""Embedding provider implementations.

Two implementations of IEmbeddingProvider:
    1. GeminiEmbeddingProvider - embedding-001 (768 dims).  Default.
    2. OpenAIEmbeddingProvider - text-embedding-3-small shortened to the
       store's dimension.  Selected with EMBEDDING_PROVIDER=openai.
"""

from coach_rag.providers.embedding.gemini_embedding_provider import GeminiEmbeddingProvider
from coach_rag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["GeminiEmbeddingProvider", "OpenAIEmbeddingProvider"]
