"""Abstract base class for text-embedding service providers.

Defines the contract the :class:`~coach_rag.services.ingestion.embedding_client.EmbeddingClient`
uses to turn one text into one vector.  Implementations wrap Gemini
``embedding-001`` or OpenAI ``text-embedding-3-small``; the client layers
rate limiting, empty-input rejection and dimension checks on top, so
providers stay thin.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   GeminiEmbeddingProvider - embedding-001 via google-generativeai (768 dims)
#   OpenAIEmbeddingProvider - text-embedding-3-small requested at 768 dims
# Located in: coach_rag/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the RAG pipeline."""

    @abstractmethod
    async def embed_content(self, text: str) -> list[float]:
        """Generate an embedding vector for one text.

        Parameters
        ----------
        text:
            A non-empty string.  The caller has already rejected blank input.

        Returns
        -------
        list[float]
            The raw vector returned by the provider.  Its length is checked
            by the caller against :meth:`get_dimension`.

        Raises
        ------
        coach_rag.utils.errors.EmbeddingError
            If the provider call fails.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality the provider is expected to produce.

        Must match the dimension of the ``embedding`` column in the store.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"gemini_embedding"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""
