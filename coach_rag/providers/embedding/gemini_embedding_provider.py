"""Gemini embedding provider adapter.

Wraps ``google.generativeai`` to implement :class:`IEmbeddingProvider` with
the ``embedding-001`` model, which returns 768-dimensional vectors and
accepts up to ~8K tokens per request.  The SDK's ``embed_content`` call is
synchronous, so it runs in a worker thread to keep the event loop free.
"""

from __future__ import annotations

import asyncio

import google.generativeai as genai
import structlog
from google.api_core import exceptions as google_exceptions

from coach_rag.interfaces.embedding_provider import IEmbeddingProvider
from coach_rag.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "models/embedding-001"

# Known embedding model dimensions.
_MODEL_DIMENSIONS: dict[str, int] = {
    "models/embedding-001": 768,
    "models/text-embedding-004": 768,
}


class GeminiEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by the Gemini embeddings API.

    Parameters
    ----------
    api_key:
        Gemini API key.  An empty key leaves the provider unavailable.
    model:
        Model name; bare names get the ``models/`` prefix added.
    task_type:
        Gemini task hint.  Documents are embedded as ``retrieval_document``;
        the search service can build a second instance with
        ``retrieval_query``.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "",
        task_type: str = "retrieval_document",
    ) -> None:
        self._api_key = api_key
        model = model or _DEFAULT_MODEL
        self._model = model if model.startswith("models/") else f"models/{model}"
        self._dimension = _MODEL_DIMENSIONS.get(self._model, 768)
        self._task_type = task_type
        if api_key:
            genai.configure(api_key=api_key)

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed_content(self, text: str) -> list[float]:
        """Embed one text via ``genai.embed_content``."""
        try:
            response = await asyncio.to_thread(
                genai.embed_content,
                model=self._model,
                content=text,
                task_type=self._task_type,
            )
        except google_exceptions.GoogleAPIError as exc:
            raise EmbeddingError(
                message=f"Gemini embedding API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        values = response.get("embedding") if isinstance(response, dict) else None
        if not values:
            raise EmbeddingError(
                message="Gemini response contained no embedding values",
                provider_name=self.get_provider_name(),
            )
        return [float(v) for v in values]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "gemini_embedding"

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)
