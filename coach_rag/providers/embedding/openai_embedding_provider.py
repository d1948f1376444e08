"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
``text-embedding-3-*`` models accept a ``dimensions`` parameter, so the
provider asks for the store's dimension (768 by default) directly instead of
producing 1536-dim vectors that the ``coach_documents.embedding`` column
would reject.
"""

from __future__ import annotations

import openai
import structlog

from coach_rag.interfaces.embedding_provider import IEmbeddingProvider
from coach_rag.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "text-embedding-3-small"

# Models that honour the ``dimensions`` request parameter.
_SHORTENABLE_MODELS = frozenset({"text-embedding-3-small", "text-embedding-3-large"})


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API."""

    def __init__(
        self,
        api_key: str,
        model: str = "",
        dimension: int = 768,
        base_url: str = "",
    ) -> None:
        self._api_key = api_key
        client_kwargs: dict = {"api_key": api_key or "unset"}
        if base_url:
            client_kwargs["base_url"] = base_url
        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = model or _DEFAULT_MODEL
        self._dimension = dimension

    async def embed_content(self, text: str) -> list[float]:
        request: dict = {"input": [text], "model": self._model}
        if self._model in _SHORTENABLE_MODELS:
            request["dimensions"] = self._dimension

        try:
            response = await self._client.embeddings.create(**request)
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"OpenAI embedding API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug(
            "openai_embedding",
            model=self._model,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return list(response.data[0].embedding)

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "openai_embedding"

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)
