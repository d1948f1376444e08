"""Rate-limited, dimension-checked access to an embedding provider.

:class:`EmbeddingClient` is the only component that calls an
:class:`IEmbeddingProvider` directly.  It adds three guarantees on top of
the raw provider:

* blank text is rejected before any network call (:class:`EmptyInputError`);
* calls are spaced by the owned :class:`MinIntervalRateLimiter`;
* every vector has exactly the configured dimension, otherwise
  :class:`DimensionMismatchError` is raised.  Vectors are never padded or
  truncated.

There is no automatic retry; a failed call raises and the caller decides.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from coach_rag.utils.errors import (
    CoachRagError,
    DimensionMismatchError,
    EmbeddingError,
    EmptyInputError,
)
from coach_rag.utils.rate_limiter import MinIntervalRateLimiter

if TYPE_CHECKING:
    from coach_rag.interfaces.embedding_provider import IEmbeddingProvider

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_DIMENSION = 768
DEFAULT_REQUESTS_PER_MINUTE = 1500


class EmbeddingClient:
    """Turns one text into one fixed-length vector.

    Parameters
    ----------
    provider:
        The embedding backend.
    dimension:
        Required vector length; must match the store's embedding column.
    rate_limiter:
        Spacing policy for outbound calls.  Defaults to a limiter built from
        *requests_per_minute*.  Pass the same limiter to several clients to
        make them share one budget.
    requests_per_minute:
        Used only when *rate_limiter* is not given.
    """

    def __init__(
        self,
        provider: IEmbeddingProvider,
        dimension: int = DEFAULT_DIMENSION,
        rate_limiter: MinIntervalRateLimiter | None = None,
        requests_per_minute: int = DEFAULT_REQUESTS_PER_MINUTE,
    ) -> None:
        self._provider = provider
        self._dimension = dimension
        self._rate_limiter = rate_limiter or MinIntervalRateLimiter(requests_per_minute)

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def provider_name(self) -> str:
        return self._provider.get_provider_name()

    async def embed(self, text: str) -> list[float]:
        """Return the embedding of *text*.

        Raises
        ------
        EmptyInputError
            If *text* is empty or whitespace-only.
        DimensionMismatchError
            If the provider returns a vector of the wrong length.
        EmbeddingError
            If the provider call fails.
        """
        if not text or not text.strip():
            raise EmptyInputError(provider_name=self.provider_name)

        await self._rate_limiter.acquire()

        try:
            vector = await self._provider.embed_content(text)
        except CoachRagError:
            raise
        except Exception as exc:
            logger.warning(
                "embedding_provider_error",
                provider=self.provider_name,
                error=str(exc),
            )
            raise EmbeddingError(
                message=f"Embedding provider call failed: {exc}",
                provider_name=self.provider_name,
            ) from exc

        if len(vector) != self._dimension:
            raise DimensionMismatchError(
                expected=self._dimension,
                actual=len(vector),
                provider_name=self.provider_name,
            )
        return list(vector)
