"""Shared pytest fixtures for the coach-rag test suite."""

from __future__ import annotations

import hashlib
from typing import Callable

import pytest

from coach_rag.interfaces.embedding_provider import IEmbeddingProvider
from coach_rag.providers.document_store.memory_store import InMemoryDocumentStore
from coach_rag.services.ingestion.batch_embedder import BatchEmbeddingOrchestrator
from coach_rag.services.ingestion.embedding_client import EmbeddingClient
from coach_rag.services.ingestion.ingestion_service import DocumentIngestionPipeline
from coach_rag.utils.errors import EmbeddingError
from coach_rag.utils.rate_limiter import MinIntervalRateLimiter

TEST_DIMENSION = 8


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually driven monotonic clock whose ``sleep`` advances time."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def hashed_vector(text: str, dimension: int = TEST_DIMENSION) -> list[float]:
    """Deterministic pseudo-embedding derived from the sha256 of *text*."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [(digest[i % len(digest)] / 127.5) - 1.0 for i in range(dimension)]


class FakeEmbeddingProvider(IEmbeddingProvider):
    """In-process embedding provider.

    Returns :func:`hashed_vector` unless *text* has an explicit entry in
    ``vectors``.  Texts for which ``fail_when(text)`` is true raise
    :class:`EmbeddingError`.  Every call is recorded in ``calls``.
    """

    def __init__(
        self,
        dimension: int = TEST_DIMENSION,
        vectors: dict[str, list[float]] | None = None,
        fail_when: Callable[[str], bool] | None = None,
        returned_dimension: int | None = None,
    ) -> None:
        self._dimension = dimension
        self._returned_dimension = returned_dimension or dimension
        self.vectors = dict(vectors or {})
        self.fail_when = fail_when
        self.calls: list[str] = []

    async def embed_content(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail_when is not None and self.fail_when(text):
            raise EmbeddingError("simulated provider failure", provider_name="fake")
        if text in self.vectors:
            return list(self.vectors[text])
        return hashed_vector(text, self._returned_dimension)

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "fake_embedding"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rate_limiter(fake_clock: FakeClock) -> MinIntervalRateLimiter:
    """1500/min limiter driven by the fake clock, so tests never really sleep."""
    return MinIntervalRateLimiter(1500, clock=fake_clock, sleep=fake_clock.sleep)


@pytest.fixture
def fake_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def embedding_client(
    fake_provider: FakeEmbeddingProvider,
    rate_limiter: MinIntervalRateLimiter,
) -> EmbeddingClient:
    return EmbeddingClient(fake_provider, dimension=TEST_DIMENSION, rate_limiter=rate_limiter)


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def pipeline(
    memory_store: InMemoryDocumentStore,
    embedding_client: EmbeddingClient,
    fake_clock: FakeClock,
) -> DocumentIngestionPipeline:
    return DocumentIngestionPipeline(
        store=memory_store,
        orchestrator=BatchEmbeddingOrchestrator(embedding_client),
        sleep=fake_clock.sleep,
    )
