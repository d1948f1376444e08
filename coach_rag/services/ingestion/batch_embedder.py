"""Sequential batch embedding with per-item failure capture.

Embeds a list of chunk texts one at a time, in input order, through a shared
:class:`EmbeddingClient`.  A failing item never aborts the batch: its slot
holds ``None`` and the reason is kept alongside, so the output is always
positionally aligned with the input.

Progress can be consumed two ways:

* ``embed_all(chunks, on_progress=fn)`` calls *fn* synchronously after each
  item.  Exceptions raised by the observer are logged and ignored.
* ``async for index, outcome, progress in iter_embeddings(chunks)`` yields
  the same events lazily.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, AsyncIterator, Callable, Sequence

import structlog

from coach_rag.models.rag import EmbeddingBatchResult, EmbeddingOutcome, EmbeddingProgress

if TYPE_CHECKING:
    from coach_rag.services.ingestion.embedding_client import EmbeddingClient

logger = structlog.get_logger(logger_name=__name__)

ProgressObserver = Callable[[EmbeddingProgress], None]


class BatchEmbeddingOrchestrator:
    """Embeds many chunks through one rate-limited client."""

    def __init__(self, client: EmbeddingClient) -> None:
        self._client = client

    async def iter_embeddings(
        self, chunks: Sequence[str]
    ) -> AsyncIterator[tuple[int, EmbeddingOutcome, EmbeddingProgress]]:
        """Yield ``(index, outcome, progress)`` for each chunk in order."""
        total = len(chunks)
        for index, text in enumerate(chunks):
            try:
                vector = await self._client.embed(text)
                outcome = EmbeddingOutcome(text=text, vector=vector)
            except Exception as exc:  # noqa: BLE001 -- per-item failures become data
                logger.warning(
                    "embedding_failed",
                    chunk_index=index,
                    total=total,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                outcome = EmbeddingOutcome(text=text, error=str(exc) or type(exc).__name__)

            current = index + 1
            progress = EmbeddingProgress(
                current=current,
                total=total,
                percentage=round(current / total * 100),
            )
            yield index, outcome, progress

    async def embed_all(
        self,
        chunks: Sequence[str],
        on_progress: ProgressObserver | None = None,
    ) -> EmbeddingBatchResult:
        """Embed every chunk and return the aligned outcomes.

        Parameters
        ----------
        chunks:
            Chunk texts in document order.
        on_progress:
            Optional observer called after each item with an
            :class:`EmbeddingProgress` snapshot.

        Returns
        -------
        EmbeddingBatchResult
            Exactly ``len(chunks)`` outcomes; outcome ``i`` belongs to chunk ``i``.
        """
        outcomes: list[EmbeddingOutcome] = []
        async for _, outcome, progress in self.iter_embeddings(chunks):
            outcomes.append(outcome)
            if on_progress is not None:
                self._notify(on_progress, progress)

        result = EmbeddingBatchResult(outcomes=outcomes)
        logger.info(
            "batch_embedding_complete",
            total=len(result),
            succeeded=result.success_count,
            failed=len(result) - result.success_count,
        )
        return result

    @staticmethod
    def _notify(observer: ProgressObserver, progress: EmbeddingProgress) -> None:
        try:
            observer(progress)
        except Exception as exc:  # noqa: BLE001 -- progress is advisory
            logger.warning("progress_observer_failed", error=str(exc))
