"""Attach coach/tier grants to persisted chunks.

Grants are upserts keyed on (document, coach), so calling :meth:`grant`
twice converges to one row per pair carrying the latest tier.

A grant failure must never undo an ingestion: the bulk call is tried first,
and if the store rejects it each coach is retried on its own so the
successful subset stands.  Whatever still fails is reported in the
:class:`GrantReport` and logged, never raised.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

import structlog

from coach_rag.models.rag import AccessTier, GrantReport
from coach_rag.utils.errors import StorageError

if TYPE_CHECKING:
    from coach_rag.interfaces.document_store import IDocumentStore

logger = structlog.get_logger(logger_name=__name__)


class CoachAccessGrantor:
    """Grants one document to a set of coaches at a tier."""

    def __init__(self, store: IDocumentStore) -> None:
        self._store = store

    async def grant(
        self,
        document_id: str,
        coach_ids: Iterable[str],
        tier: AccessTier = AccessTier.FREE,
    ) -> GrantReport:
        coaches = list(dict.fromkeys(c for c in coach_ids if c))
        if not coaches:
            return GrantReport(document_id=document_id)

        tier = AccessTier(tier)
        try:
            await self._store.grant_coach_access(document_id, coaches, tier)
            return GrantReport(document_id=document_id, granted=coaches)
        except StorageError as exc:
            logger.warning(
                "coach_access_bulk_failed",
                document_id=document_id,
                coaches=coaches,
                error=str(exc),
            )

        granted: list[str] = []
        failed: dict[str, str] = {}
        for coach_id in coaches:
            try:
                await self._store.grant_coach_access(document_id, [coach_id], tier)
                granted.append(coach_id)
            except StorageError as exc:
                failed[coach_id] = str(exc)
                logger.warning(
                    "coach_access_failed",
                    document_id=document_id,
                    coach_id=coach_id,
                    error=str(exc),
                )
        return GrantReport(document_id=document_id, granted=granted, failed=failed)
