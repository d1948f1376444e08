"""Supabase document store adapter (PostgREST over httpx).

Talks to the Supabase REST layer directly with an injected
``httpx.AsyncClient`` instead of a heavyweight SDK:

    Table / RPC                        Used for
    ─────────────────────────────────────────────────────────────────
    document_sources                   insert_source, update_source, find_source
    coach_documents                    insert_chunks, fallback listing
    coach_document_access              get_coach_access, fallback join
    rpc/add_coach_document_access      grant_coach_access (upsert per coach)
    rpc/search_coach_documents         vector_similarity_search (pgvector)

The service-role key is sent both as ``apikey`` and as a bearer token, the
same way the Supabase client libraries authenticate.

HTTP failures become :class:`StorageError` subclasses.  A missing or
unreachable similarity RPC raises :class:`ProviderUnavailableError` so the
search service can switch to its degraded listing.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from coach_rag.interfaces.document_store import IDocumentStore
from coach_rag.models.rag import (
    AccessTier,
    CoachAccessGrant,
    DocumentChunk,
    DocumentSource,
    SearchResult,
)
from coach_rag.utils.errors import (
    PersistenceError,
    ProviderUnavailableError,
    SourceCreationError,
    StorageError,
)

logger = structlog.get_logger(logger_name=__name__)

_SOURCES_TABLE = "document_sources"
_CHUNKS_TABLE = "coach_documents"
_ACCESS_TABLE = "coach_document_access"
_GRANT_RPC = "add_coach_document_access"
_SEARCH_RPC = "search_coach_documents"

# Status codes meaning "the RPC is not there / not reachable right now".
_UNAVAILABLE_STATUSES = frozenset({404, 502, 503, 504})


class SupabaseDocumentStore(IDocumentStore):
    """Document store backed by Supabase Postgres + pgvector.

    Parameters
    ----------
    http_client:
        Injected ``httpx.AsyncClient`` for testability and connection pooling.
    base_url:
        Project URL, e.g. ``https://xyz.supabase.co``.
    service_key:
        Service-role key; bypasses row-level security for ingestion.
    timeout:
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        service_key: str,
        timeout: float = 30.0,
    ) -> None:
        self._http = http_client
        self._base_url = base_url.rstrip("/")
        self._service_key = service_key
        self._timeout = timeout

    # ------------------------------------------------------------------
    # IDocumentStore implementation
    # ------------------------------------------------------------------

    async def insert_source(self, fields: dict[str, Any]) -> DocumentSource:
        try:
            rows = await self._request(
                "POST",
                f"/rest/v1/{_SOURCES_TABLE}",
                json=_jsonable(fields),
                prefer="return=representation",
            )
        except StorageError as exc:
            raise SourceCreationError(
                message=f"Failed to create document source: {exc.message}",
                provider_name=self.get_provider_name(),
            ) from exc
        if not rows:
            raise SourceCreationError(
                message="Failed to create document source: empty response",
                provider_name=self.get_provider_name(),
            )
        return self._to_source(rows[0], error_cls=SourceCreationError)

    async def insert_chunks(self, chunks: list[DocumentChunk]) -> list[str]:
        if not chunks:
            return []
        payload = [c.model_dump(exclude={"id"}, mode="json") for c in chunks]
        try:
            rows = await self._request(
                "POST",
                f"/rest/v1/{_CHUNKS_TABLE}",
                params={"select": "id"},
                json=payload,
                prefer="return=representation",
            )
        except StorageError as exc:
            raise PersistenceError(
                message=f"Failed to insert documents: {exc.message}",
                provider_name=self.get_provider_name(),
            ) from exc
        ids = [str(row["id"]) for row in rows or []]
        if len(ids) != len(chunks):
            raise PersistenceError(
                message=f"Failed to insert documents: expected {len(chunks)} ids, got {len(ids)}",
                provider_name=self.get_provider_name(),
            )
        return ids

    async def update_source(self, source_id: str, fields: dict[str, Any]) -> None:
        await self._request(
            "PATCH",
            f"/rest/v1/{_SOURCES_TABLE}",
            params={"id": f"eq.{source_id}"},
            json=_jsonable(fields),
            prefer="return=minimal",
        )

    async def grant_coach_access(
        self,
        document_id: str,
        coach_ids: list[str],
        tier: AccessTier,
    ) -> None:
        await self._request(
            "POST",
            f"/rest/v1/rpc/{_GRANT_RPC}",
            json={
                "p_document_id": document_id,
                "p_coach_ids": list(coach_ids),
                "p_access_tier": AccessTier(tier).value,
            },
        )

    async def get_coach_access(self, document_id: str) -> list[CoachAccessGrant]:
        rows = await self._request(
            "GET",
            f"/rest/v1/{_ACCESS_TABLE}",
            params={
                "select": "document_id,coach_id,access_tier",
                "document_id": f"eq.{document_id}",
            },
        )
        return [CoachAccessGrant.model_validate(row) for row in rows or []]

    async def vector_similarity_search(
        self,
        query_vector: list[float],
        coach_id: str,
        limit: int,
        threshold: float,
    ) -> list[SearchResult]:
        rows = await self._request(
            "POST",
            f"/rest/v1/rpc/{_SEARCH_RPC}",
            json={
                "query_embedding": query_vector,
                "p_coach_id": coach_id,
                "p_user_id": None,  # Admin search, no user context
                "p_limit": limit,
                "p_threshold": threshold,
            },
            unavailable_on=_UNAVAILABLE_STATUSES,
        )
        return [self._row_to_result(row) for row in rows or []]

    async def list_active_chunks(self, coach_id: str, limit: int) -> list[SearchResult]:
        rows = await self._request(
            "GET",
            f"/rest/v1/{_CHUNKS_TABLE}",
            params={
                "select": f"id,title,content,metadata,{_ACCESS_TABLE}!inner(coach_id)",
                f"{_ACCESS_TABLE}.coach_id": f"eq.{coach_id}",
                "is_active": "eq.true",
                "order": "id.asc",
                "limit": str(limit),
            },
        )
        return [self._row_to_result(row, score=0.0) for row in rows or []]

    async def find_source(
        self,
        file_hash: str | None = None,
        video_id: str | None = None,
    ) -> DocumentSource | None:
        params: dict[str, str] = {"select": "*", "limit": "1"}
        if file_hash:
            params["file_hash"] = f"eq.{file_hash}"
        elif video_id:
            params["metadata->>video_id"] = f"eq.{video_id}"
        else:
            return None
        rows = await self._request("GET", f"/rest/v1/{_SOURCES_TABLE}", params=params)
        if not rows:
            return None
        return self._to_source(rows[0])

    def get_provider_name(self) -> str:
        return "supabase"

    def is_available(self) -> bool:
        """Return ``True`` if the project URL and key are configured."""
        return bool(self._base_url and self._service_key)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _headers(self, prefer: str | None) -> dict[str, str]:
        headers = {
            "apikey": self._service_key,
            "Authorization": f"Bearer {self._service_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
        unavailable_on: frozenset[int] = frozenset(),
    ) -> Any:
        """Issue one PostgREST request and return the decoded JSON body.

        Returns ``None`` for empty bodies (``return=minimal``, 204).
        """
        url = f"{self._base_url}{path}"
        try:
            response = await self._http.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(prefer),
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            logger.warning("supabase_request_failed", method=method, path=path, error=str(exc))
            if unavailable_on:
                raise ProviderUnavailableError(
                    message=f"{method} {path} unreachable: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc
            raise StorageError(
                message=f"{method} {path} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if response.is_success:
            if not response.content:
                return None
            try:
                return response.json()
            except ValueError as exc:
                logger.warning(
                    "supabase_invalid_json",
                    method=method,
                    path=path,
                    status=response.status_code,
                    body=response.text[:200],
                )
                error_cls = ProviderUnavailableError if unavailable_on else StorageError
                raise error_cls(
                    message=f"{method} {path} returned a non-JSON body",
                    provider_name=self.get_provider_name(),
                ) from exc

        detail = _error_detail(response)
        logger.warning(
            "supabase_error_response",
            method=method,
            path=path,
            status=response.status_code,
            detail=detail,
        )
        if response.status_code in unavailable_on:
            raise ProviderUnavailableError(
                message=f"{method} {path} returned {response.status_code}: {detail}",
                provider_name=self.get_provider_name(),
            )
        raise StorageError(
            message=f"{method} {path} returned {response.status_code}: {detail}",
            provider_name=self.get_provider_name(),
        )

    def _to_source(
        self,
        row: dict[str, Any],
        error_cls: type[StorageError] = StorageError,
    ) -> DocumentSource:
        try:
            return DocumentSource.model_validate(row)
        except ValidationError as exc:
            logger.warning("supabase_source_row_invalid", source_id=row.get("id"), error=str(exc))
            raise error_cls(
                message=f"Malformed document source row: {exc.error_count()} invalid field(s)",
                provider_name=self.get_provider_name(),
            ) from exc

    @staticmethod
    def _row_to_result(row: dict[str, Any], score: float | None = None) -> SearchResult:
        """Normalise a search or listing row into a :class:`SearchResult`.

        The RPC has shipped with both ``id``/``document_id`` and
        ``similarity``/``similarity_score`` column names.
        """
        metadata = row.get("metadata") or {}
        if score is None:
            score = float(row.get("similarity", row.get("similarity_score", 0.0)) or 0.0)
        return SearchResult(
            chunk_id=str(row.get("id") or row.get("document_id")),
            title=row.get("title") or metadata.get("title") or "Untitled",
            content=row.get("content") or "",
            metadata=metadata,
            score=max(-1.0, min(1.0, score)),
        )


def _jsonable(fields: dict[str, Any]) -> dict[str, Any]:
    """Convert enums and datetimes in *fields* into JSON-friendly values."""
    converted: dict[str, Any] = {}
    for key, value in fields.items():
        if hasattr(value, "isoformat"):
            converted[key] = value.isoformat()
        elif hasattr(value, "value") and not isinstance(value, (dict, list, str)):
            converted[key] = value.value
        else:
            converted[key] = value
    return converted


def _error_detail(response: httpx.Response) -> str:
    """Extract PostgREST's ``message`` field, falling back to the raw body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)[:200]
