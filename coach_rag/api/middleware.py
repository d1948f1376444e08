"""API middleware: CORS, request logging, and error handling.

Converts :class:`~coach_rag.utils.errors.CoachRagError` subclasses raised by
route handlers into JSON :class:`ErrorResponse` bodies:

    InvalidInputError                    -> 400
    StorageError / EmbeddingError /
    ProviderUnavailableError             -> 502
    ConfigurationError / anything else   -> 500

Starlette middleware runs last-added-first, so in ``main.py``
``RequestLoggingMiddleware`` is added after ``ErrorHandlingMiddleware`` and
logs the final status code.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from coach_rag.api.schemas import ErrorResponse
from coach_rag.utils.errors import (
    CoachRagError,
    EmbeddingError,
    InvalidInputError,
    ProviderUnavailableError,
    StorageError,
)
from coach_rag.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware; all origins unless *allowed_origins* is given."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def status_for_error(exc: CoachRagError) -> int:
    """Return the HTTP status code for an application error."""
    if isinstance(exc, InvalidInputError):
        return 400
    if isinstance(exc, (StorageError, EmbeddingError, ProviderUnavailableError)):
        return 502
    return 500


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=response.status_code if response else 500,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Catch ``CoachRagError`` subclasses and return structured JSON errors.

    Stack traces stay in the server log; the client sees the error class
    name and message only.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except CoachRagError as exc:
            status_code = status_for_error(exc)
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
                status=status_code,
            )
            body = ErrorResponse(error=type(exc).__name__, detail=exc.message)
            return JSONResponse(status_code=status_code, content=body.model_dump())
