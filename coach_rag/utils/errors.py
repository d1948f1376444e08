"""Custom exception hierarchy for coach-rag.

All application exceptions inherit from :class:`CoachRagError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "gemini", "supabase") caused the failure.

The hierarchy is organized by how callers are expected to react:

    CoachRagError  (base -- catch-all for any coach-rag error)
    +-- InvalidInputError        (caller mistake, never retried)
    |   +-- EmptyInputError      (empty text handed to the embedder)
    |   +-- EmptyQueryError      (empty search query)
    +-- EmbeddingError           (embedding provider call failed)
    |   +-- DimensionMismatchError
    +-- StorageError             (document store call failed)
    |   +-- SourceCreationError  (document_sources insert rejected)
    |   +-- PersistenceError     (chunk batch write rejected)
    +-- ProviderUnavailableError (external service down / unreachable)
    +-- ConfigurationError       (startup / missing credentials)

Embedding errors are per-item: the batch orchestrator absorbs them into
``None`` slots.  Storage errors raised while creating a source or writing
chunks are fatal to the current ingestion and propagate to the caller.
"""


class CoachRagError(Exception):
    """Base exception for all coach-rag errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    scanning, e.g. ``[supabase] insert rejected``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Input validation errors
# ---------------------------------------------------------------------------

class InvalidInputError(CoachRagError):
    """Raised when a caller hands the core malformed input."""

    def __init__(
        self,
        message: str = "Invalid input",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmptyInputError(InvalidInputError):
    """Raised when text to embed is empty or whitespace-only."""

    def __init__(
        self,
        message: str = "Text cannot be empty",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmptyQueryError(InvalidInputError):
    """Raised when a similarity search is issued with an empty query."""

    def __init__(
        self,
        message: str = "Search query cannot be empty",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Embedding provider errors
# ---------------------------------------------------------------------------

class EmbeddingError(CoachRagError):
    """Raised when an embedding provider call fails."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DimensionMismatchError(EmbeddingError):
    """Raised when a provider returns a vector of the wrong length.

    Vectors are never padded or truncated to fit the configured dimension.
    """

    def __init__(
        self,
        expected: int,
        actual: int,
        provider_name: str | None = None,
    ) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            message=f"Expected {expected} dimensions, got {actual}",
            provider_name=provider_name,
        )


# ---------------------------------------------------------------------------
# Storage errors
# ---------------------------------------------------------------------------

class StorageError(CoachRagError):
    """Raised when a document store operation fails."""

    def __init__(
        self,
        message: str = "Document store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class SourceCreationError(StorageError):
    """Raised when the store rejects a new ``document_sources`` row."""

    def __init__(
        self,
        message: str = "Failed to create document source",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PersistenceError(StorageError):
    """Raised when the batch write of embedded chunks fails as a whole."""

    def __init__(
        self,
        message: str = "Failed to insert documents",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Service availability / configuration errors
# ---------------------------------------------------------------------------

class ProviderUnavailableError(CoachRagError):
    """Raised when an external service or primitive is unreachable.

    The search service catches this to switch to its degraded listing.
    """

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(CoachRagError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
