"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# pydantic-settings reads configuration from two sources, in priority order:
#
#   1. Environment variables - e.g. GEMINI_API_KEY=abc123 (always wins)
#   2. .env file            - key=value lines in the project root
#
# Field ``supabase_url`` maps to env var ``SUPABASE_URL`` automatically.
# Defaults apply when neither source defines a value.
#
# The core services never read Settings directly; the CLI and the API
# build providers from it and fail fast when credentials are missing.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """coach-rag settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # === Document store (Supabase / PostgREST) ===
    supabase_url: str = ""
    supabase_service_key: str = ""
    supabase_timeout: float = 30.0

    # === Embedding provider ===
    embedding_provider: str = "gemini"  # "gemini" or "openai"
    gemini_api_key: str = ""
    openai_api_key: str = ""
    embedding_model: str = ""  # Empty = provider default
    embedding_dimension: int = Field(default=768, gt=0)
    embedding_requests_per_minute: int = Field(default=1500, gt=0)

    # === Ingestion ===
    # 6000 of the provider's 8000-token ceiling leaves room for metadata.
    chunk_max_tokens: int = Field(default=6000, gt=0)
    finalize_max_attempts: int = Field(default=3, ge=1)
    finalize_retry_backoff: float = Field(default=0.5, ge=0.0)

    # === Search ===
    search_default_limit: int = Field(default=5, ge=1)
    search_default_threshold: float = Field(default=0.7, ge=0.0, le=1.0)

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def embedding_api_key(self) -> str:
        """Return the API key for the configured embedding provider."""
        if self.embedding_provider == "openai":
            return self.openai_api_key
        return self.gemini_api_key

    def missing_credentials(self) -> list[str]:
        """Return the env var names that must be set before ingesting or searching."""
        missing: list[str] = []
        if not self.supabase_url:
            missing.append("SUPABASE_URL")
        if not self.supabase_service_key:
            missing.append("SUPABASE_SERVICE_KEY")
        if not self.embedding_api_key():
            missing.append(
                "OPENAI_API_KEY" if self.embedding_provider == "openai" else "GEMINI_API_KEY"
            )
        return missing
