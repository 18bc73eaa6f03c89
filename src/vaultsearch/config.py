"""Runtime configuration — database, active model, provider credentials."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

DEFAULT_EMBEDDING_MODEL_ID = "openai/text-embedding-3-small"
DEFAULT_CHUNK_SIZE = 1000
DEFAULT_MAX_CONCURRENCY = 4

_DEFAULT_DATA_DIR = Path.home() / ".vaultsearch"


def default_database_url() -> str:
    """Return the SQLite URL under ``~/.vaultsearch``."""
    return f"sqlite+aiosqlite:///{_DEFAULT_DATA_DIR / 'vectors.db'}"


@dataclass(frozen=True, slots=True)
class ProviderCredentials:
    """Credentials and endpoints for the embedding backends.

    Attributes:
        openai_api_key: API key for OpenAI models.
        gemini_api_key: API key for Gemini models.
        ollama_base_url: Base URL of a self-hosted Ollama server.
    """

    openai_api_key: str | None = None
    gemini_api_key: str | None = None
    ollama_base_url: str | None = None

    @classmethod
    def from_env(cls) -> ProviderCredentials:
        """Read credentials from ``OPENAI_API_KEY``, ``GEMINI_API_KEY``, ``OLLAMA_BASE_URL``."""
        return cls(
            openai_api_key=os.environ.get("OPENAI_API_KEY") or None,
            gemini_api_key=os.environ.get("GEMINI_API_KEY") or None,
            ollama_base_url=os.environ.get("OLLAMA_BASE_URL") or None,
        )


@dataclass(frozen=True, slots=True)
class VaultSearchConfig:
    """Top-level configuration for :class:`~vaultsearch.VaultSearch`.

    Attributes:
        database_url: SQLAlchemy async URL of the vector database.
        embedding_model_id: Catalog id of the active embedding model.
        credentials: Provider credentials.
        chunk_size: Maximum characters per chunk.
        max_concurrency: Maximum embedding calls in flight during a sync.
        echo_sql: Echo SQL statements (debugging).
    """

    database_url: str = field(default_factory=default_database_url)
    embedding_model_id: str = DEFAULT_EMBEDDING_MODEL_ID
    credentials: ProviderCredentials = field(default_factory=ProviderCredentials)
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    echo_sql: bool = False

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            msg = f"chunk_size must be positive, got {self.chunk_size}"
            raise ValueError(msg)
        if self.max_concurrency <= 0:
            msg = f"max_concurrency must be positive, got {self.max_concurrency}"
            raise ValueError(msg)

    @classmethod
    def from_env(cls) -> VaultSearchConfig:
        """Build a config from ``VAULTSEARCH_*`` variables and provider credentials."""
        return cls(
            database_url=os.environ.get("VAULTSEARCH_DATABASE_URL") or default_database_url(),
            embedding_model_id=(
                os.environ.get("VAULTSEARCH_EMBEDDING_MODEL") or DEFAULT_EMBEDDING_MODEL_ID
            ),
            credentials=ProviderCredentials.from_env(),
            chunk_size=_env_int("VAULTSEARCH_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
            max_concurrency=_env_int("VAULTSEARCH_MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENCY),
        )

    def with_credentials(self, credentials: ProviderCredentials) -> VaultSearchConfig:
        """Return a copy with *credentials* swapped in."""
        return replace(self, credentials=credentials)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        msg = f"{name} must be an integer, got {raw!r}"
        raise ValueError(msg) from None
