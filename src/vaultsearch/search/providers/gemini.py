"""GeminiEmbedding — async embedding provider backed by Google's Gemini API."""

from __future__ import annotations

from typing import TYPE_CHECKING

from vaultsearch.exceptions import (
    MissingCredentialError,
    ProviderError,
    RateLimitExceededError,
)
from vaultsearch.search.providers._base import validated_vector

try:
    import google.generativeai as genai
    from google.api_core import exceptions as google_exceptions

    _HAS_GENAI = True
except ImportError:  # pragma: no cover
    _HAS_GENAI = False

if TYPE_CHECKING:
    from vaultsearch.search.catalog import EmbeddingModelDescriptor


class GeminiEmbedding:
    """Async embedding provider backed by ``google-generativeai``.

    Requires the ``google-generativeai`` package::

        pip install google-generativeai
    """

    def __init__(
        self,
        descriptor: EmbeddingModelDescriptor,
        *,
        api_key: str | None = None,
    ) -> None:
        if not _HAS_GENAI:
            msg = (
                "google-generativeai is required for GeminiEmbedding. "
                "Install it with: pip install google-generativeai"
            )
            raise ImportError(msg)
        self._descriptor = descriptor
        self._api_key = api_key

    async def embed(self, text: str) -> list[float]:
        """Embed a single text string via ``embed_content``."""
        if not self._api_key:
            msg = "Gemini API key is missing. Please set it in settings menu."
            raise MissingCredentialError(msg)

        genai.configure(api_key=self._api_key)
        try:
            response = await genai.embed_content_async(
                model=f"models/{self.model_name}",
                content=text,
            )
        except google_exceptions.ResourceExhausted as exc:
            msg = "Gemini API rate limit exceeded. Please try again later."
            raise RateLimitExceededError(msg) from exc
        except google_exceptions.GoogleAPIError as exc:
            msg = f"Gemini embedding request failed: {exc}"
            raise ProviderError(msg) from exc

        return validated_vector(response.get("embedding"), self.dimensions, self.model_id)

    async def close(self) -> None:
        """No-op; the Gemini SDK manages its own transport."""

    @property
    def dimensions(self) -> int:
        """Return the embedding dimensionality."""
        return self._descriptor.dimension

    @property
    def model_id(self) -> str:
        """Return the catalog model id."""
        return self._descriptor.model_id

    @property
    def model_name(self) -> str:
        """Return the backend model name."""
        return self._descriptor.model
