"""OpenAIEmbedding — async embedding provider backed by OpenAI's API."""

from __future__ import annotations

from typing import TYPE_CHECKING

from vaultsearch.exceptions import (
    MissingCredentialError,
    ProviderError,
    RateLimitExceededError,
)
from vaultsearch.search.providers._base import validated_vector

try:
    import openai
    from openai import AsyncOpenAI

    _HAS_OPENAI = True
except ImportError:  # pragma: no cover
    _HAS_OPENAI = False

if TYPE_CHECKING:
    from openai import AsyncOpenAI as AsyncOpenAIType

    from vaultsearch.search.catalog import EmbeddingModelDescriptor

# 429 responses with this code mean the account is out of credit, not throttled.
_QUOTA_ERROR_CODE = "insufficient_quota"


class OpenAIEmbedding:
    """Async embedding provider backed by the OpenAI Embeddings API.

    The ``AsyncOpenAI`` client is created lazily on the first :meth:`embed`
    call, after the credential check, so resolving a provider never touches
    the network.  The client is built with ``max_retries=0``: retry policy
    belongs to the caller.

    Requires the ``openai`` package::

        pip install openai
    """

    _backend_label = "OpenAI"

    def __init__(
        self,
        descriptor: EmbeddingModelDescriptor,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 60.0,
    ) -> None:
        if not _HAS_OPENAI:
            msg = (
                "openai is required for OpenAIEmbedding. "
                "Install it with: pip install openai"
            )
            raise ImportError(msg)

        self._descriptor = descriptor
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._client: AsyncOpenAIType | None = None

    # ------------------------------------------------------------------
    # EmbeddingProvider protocol
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> list[float]:
        """Embed a single text string via the embeddings endpoint."""
        client = self._get_client()
        try:
            response = await client.embeddings.create(input=text, model=self.model_name)
        except openai.RateLimitError as exc:
            if exc.code == _QUOTA_ERROR_CODE:
                msg = f"{self._backend_label} API quota exhausted: {exc}"
                raise ProviderError(msg) from exc
            msg = f"{self._backend_label} API rate limit exceeded. Please try again later."
            raise RateLimitExceededError(msg) from exc
        except openai.OpenAIError as exc:
            msg = f"{self._backend_label} embedding request failed: {exc}"
            raise ProviderError(msg) from exc

        if not response.data:
            msg = f"{self.model_id} returned an empty response"
            raise ProviderError(msg)
        return validated_vector(response.data[0].embedding, self.dimensions, self.model_id)

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._client is not None:
            await self._client.close()
            self._client = None

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

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _check_configuration(self) -> None:
        if not self._api_key:
            msg = "OpenAI API key is missing. Please set it in settings menu."
            raise MissingCredentialError(msg)

    def _client_base_url(self) -> str | None:
        return self._base_url

    def _get_client(self) -> AsyncOpenAIType:
        self._check_configuration()
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._client_base_url(),
                max_retries=0,
                timeout=self._timeout,
            )
        return self._client
