"""OllamaEmbedding — self-hosted models through Ollama's OpenAI-compatible API."""

from __future__ import annotations

from typing import TYPE_CHECKING

from vaultsearch.exceptions import MissingEndpointError
from vaultsearch.search.providers.openai import OpenAIEmbedding

if TYPE_CHECKING:
    from vaultsearch.search.catalog import EmbeddingModelDescriptor

# Ollama ignores the key, but the OpenAI client refuses to start without one.
_PLACEHOLDER_API_KEY = "ollama"


class OllamaEmbedding(OpenAIEmbedding):
    """Embedding provider for a local or remote Ollama server.

    Talks to ``{base_url}/v1/embeddings``.  Needs no API key; a missing
    *base_url* raises :class:`MissingEndpointError` before any request.
    """

    _backend_label = "Ollama"

    def __init__(
        self,
        descriptor: EmbeddingModelDescriptor,
        *,
        base_url: str | None = None,
        timeout: float = 60.0,
    ) -> None:
        super().__init__(
            descriptor,
            api_key=_PLACEHOLDER_API_KEY,
            base_url=base_url,
            timeout=timeout,
        )

    def _check_configuration(self) -> None:
        if not self._base_url:
            msg = "Ollama Address is missing. Please set it in settings menu."
            raise MissingEndpointError(msg)

    def _client_base_url(self) -> str | None:
        assert self._base_url is not None
        return f"{self._base_url.rstrip('/')}/v1"
