"""EmbeddingProviderRegistry — model id + credentials to a provider instance."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from vaultsearch.exceptions import UnknownModelError
from vaultsearch.search.catalog import get_descriptor

if TYPE_CHECKING:
    from collections.abc import Callable

    from vaultsearch.config import ProviderCredentials
    from vaultsearch.search.catalog import EmbeddingModelDescriptor
    from vaultsearch.search.protocols import EmbeddingProvider

    ProviderFactory = Callable[[EmbeddingModelDescriptor, ProviderCredentials], EmbeddingProvider]

logger = logging.getLogger(__name__)


def _openai_factory(
    descriptor: EmbeddingModelDescriptor, credentials: ProviderCredentials
) -> EmbeddingProvider:
    from vaultsearch.search.providers.openai import OpenAIEmbedding

    return OpenAIEmbedding(descriptor, api_key=credentials.openai_api_key)


def _gemini_factory(
    descriptor: EmbeddingModelDescriptor, credentials: ProviderCredentials
) -> EmbeddingProvider:
    from vaultsearch.search.providers.gemini import GeminiEmbedding

    return GeminiEmbedding(descriptor, api_key=credentials.gemini_api_key)


def _ollama_factory(
    descriptor: EmbeddingModelDescriptor, credentials: ProviderCredentials
) -> EmbeddingProvider:
    from vaultsearch.search.providers.ollama import OllamaEmbedding

    return OllamaEmbedding(descriptor, base_url=credentials.ollama_base_url)


class EmbeddingProviderRegistry:
    """Resolves catalog model ids to :class:`EmbeddingProvider` instances.

    Each descriptor's ``provider`` tag selects a factory.  Adding a model
    to an existing backend is a catalog entry; adding a backend is one
    :meth:`register` call.

    Resolution is a pure function of its inputs: it builds a provider
    object but opens no connection and does not validate credentials
    (those are checked on the first ``embed`` call).
    """

    def __init__(self) -> None:
        self._factories: dict[str, ProviderFactory] = {
            "openai": _openai_factory,
            "gemini": _gemini_factory,
            "ollama": _ollama_factory,
        }

    def register(self, provider: str, factory: ProviderFactory) -> None:
        """Register (or replace) the factory for a provider tag."""
        self._factories[provider] = factory

    def resolve(self, model_id: str, credentials: ProviderCredentials) -> EmbeddingProvider:
        """Return a provider bound to *model_id*'s descriptor."""
        descriptor = get_descriptor(model_id)
        return self.resolve_descriptor(descriptor, credentials)

    def resolve_descriptor(
        self,
        descriptor: EmbeddingModelDescriptor,
        credentials: ProviderCredentials,
    ) -> EmbeddingProvider:
        """Return a provider for an explicit *descriptor*."""
        factory = self._factories.get(descriptor.provider)
        if factory is None:
            msg = (
                f"No embedding provider registered for {descriptor.provider!r} "
                f"(model {descriptor.model_id!r})"
            )
            raise UnknownModelError(msg)
        logger.debug("Resolved %s via %s provider", descriptor.model_id, descriptor.provider)
        return factory(descriptor, credentials)

    @property
    def providers(self) -> list[str]:
        """Return the registered provider tags."""
        return sorted(self._factories)
