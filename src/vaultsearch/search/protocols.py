"""Search layer protocols — async-first interface for embedding providers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Async-first protocol for text-to-vector embedding.

    A provider is bound to one catalog descriptor.  Every successful
    :meth:`embed` call returns a vector of exactly :attr:`dimensions`
    floats.  Failures are raised as
    :class:`~vaultsearch.exceptions.MissingCredentialError`,
    :class:`~vaultsearch.exceptions.MissingEndpointError`,
    :class:`~vaultsearch.exceptions.RateLimitExceededError` or
    :class:`~vaultsearch.exceptions.ProviderError`.  Providers never retry.
    """

    async def embed(self, text: str) -> list[float]:
        """Embed a single text string into a vector."""
        ...

    async def close(self) -> None:
        """Release the underlying client, if any."""
        ...

    @property
    def dimensions(self) -> int:
        """Number of dimensions in the embedding vectors."""
        ...

    @property
    def model_id(self) -> str:
        """Catalog id of the bound model."""
        ...

    @property
    def model_name(self) -> str:
        """Name of the model on the backend."""
        ...
