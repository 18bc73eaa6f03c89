"""Exception hierarchy for vaultsearch.

Callers branch on the exception class, never on message text.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vaultsearch.search.types import SyncResult


class VaultSearchError(Exception):
    """Base exception for all vaultsearch errors."""


# ------------------------------------------------------------------
# Configuration: fatal, never retried automatically
# ------------------------------------------------------------------


class ConfigurationError(VaultSearchError):
    """Raised when the operation cannot succeed until configuration changes."""


class UnknownModelError(ConfigurationError):
    """Raised when a model id is not in the embedding model catalog."""


class MissingCredentialError(ConfigurationError):
    """Raised when a provider's API key is not set."""


class MissingEndpointError(ConfigurationError):
    """Raised when a self-hosted provider's base URL is not set."""


class DimensionMismatchError(ConfigurationError):
    """Raised when a vector length disagrees with the table's model dimension."""


# ------------------------------------------------------------------
# Embedding backend failures
# ------------------------------------------------------------------


class EmbeddingError(VaultSearchError):
    """Base class for failures reported by an embedding backend."""


class RateLimitExceededError(EmbeddingError):
    """Raised when the backend throttled the request. Retry later."""


class ProviderError(EmbeddingError):
    """Raised on any other backend failure (network, auth, malformed response)."""


# ------------------------------------------------------------------
# Sync passes
# ------------------------------------------------------------------


class ConcurrentSyncInProgressError(VaultSearchError):
    """Raised when a sync is requested without joining the running pass."""


class SyncAbortedError(VaultSearchError):
    """Raised when a configuration error stops a sync pass part-way.

    Attributes:
        result: Counts accumulated before the pass stopped.
        reason: The configuration error that stopped the pass.
    """

    def __init__(self, message: str, *, result: SyncResult, reason: Exception) -> None:
        super().__init__(message)
        self.result = result
        self.reason = reason


# ------------------------------------------------------------------
# Warnings
# ------------------------------------------------------------------


class IndexUnsupportedForDimension(UserWarning):
    """Emitted when a model is too wide for the approximate index.

    Informational: similarity queries against the table fall back to an
    exact scan.
    """
