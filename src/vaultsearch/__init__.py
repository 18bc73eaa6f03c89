"""vaultsearch: semantic search over a note vault.

Per-model vector tables, pluggable embedding providers, incremental
chunk sync, and top-k similarity search.
"""

__version__ = "0.1.0"

from vaultsearch._vault_search import VaultSearch
from vaultsearch.config import ProviderCredentials, VaultSearchConfig
from vaultsearch.corpus import Corpus, DirectoryCorpus, Document, MemoryCorpus
from vaultsearch.exceptions import (
    ConcurrentSyncInProgressError,
    ConfigurationError,
    DimensionMismatchError,
    EmbeddingError,
    IndexUnsupportedForDimension,
    MissingCredentialError,
    MissingEndpointError,
    ProviderError,
    RateLimitExceededError,
    SyncAbortedError,
    UnknownModelError,
    VaultSearchError,
)
from vaultsearch.search._engine import SimilaritySearchEngine
from vaultsearch.search.catalog import EMBEDDING_MODELS, EmbeddingModelDescriptor, get_descriptor
from vaultsearch.search.indexer import ChunkIndexer
from vaultsearch.search.protocols import EmbeddingProvider
from vaultsearch.search.registry import EmbeddingProviderRegistry
from vaultsearch.search.tables import IndexStrategy, TableHandle, VectorTableManager
from vaultsearch.search.types import Chunk, ChunkSpan, SearchHit, SyncResult

__all__ = [
    "EMBEDDING_MODELS",
    "Chunk",
    "ChunkIndexer",
    "ChunkSpan",
    "ConcurrentSyncInProgressError",
    "ConfigurationError",
    "Corpus",
    "DimensionMismatchError",
    "DirectoryCorpus",
    "Document",
    "EmbeddingError",
    "EmbeddingModelDescriptor",
    "EmbeddingProvider",
    "EmbeddingProviderRegistry",
    "IndexStrategy",
    "IndexUnsupportedForDimension",
    "MemoryCorpus",
    "MissingCredentialError",
    "MissingEndpointError",
    "ProviderCredentials",
    "ProviderError",
    "RateLimitExceededError",
    "SearchHit",
    "SimilaritySearchEngine",
    "SyncAbortedError",
    "SyncResult",
    "TableHandle",
    "UnknownModelError",
    "VaultSearch",
    "VaultSearchConfig",
    "VaultSearchError",
    "VectorTableManager",
    "__version__",
    "get_descriptor",
]
