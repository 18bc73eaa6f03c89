"""Vector search layer — catalog, providers, tables, indexer, engine."""

from vaultsearch.search._engine import SimilaritySearchEngine
from vaultsearch.search.catalog import EMBEDDING_MODELS, EmbeddingModelDescriptor
from vaultsearch.search.chunk_store import ChunkStore
from vaultsearch.search.chunking import split_lines
from vaultsearch.search.indexer import ChunkIndexer
from vaultsearch.search.protocols import EmbeddingProvider
from vaultsearch.search.registry import EmbeddingProviderRegistry
from vaultsearch.search.tables import HNSW_MAX_DIMENSION, IndexStrategy, TableHandle, VectorTableManager
from vaultsearch.search.types import SearchHit, SyncResult

__all__ = [
    "EMBEDDING_MODELS",
    "HNSW_MAX_DIMENSION",
    "ChunkIndexer",
    "ChunkStore",
    "EmbeddingModelDescriptor",
    "EmbeddingProvider",
    "EmbeddingProviderRegistry",
    "IndexStrategy",
    "SearchHit",
    "SimilaritySearchEngine",
    "SyncResult",
    "TableHandle",
    "VectorTableManager",
    "split_lines",
]
