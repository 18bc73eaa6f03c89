"""Embedding providers — protocol and implementations."""

from vaultsearch.search.protocols import EmbeddingProvider

__all__ = [
    "EmbeddingProvider",
]

# Optional providers: import-guarded, available only when deps are installed.
try:
    from vaultsearch.search.providers.ollama import OllamaEmbedding
    from vaultsearch.search.providers.openai import OpenAIEmbedding

    __all__ += ["OllamaEmbedding", "OpenAIEmbedding"]
except ImportError:  # pragma: no cover
    pass

try:
    from vaultsearch.search.providers.gemini import GeminiEmbedding

    __all__.append("GeminiEmbedding")
except ImportError:  # pragma: no cover
    pass
