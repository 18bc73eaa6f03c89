"""Embedding model catalog — static descriptors keyed by model id."""

from __future__ import annotations

from dataclasses import dataclass

from vaultsearch.exceptions import UnknownModelError


@dataclass(frozen=True, slots=True)
class EmbeddingModelDescriptor:
    """Static metadata for one embedding model.

    Attributes:
        model_id: Globally unique id, ``"<provider>/<model>"``.
        dimension: Length of every vector the model emits.
        provider: Variant tag selecting the provider implementation.
        model: Model name sent to the backend.
    """

    model_id: str
    dimension: int
    provider: str
    model: str

    def __post_init__(self) -> None:
        if self.dimension <= 0:
            msg = f"dimension must be positive for {self.model_id!r}, got {self.dimension}"
            raise ValueError(msg)


EMBEDDING_MODELS: tuple[EmbeddingModelDescriptor, ...] = (
    EmbeddingModelDescriptor(
        model_id="openai/text-embedding-3-small",
        dimension=1536,
        provider="openai",
        model="text-embedding-3-small",
    ),
    EmbeddingModelDescriptor(
        model_id="openai/text-embedding-3-large",
        dimension=3072,
        provider="openai",
        model="text-embedding-3-large",
    ),
    EmbeddingModelDescriptor(
        model_id="gemini/text-embedding-004",
        dimension=768,
        provider="gemini",
        model="text-embedding-004",
    ),
    EmbeddingModelDescriptor(
        model_id="ollama/nomic-embed-text",
        dimension=768,
        provider="ollama",
        model="nomic-embed-text",
    ),
    EmbeddingModelDescriptor(
        model_id="ollama/mxbai-embed-large",
        dimension=1024,
        provider="ollama",
        model="mxbai-embed-large",
    ),
    EmbeddingModelDescriptor(
        model_id="ollama/bge-m3",
        dimension=1024,
        provider="ollama",
        model="bge-m3",
    ),
)

_BY_ID: dict[str, EmbeddingModelDescriptor] = {d.model_id: d for d in EMBEDDING_MODELS}


def get_descriptor(model_id: str) -> EmbeddingModelDescriptor:
    """Return the catalog descriptor for *model_id*."""
    descriptor = _BY_ID.get(model_id)
    if descriptor is None:
        msg = f"Unknown embedding model {model_id!r}"
        raise UnknownModelError(msg)
    return descriptor


def model_ids() -> list[str]:
    """Return every catalog model id, in catalog order."""
    return [d.model_id for d in EMBEDDING_MODELS]
