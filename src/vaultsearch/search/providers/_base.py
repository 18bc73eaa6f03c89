"""Shared helpers for embedding provider implementations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from vaultsearch.exceptions import ProviderError

if TYPE_CHECKING:
    from collections.abc import Sequence


def validated_vector(raw: Sequence[Any] | None, dimensions: int, model_id: str) -> list[float]:
    """Convert a backend response vector to ``list[float]`` of the declared length.

    A missing or wrong-length vector is a malformed response and raises
    :class:`ProviderError`.
    """
    if raw is None:
        msg = f"{model_id} returned no embedding"
        raise ProviderError(msg)
    vector = [float(x) for x in raw]
    if len(vector) != dimensions:
        msg = f"{model_id} returned {len(vector)} dimensions, expected {dimensions}"
        raise ProviderError(msg)
    return vector
