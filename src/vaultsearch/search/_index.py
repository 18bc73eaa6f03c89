"""HnswIndex — in-process usearch HNSW index over one vector table."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import numpy as np
from usearch.index import Index

if TYPE_CHECKING:
    from collections.abc import Sequence


class HnswIndex:
    """Approximate nearest-neighbour index keyed by vector record id.

    Wraps a usearch ``Index`` with the cosine metric.  Keys are the
    integer primary keys of the owning table, so search results map
    straight back to rows.  Thread-safe via :class:`threading.Lock`.
    """

    def __init__(self, dimension: int) -> None:
        self._dimension = dimension
        self._index = Index(ndim=dimension, metric="cos", dtype="f32")
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, key: int, vector: Sequence[float]) -> None:
        """Insert *vector* under *key*, replacing any previous vector."""
        array = np.asarray(vector, dtype=np.float32)
        with self._lock:
            if self._index.contains(key):
                self._index.remove(key)
            self._index.add(key, array)

    def add_many(self, keys: Sequence[int], vectors: np.ndarray) -> None:
        """Bulk-insert rows loaded from the table (used when opening a table)."""
        if len(keys) == 0:
            return
        with self._lock:
            self._index.add(np.asarray(keys, dtype=np.uint64), vectors.astype(np.float32))

    def remove(self, key: int) -> None:
        """Remove *key* if present."""
        with self._lock:
            if self._index.contains(key):
                self._index.remove(key)

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def search(self, vector: Sequence[float], k: int) -> list[tuple[int, float]]:
        """Return up to *k* ``(key, cosine_similarity)`` pairs, best first."""
        size = len(self)
        if size == 0 or k <= 0:
            return []

        query = np.asarray(vector, dtype=np.float32)
        with self._lock:
            matches = self._index.search(query, min(k, size))

        return [
            (int(key), 1.0 - float(distance))
            for key, distance in zip(
                matches.keys.tolist(), matches.distances.tolist(), strict=True
            )
        ]

    def __contains__(self, key: int) -> bool:
        return bool(self._index.contains(key))

    def __len__(self) -> int:
        return len(self._index)

    @property
    def dimension(self) -> int:
        """Return the vector dimension."""
        return self._dimension
