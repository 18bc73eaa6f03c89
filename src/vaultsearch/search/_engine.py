"""SimilaritySearchEngine — top-k cosine search over one model's vector table."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from vaultsearch.search.chunk_store import ChunkStore
from vaultsearch.search.types import SearchHit

if TYPE_CHECKING:
    from collections.abc import Sequence

    from vaultsearch.search.tables import TableHandle, VectorTableManager

logger = logging.getLogger(__name__)

_TIE_TOLERANCE = 1e-6


def cosine_scores(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of *query* against every row of *matrix*.

    Rows (or a query) with zero norm score 0.
    """
    query64 = query.astype(np.float64)
    matrix64 = matrix.astype(np.float64)
    norms = np.linalg.norm(matrix64, axis=1) * np.linalg.norm(query64)
    dots = matrix64 @ query64
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(norms > 0, dots / norms, 0.0)


class SimilaritySearchEngine:
    """Answers nearest-neighbour queries against a :class:`TableHandle`.

    Tables with an HNSW index are searched approximately through it;
    wider tables are scanned exactly, as is any query whose scores tie
    across the k-th rank.  Either way the results are ordered
    by descending score, ties broken by ascending record id.
    """

    def __init__(self, manager: VectorTableManager, handle: TableHandle) -> None:
        self._manager = manager
        self._handle = handle
        self._store = ChunkStore(handle)

    async def search(self, query_vector: Sequence[float], k: int = 10) -> list[SearchHit]:
        """Return up to *k* hits for *query_vector*, most similar first."""
        self._handle.check_vector(query_vector)
        if k <= 0:
            return []

        query = np.asarray(query_vector, dtype=np.float32)
        index = self._handle.index
        if index is not None and np.linalg.norm(query) > 0:
            hits = await self._search_index(query, k)
        else:
            hits = await self._search_exact(query, k)

        hits.sort(key=lambda h: (-h.score, h.record.id))
        return hits[:k]

    @property
    def handle(self) -> TableHandle:
        return self._handle

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _search_index(self, query: np.ndarray, k: int) -> list[SearchHit]:
        assert self._handle.index is not None
        # One extra candidate shows whether a tie crosses the cutoff.
        candidates = self._handle.index.search(query, k + 1)
        if not candidates:
            return []
        if len(candidates) > k and candidates[k][1] >= candidates[k - 1][1] - _TIE_TOLERANCE:
            # The graph returns an arbitrary subset of tied keys.
            logger.debug("Score tie at rank %d in %s; scanning exactly", k, self._handle.table_name)
            return await self._search_exact(query, k)
        async with self._manager.session() as session:
            rows = await self._store.fetch(session, [key for key, _ in candidates[:k]])
        return [
            SearchHit(record=rows[key], score=score) for key, score in candidates[:k] if key in rows
        ]

    async def _search_exact(self, query: np.ndarray, k: int) -> list[SearchHit]:
        async with self._manager.session() as session:
            ids, matrix = await self._store.load_vectors(session)
            if not ids:
                return []
            scores = cosine_scores(query, matrix)
            # lexsort: last key is primary, so score descending then id ascending
            order = np.lexsort((np.asarray(ids), -scores))[:k]
            top = [(ids[i], float(scores[i])) for i in order]
            rows = await self._store.fetch(session, [record_id for record_id, _ in top])
        logger.debug("Exact scan of %d vectors in %s", len(ids), self._handle.table_name)
        return [SearchHit(record=rows[rid], score=score) for rid, score in top if rid in rows]
