"""ChunkStore — stateless vector record CRUD for one model's table."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from sqlalchemy import delete, func, update
from sqlmodel import select

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from vaultsearch.models.vectors import VectorRecordBase
    from vaultsearch.search.tables import TableHandle
    from vaultsearch.search.types import ChunkSpan


class ChunkStore:
    """Stateless helpers for vector record CRUD.

    Receives the table handle at construction so every statement targets
    that model's table.  Never creates, commits, or closes sessions;
    callers are responsible for session lifecycle.
    """

    def __init__(self, handle: TableHandle) -> None:
        self._handle = handle
        self._model = handle.model

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_records(self, session: AsyncSession, path: str) -> list[VectorRecordBase]:
        """List all records for *path*, ordered by start line then id."""
        model = self._model
        result = await session.execute(
            select(model)
            .where(model.path == path)
            .order_by(model.start_line, model.id)  # type: ignore[arg-type]
        )
        return list(result.scalars().all())

    async def list_paths(self, session: AsyncSession) -> set[str]:
        """Return every distinct path with at least one record."""
        model = self._model
        result = await session.execute(select(model.path).distinct())
        return set(result.scalars().all())

    async def count(self, session: AsyncSession) -> int:
        """Return the number of records in the table."""
        result = await session.execute(select(func.count()).select_from(self._model))
        return int(result.scalar_one())

    async def fetch(self, session: AsyncSession, ids: Sequence[int]) -> dict[int, VectorRecordBase]:
        """Fetch records by id. Missing ids are absent from the result."""
        if not ids:
            return {}
        model = self._model
        result = await session.execute(select(model).where(model.id.in_(list(ids))))  # type: ignore[union-attr]
        return {row.id: row for row in result.scalars().all() if row.id is not None}

    async def load_vectors(self, session: AsyncSession) -> tuple[list[int], np.ndarray]:
        """Return all ``(ids, matrix)`` in id order; one matrix row per record."""
        model = self._model
        result = await session.execute(
            select(model.id, model.embedding).order_by(model.id)  # type: ignore[arg-type]
        )
        rows = result.all()
        if not rows:
            return [], np.empty((0, self._handle.dimension), dtype=np.float32)
        ids = [int(row[0]) for row in rows]
        matrix = np.asarray([row[1] for row in rows], dtype=np.float32)
        return ids, matrix

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert(
        self,
        session: AsyncSession,
        *,
        path: str,
        mtime: int,
        content: str,
        embedding: Sequence[float],
        span: ChunkSpan,
    ) -> int:
        """Insert a new record and return its id."""
        self._handle.check_vector(embedding)
        record = self._model(
            path=path,
            mtime=mtime,
            content=content,
            embedding=list(embedding),
            start_line=span.start_line,
            end_line=span.end_line,
        )
        session.add(record)
        await session.flush()
        assert record.id is not None
        return record.id

    async def update(
        self,
        session: AsyncSession,
        record_id: int,
        *,
        mtime: int,
        content: str,
        embedding: Sequence[float],
    ) -> bool:
        """Overwrite vector, content and mtime in one statement.

        The write is rejected (returns False) when the stored mtime is
        newer than *mtime*.
        """
        self._handle.check_vector(embedding)
        model = self._model
        result = await session.execute(
            update(model)
            .where(model.id == record_id, model.mtime <= mtime)  # type: ignore[arg-type]
            .values(mtime=mtime, content=content, embedding=list(embedding))
        )
        return bool(result.rowcount)  # type: ignore[attr-defined]

    async def touch(self, session: AsyncSession, record_id: int, mtime: int) -> bool:
        """Advance a record's mtime without touching its vector."""
        model = self._model
        result = await session.execute(
            update(model)
            .where(model.id == record_id, model.mtime <= mtime)  # type: ignore[arg-type]
            .values(mtime=mtime)
        )
        return bool(result.rowcount)  # type: ignore[attr-defined]

    async def delete_ids(self, session: AsyncSession, ids: Sequence[int]) -> int:
        """Delete records by id. Returns count deleted."""
        if not ids:
            return 0
        model = self._model
        result = await session.execute(delete(model).where(model.id.in_(list(ids))))  # type: ignore[union-attr]
        return int(result.rowcount)  # type: ignore[attr-defined]

    async def delete_path(self, session: AsyncSession, path: str) -> list[int]:
        """Delete every record for *path*. Returns the deleted ids."""
        model = self._model
        result = await session.execute(select(model.id).where(model.path == path))
        ids = [int(i) for i in result.scalars().all()]
        await self.delete_ids(session, ids)
        return ids
