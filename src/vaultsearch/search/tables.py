"""VectorTableManager — one vector table per embedding model."""

from __future__ import annotations

import asyncio
import logging
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from vaultsearch.exceptions import DimensionMismatchError, IndexUnsupportedForDimension
from vaultsearch.models.vectors import VectorTableInfo, table_name_for, vector_model
from vaultsearch.search._index import HnswIndex
from vaultsearch.search.chunk_store import ChunkStore

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy.ext.asyncio import AsyncEngine

    from vaultsearch.models.vectors import VectorRecordBase
    from vaultsearch.search.catalog import EmbeddingModelDescriptor

logger = logging.getLogger(__name__)

HNSW_MAX_DIMENSION = 2000
"""Widest vector that gets an approximate (HNSW) index; wider tables are scanned exactly."""


class IndexStrategy(str, Enum):
    """How similarity queries against a table are answered."""

    HNSW = "hnsw"
    EXACT = "exact"


def index_strategy_for(dimension: int) -> IndexStrategy:
    """Return the index strategy for a table of *dimension*-wide vectors."""
    if dimension <= HNSW_MAX_DIMENSION:
        return IndexStrategy.HNSW
    return IndexStrategy.EXACT


@dataclass(slots=True)
class TableHandle:
    """A model's vector table, as opened by :class:`VectorTableManager`.

    Attributes:
        descriptor: The model the table belongs to.
        table_name: Physical table name.
        model: Concrete SQLModel record class for the table.
        strategy: Similarity index strategy.
        index: The HNSW index (``None`` for :attr:`IndexStrategy.EXACT`).
    """

    descriptor: EmbeddingModelDescriptor
    table_name: str
    model: type[VectorRecordBase]
    strategy: IndexStrategy
    index: HnswIndex | None = None

    @property
    def model_id(self) -> str:
        return self.descriptor.model_id

    @property
    def dimension(self) -> int:
        return self.descriptor.dimension

    def check_vector(self, vector: Sequence[float]) -> None:
        """Raise :class:`DimensionMismatchError` unless *vector* fits this table."""
        if len(vector) != self.dimension:
            msg = (
                f"Vector of length {len(vector)} does not fit table {self.table_name} "
                f"({self.model_id}, {self.dimension} dimensions)"
            )
            raise DimensionMismatchError(msg)


class VectorTableManager:
    """Owns the per-model vector tables of one database.

    Tables are created on first use, registered in
    ``vaultsearch_vector_tables``, and kept in a dict keyed by model id.
    :meth:`ensure_table` is idempotent.  Writes to any table go through
    :attr:`write_lock`, one short transaction at a time.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self._tables: dict[str, TableHandle] = {}
        self._ensure_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        self._catalog_ready = False

    # ------------------------------------------------------------------
    # Table lifecycle
    # ------------------------------------------------------------------

    async def ensure_table(self, descriptor: EmbeddingModelDescriptor) -> TableHandle:
        """Create (or open) the table for *descriptor* and return its handle."""
        async with self._ensure_lock:
            handle = self._tables.get(descriptor.model_id)
            if handle is not None:
                if handle.dimension != descriptor.dimension:
                    raise self._mismatch(descriptor, handle.dimension)
                return handle

            await self._ensure_catalog()
            async with self._session_factory() as session:
                info = await session.get(VectorTableInfo, descriptor.model_id)
            if info is not None and info.dimension != descriptor.dimension:
                raise self._mismatch(descriptor, info.dimension)

            table_name = info.table_name if info is not None else table_name_for(descriptor.model_id)
            strategy = index_strategy_for(descriptor.dimension)
            model = vector_model(table_name)

            async with self._write_lock:
                async with self._engine.begin() as conn:
                    await conn.run_sync(
                        lambda c: model.__table__.create(c, checkfirst=True)  # type: ignore[attr-defined]
                    )
                if info is None:
                    async with self._session_factory() as session, session.begin():
                        session.add(
                            VectorTableInfo(
                                model_id=descriptor.model_id,
                                table_name=table_name,
                                dimension=descriptor.dimension,
                                index_strategy=strategy.value,
                            )
                        )
                    logger.info(
                        "Created vector table %s for %s (%d dimensions)",
                        table_name,
                        descriptor.model_id,
                        descriptor.dimension,
                    )

            handle = TableHandle(
                descriptor=descriptor,
                table_name=table_name,
                model=model,
                strategy=strategy,
            )
            if strategy is IndexStrategy.HNSW:
                handle.index = await self._build_index(handle)
            else:
                logger.info(
                    "%s has %d dimensions (> %d); similarity queries use an exact scan",
                    descriptor.model_id,
                    descriptor.dimension,
                    HNSW_MAX_DIMENSION,
                )
                warnings.warn(
                    f"{descriptor.model_id} is wider than {HNSW_MAX_DIMENSION} dimensions; "
                    "no approximate index is built",
                    IndexUnsupportedForDimension,
                    stacklevel=2,
                )

            self._tables[descriptor.model_id] = handle
            return handle

    async def ensure_all(self, descriptors: Iterable[EmbeddingModelDescriptor]) -> dict[str, TableHandle]:
        """Ensure a table for every descriptor, in order. Returns handles by model id."""
        handles: dict[str, TableHandle] = {}
        for descriptor in descriptors:
            handles[descriptor.model_id] = await self.ensure_table(descriptor)
        return handles

    def get(self, model_id: str) -> TableHandle | None:
        """Return the already-opened handle for *model_id*, if any."""
        return self._tables.get(model_id)

    async def drop_table(self, model_id: str) -> bool:
        """Drop *model_id*'s table and catalog row. Returns False if it never existed."""
        async with self._ensure_lock:
            await self._ensure_catalog()
            handle = self._tables.pop(model_id, None)
            async with self._session_factory() as session:
                info = await session.get(VectorTableInfo, model_id)
            if info is None and handle is None:
                return False

            table_name = info.table_name if info is not None else handle.table_name  # type: ignore[union-attr]
            model = vector_model(table_name)
            async with self._write_lock:
                async with self._engine.begin() as conn:
                    await conn.run_sync(
                        lambda c: model.__table__.drop(c, checkfirst=True)  # type: ignore[attr-defined]
                    )
                if info is not None:
                    async with self._session_factory() as session, session.begin():
                        row = await session.get(VectorTableInfo, model_id)
                        if row is not None:
                            await session.delete(row)
            logger.info("Dropped vector table %s for %s", table_name, model_id)
            return True

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    async def list_tables(self) -> list[VectorTableInfo]:
        """Return catalog rows for every table in the database."""
        await self._ensure_catalog()
        async with self._session_factory() as session:
            result = await session.execute(
                select(VectorTableInfo).order_by(VectorTableInfo.created_at)  # type: ignore[arg-type]
            )
            return list(result.scalars().all())

    async def row_count(self, model_id: str) -> int:
        """Return the number of records in *model_id*'s table (0 if it does not exist)."""
        handle = self._tables.get(model_id)
        if handle is not None:
            async with self._session_factory() as session:
                return await ChunkStore(handle).count(session)

        await self._ensure_catalog()
        async with self._session_factory() as session:
            info = await session.get(VectorTableInfo, model_id)
            if info is None:
                return 0
            model = vector_model(info.table_name)
            result = await session.execute(select(func.count()).select_from(model))
            return int(result.scalar_one())

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def session(self) -> AsyncSession:
        """Return a new session bound to the manager's engine."""
        return self._session_factory()

    @property
    def write_lock(self) -> asyncio.Lock:
        """Lock serializing writes across all tables."""
        return self._write_lock

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _ensure_catalog(self) -> None:
        if self._catalog_ready:
            return
        async with self._engine.begin() as conn:
            await conn.run_sync(
                lambda c: VectorTableInfo.__table__.create(c, checkfirst=True)  # type: ignore[attr-defined]
            )
        self._catalog_ready = True

    async def _build_index(self, handle: TableHandle) -> HnswIndex:
        index = HnswIndex(handle.dimension)
        async with self._session_factory() as session:
            ids, matrix = await ChunkStore(handle).load_vectors(session)
        index.add_many(ids, matrix)
        if ids:
            logger.debug("Loaded %d vectors into HNSW index for %s", len(ids), handle.model_id)
        return index

    @staticmethod
    def _mismatch(descriptor: EmbeddingModelDescriptor, existing: int) -> DimensionMismatchError:
        msg = (
            f"Table for {descriptor.model_id!r} holds {existing}-dimension vectors, "
            f"but the model declares {descriptor.dimension}"
        )
        return DimensionMismatchError(msg)
