"""ChunkIndexer — incremental sync of a corpus into one model's vector table."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from vaultsearch.exceptions import (
    ConfigurationError,
    DimensionMismatchError,
    ProviderError,
    RateLimitExceededError,
    SyncAbortedError,
)
from vaultsearch.search.chunk_store import ChunkStore
from vaultsearch.search.chunking import split_lines
from vaultsearch.search.types import SyncResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    from vaultsearch.corpus import Corpus, Document
    from vaultsearch.models.vectors import VectorRecordBase
    from vaultsearch.search.protocols import EmbeddingProvider
    from vaultsearch.search.tables import TableHandle, VectorTableManager
    from vaultsearch.search.types import Chunk, ChunkSpan

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Tally:
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    deleted: int = 0
    deferred: int = 0
    failed: int = 0
    embed_calls: int = 0
    halted: bool = False
    writes: set[asyncio.Task[None]] = field(default_factory=set)

    def snapshot(self) -> SyncResult:
        return SyncResult(
            inserted=self.inserted,
            updated=self.updated,
            unchanged=self.unchanged,
            deleted=self.deleted,
            deferred=self.deferred,
            failed=self.failed,
            embed_calls=self.embed_calls,
        )


@dataclass(slots=True)
class _DocumentState:
    document: Document
    aborted: bool = False


@dataclass(frozen=True, slots=True)
class _Job:
    """One chunk to embed. ``record_id`` is None for an insert."""

    state: _DocumentState
    chunk: Chunk
    record_id: int | None


class ChunkIndexer:
    """Brings one model's table in line with a corpus.

    Each pass re-chunks every document and diffs the chunks against the
    stored records by span:

    - no record for the span: embed and insert
    - record older than the document: re-embed and update, or only bump
      the mtime when the chunk text is unchanged
    - record as new as the document: skip
    - record whose span or document is gone: delete

    Embedding calls run concurrently, at most *max_concurrency* at a time.
    A rate-limited chunk is deferred to the next pass; a provider error
    abandons the rest of that document; a configuration error stops the
    whole pass with :class:`SyncAbortedError`.
    """

    def __init__(
        self,
        manager: VectorTableManager,
        handle: TableHandle,
        provider: EmbeddingProvider,
        *,
        chunk_size: int = 1000,
        max_concurrency: int = 4,
    ) -> None:
        if provider.dimensions != handle.dimension:
            msg = (
                f"Provider for {provider.model_id} emits {provider.dimensions} dimensions; "
                f"table {handle.table_name} holds {handle.dimension}"
            )
            raise DimensionMismatchError(msg)
        if max_concurrency <= 0:
            msg = f"max_concurrency must be positive, got {max_concurrency}"
            raise ValueError(msg)

        self._manager = manager
        self._handle = handle
        self._provider = provider
        self._store = ChunkStore(handle)
        self._chunk_size = chunk_size
        self._semaphore = asyncio.Semaphore(max_concurrency)

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------

    async def run(self, corpus: Corpus) -> SyncResult:
        """Run one sync pass over *corpus* and return its counts."""
        tally = _Tally()
        documents = await corpus.list_documents()

        async with self._manager.session() as session:
            stored_paths = await self._store.list_paths(session)
            total = await self._store.count(session)
        if total == 0:
            logger.info("Table for %s is empty; embedding the full corpus", self._handle.model_id)

        current_paths = {d.path for d in documents}
        for path in sorted(stored_paths - current_paths):
            removed = await self._delete_path(path)
            tally.deleted += removed
            logger.debug("Removed %d records for deleted document %s", removed, path)

        jobs: list[_Job] = []
        for document in documents:
            jobs.extend(await self._plan(corpus, document, tally))

        if jobs:
            await self._execute(jobs, tally)

        result = tally.snapshot()
        logger.info(
            "Synced %s: %d inserted, %d updated, %d unchanged, %d deleted, %d deferred, %d failed",
            self._handle.model_id,
            result.inserted,
            result.updated,
            result.unchanged,
            result.deleted,
            result.deferred,
            result.failed,
        )
        return result

    @property
    def handle(self) -> TableHandle:
        return self._handle

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    async def _plan(self, corpus: Corpus, document: Document, tally: _Tally) -> list[_Job]:
        """Diff *document* against its stored records; apply deletions and touches."""
        try:
            content = await corpus.read(document.path)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read %s, leaving its records as they are: %s", document.path, exc)
            return []

        chunks = split_lines(content, self._chunk_size)
        async with self._manager.session() as session:
            records = await self._store.list_records(session, document.path)

        by_span: dict[ChunkSpan, VectorRecordBase] = {}
        orphaned: list[int] = []
        for record in records:
            assert record.id is not None
            if record.span in by_span:
                orphaned.append(record.id)
            else:
                by_span[record.span] = record

        wanted = {chunk.span for chunk in chunks}
        orphaned.extend(r.id for span, r in by_span.items() if span not in wanted and r.id is not None)
        if orphaned:
            tally.deleted += await self._delete_ids(orphaned)

        state = _DocumentState(document)
        jobs: list[_Job] = []
        for chunk in chunks:
            record = by_span.get(chunk.span)
            if record is None:
                jobs.append(_Job(state, chunk, None))
            elif record.mtime >= document.mtime:
                tally.unchanged += 1
            elif record.content == chunk.content:
                assert record.id is not None
                await self._touch(record.id, document.mtime)
                tally.unchanged += 1
            else:
                jobs.append(_Job(state, chunk, record.id))
        return jobs

    # ------------------------------------------------------------------
    # Embedding
    # ------------------------------------------------------------------

    async def _execute(self, jobs: list[_Job], tally: _Tally) -> None:
        tasks = [asyncio.create_task(self._process(job, tally)) for job in jobs]
        try:
            await asyncio.gather(*tasks)
        except ConfigurationError as exc:
            await self._cancel(tasks, tally)
            result = tally.snapshot()
            logger.error(
                "Sync of %s aborted after %d chunks: %s",
                self._handle.model_id,
                result.embedded,
                exc,
                exc_info=True,
            )
            msg = f"Sync of {self._handle.model_id} aborted after {result.embedded} chunks: {exc}"
            raise SyncAbortedError(msg, result=result, reason=exc) from exc
        except BaseException:
            await self._cancel(tasks, tally)
            raise

    async def _process(self, job: _Job, tally: _Tally) -> None:
        path = job.state.document.path
        span = job.chunk.span
        async with self._semaphore:
            if tally.halted:
                return
            if job.state.aborted:
                tally.failed += 1
                return

            tally.embed_calls += 1
            try:
                vector = await self._provider.embed(job.chunk.content)
            except RateLimitExceededError:
                tally.deferred += 1
                logger.warning("Rate limited on %s lines %d-%d; deferred", path, *span)
                return
            except ProviderError as exc:
                job.state.aborted = True
                tally.failed += 1
                logger.warning("Embedding failed for %s, skipping its remaining chunks: %s", path, exc)
                return
            except ConfigurationError:
                tally.halted = True
                raise

            # Shielded so a cancelled pass never leaves a half-applied write.
            # The pass waits for every started write before it returns.
            write = asyncio.create_task(self._write(job, vector, tally))
            tally.writes.add(write)
            write.add_done_callback(tally.writes.discard)
            await asyncio.shield(write)

    async def _write(self, job: _Job, vector: list[float], tally: _Tally) -> None:
        if job.record_id is None:
            await self._insert(job, vector)
            tally.inserted += 1
        elif await self._update(job, job.record_id, vector):
            tally.updated += 1
        else:
            tally.unchanged += 1
            logger.debug(
                "Rejected stale write for %s lines %d-%d", job.state.document.path, *job.chunk.span
            )

    @staticmethod
    async def _cancel(tasks: list[asyncio.Task[None]], tally: _Tally) -> None:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if tally.writes:
            pending = [asyncio.shield(write) for write in tally.writes]
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Writes: one transaction each, index updated after commit
    # ------------------------------------------------------------------

    async def _insert(self, job: _Job, vector: list[float]) -> None:
        async with self._manager.write_lock:
            async with self._manager.session() as session, session.begin():
                record_id = await self._store.insert(
                    session,
                    path=job.state.document.path,
                    mtime=job.state.document.mtime,
                    content=job.chunk.content,
                    embedding=vector,
                    span=job.chunk.span,
                )
            if self._handle.index is not None:
                self._handle.index.add(record_id, vector)

    async def _update(self, job: _Job, record_id: int, vector: list[float]) -> bool:
        async with self._manager.write_lock:
            async with self._manager.session() as session, session.begin():
                written = await self._store.update(
                    session,
                    record_id,
                    mtime=job.state.document.mtime,
                    content=job.chunk.content,
                    embedding=vector,
                )
            if written and self._handle.index is not None:
                self._handle.index.add(record_id, vector)
            return written

    async def _touch(self, record_id: int, mtime: int) -> None:
        async with self._manager.write_lock:
            async with self._manager.session() as session, session.begin():
                await self._store.touch(session, record_id, mtime)

    async def _delete_ids(self, ids: Sequence[int]) -> int:
        async with self._manager.write_lock:
            async with self._manager.session() as session, session.begin():
                count = await self._store.delete_ids(session, ids)
            self._drop_from_index(ids)
        return count

    async def _delete_path(self, path: str) -> int:
        async with self._manager.write_lock:
            async with self._manager.session() as session, session.begin():
                ids = await self._store.delete_path(session, path)
            self._drop_from_index(ids)
        return len(ids)

    def _drop_from_index(self, ids: Sequence[int]) -> None:
        if self._handle.index is None:
            return
        for record_id in ids:
            self._handle.index.remove(record_id)
