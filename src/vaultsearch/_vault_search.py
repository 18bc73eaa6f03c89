"""VaultSearch — host-facing async API: search, sync, model switching."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine

from vaultsearch.config import VaultSearchConfig
from vaultsearch.exceptions import ConcurrentSyncInProgressError, VaultSearchError
from vaultsearch.search._engine import SimilaritySearchEngine
from vaultsearch.search.catalog import get_descriptor
from vaultsearch.search.indexer import ChunkIndexer
from vaultsearch.search.registry import EmbeddingProviderRegistry
from vaultsearch.search.tables import VectorTableManager

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from vaultsearch.config import ProviderCredentials
    from vaultsearch.corpus import Corpus
    from vaultsearch.search.protocols import EmbeddingProvider
    from vaultsearch.search.tables import TableHandle
    from vaultsearch.search.types import SearchHit, SyncResult

logger = logging.getLogger(__name__)


class VaultSearch:
    """Async facade wiring corpus, provider registry, vector tables, and search.

    One instance serves one corpus.  At most one sync pass runs at a time;
    concurrent :meth:`sync` calls join it.  Switching the active model
    waits for (or cancels) the running pass before the target changes.

    Usage::

        async with VaultSearch(DirectoryCorpus("~/notes"), config=config) as vs:
            await vs.sync()
            hits = await vs.search("meeting notes about pricing", k=5)
    """

    def __init__(
        self,
        corpus: Corpus,
        *,
        config: VaultSearchConfig | None = None,
        engine: AsyncEngine | None = None,
        registry: EmbeddingProviderRegistry | None = None,
    ) -> None:
        self._corpus = corpus
        self._config = config or VaultSearchConfig()
        self._owns_engine = engine is None
        self._engine = engine
        self._registry = registry or EmbeddingProviderRegistry()

        self._manager: VectorTableManager | None = None
        self._model_id = self._config.embedding_model_id
        self._provider: EmbeddingProvider | None = None
        self._handle: TableHandle | None = None

        self._sync_task: asyncio.Task[SyncResult] | None = None
        self._switch_lock = asyncio.Lock()
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """Create the engine (if not supplied) and open the active model's table."""
        if self._manager is not None:
            return
        if self._engine is None:
            self._engine = self._create_engine()
        self._manager = VectorTableManager(self._engine)
        await self._activate(self._model_id)

    async def close(self) -> None:
        """Cancel any running sync, close the provider, dispose an owned engine."""
        if self._closed:
            return
        self._closed = True
        await self.cancel_sync()
        if self._provider is not None:
            await self._provider.close()
            self._provider = None
        if self._owns_engine and self._engine is not None:
            await self._engine.dispose()

    async def __aenter__(self) -> VaultSearch:
        await self.open()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search(self, text: str, k: int = 10) -> list[SearchHit]:
        """Embed *text* with the active provider and return the *k* nearest chunks.

        Provider errors propagate unchanged; a rate limit here is for the
        caller to retry.
        """
        provider, handle = self._require_active()
        if k <= 0:
            return []
        vector = await provider.embed(text)
        return await SimilaritySearchEngine(self._require_manager(), handle).search(vector, k)

    async def search_vector(self, vector: list[float], k: int = 10) -> list[SearchHit]:
        """Search the active table with a precomputed query vector."""
        _, handle = self._require_active()
        return await SimilaritySearchEngine(self._require_manager(), handle).search(vector, k)

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def sync(self, *, join: bool = True) -> SyncResult:
        """Run a sync pass for the active model, or join the one in flight.

        With ``join=False`` a running pass raises
        :class:`ConcurrentSyncInProgressError` instead.
        """
        task = self._sync_task
        if task is not None and not task.done():
            if not join:
                msg = f"A sync of {self._model_id} is already running"
                raise ConcurrentSyncInProgressError(msg)
            logger.debug("Joining in-flight sync of %s", self._model_id)
        else:
            # A model switch in progress finishes before a new pass starts.
            async with self._switch_lock:
                task = self._sync_task
                if task is None or task.done():
                    task = self._start_sync()
        # Shielded: one waiter being cancelled must not cancel the shared pass.
        return await asyncio.shield(task)

    async def cancel_sync(self) -> None:
        """Cancel the in-flight sync pass, if any, and wait for it to unwind."""
        task = self._sync_task
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError, VaultSearchError):
            await task
        logger.info("Cancelled sync of %s", self._model_id)

    @property
    def is_syncing(self) -> bool:
        return self._sync_task is not None and not self._sync_task.done()

    # ------------------------------------------------------------------
    # Model and credentials
    # ------------------------------------------------------------------

    async def switch_model(self, model_id: str, *, cancel_running: bool = False) -> None:
        """Make *model_id* the active model.

        A running pass is awaited, or cancelled when *cancel_running* is
        set, so writes for two models never interleave.  The next
        :meth:`sync` fully rebuilds the new model's table if it is empty.
        Tables of other models are retained.
        """
        get_descriptor(model_id)
        async with self._switch_lock:
            await self._settle_sync(cancel_running)
            if model_id == self._model_id and self._handle is not None:
                return
            await self._activate(model_id)
        logger.info("Active embedding model is now %s", model_id)

    async def set_credentials(self, credentials: ProviderCredentials, *, cancel_running: bool = False) -> None:
        """Replace provider credentials; the active provider is rebuilt."""
        async with self._switch_lock:
            await self._settle_sync(cancel_running)
            self._config = self._config.with_credentials(credentials)
            await self._activate(self._model_id)

    async def purge_model(self, model_id: str) -> bool:
        """Drop a non-active model's table. Returns False if it had none."""
        async with self._switch_lock:
            if model_id == self._model_id:
                msg = f"Cannot purge {model_id}: it is the active embedding model"
                raise ValueError(msg)
            return await self._require_manager().drop_table(model_id)

    async def stats(self) -> dict[str, int]:
        """Return the record count of every vector table, keyed by model id."""
        manager = self._require_manager()
        return {info.model_id: await manager.row_count(info.model_id) for info in await manager.list_tables()}

    @property
    def active_model_id(self) -> str:
        return self._model_id

    @property
    def config(self) -> VaultSearchConfig:
        return self._config

    @property
    def tables(self) -> VectorTableManager:
        return self._require_manager()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _create_engine(self) -> AsyncEngine:
        url = make_url(self._config.database_url)
        if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
            Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
        return create_async_engine(url, echo=self._config.echo_sql)

    async def _activate(self, model_id: str) -> None:
        """Resolve the provider for *model_id* and open its table."""
        descriptor = get_descriptor(model_id)
        provider = self._registry.resolve_descriptor(descriptor, self._config.credentials)
        handle = await self._require_manager().ensure_table(descriptor)

        if self._provider is not None:
            await self._provider.close()
        self._provider = provider
        self._handle = handle
        self._model_id = model_id

    def _start_sync(self) -> asyncio.Task[SyncResult]:
        provider, handle = self._require_active()
        indexer = ChunkIndexer(
            self._require_manager(),
            handle,
            provider,
            chunk_size=self._config.chunk_size,
            max_concurrency=self._config.max_concurrency,
        )
        logger.info("Starting sync of %s", handle.model_id)
        task = asyncio.create_task(indexer.run(self._corpus), name=f"vaultsearch-sync-{handle.model_id}")
        task.add_done_callback(self._on_sync_done)
        self._sync_task = task
        return task

    @staticmethod
    def _on_sync_done(task: asyncio.Task[SyncResult]) -> None:
        # Retrieve the outcome so an unawaited failure is not reported as lost.
        if not task.cancelled():
            task.exception()

    async def _settle_sync(self, cancel_running: bool) -> None:
        task = self._sync_task
        if task is None or task.done():
            return
        if cancel_running:
            await self.cancel_sync()
            return
        logger.info("Waiting for the running sync of %s before switching", self._model_id)
        with contextlib.suppress(asyncio.CancelledError, VaultSearchError):
            await asyncio.shield(task)

    def _require_manager(self) -> VectorTableManager:
        if self._manager is None:
            msg = "VaultSearch is not open; call open() or use 'async with'"
            raise RuntimeError(msg)
        return self._manager

    def _require_active(self) -> tuple[EmbeddingProvider, TableHandle]:
        if self._provider is None or self._handle is None:
            msg = "VaultSearch is not open; call open() or use 'async with'"
            raise RuntimeError(msg)
        return self._provider, self._handle
