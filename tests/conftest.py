"""Shared fixtures for vaultsearch tests."""

from __future__ import annotations

import asyncio
import hashlib
import math
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from vaultsearch.search.catalog import EmbeddingModelDescriptor
from vaultsearch.search.tables import VectorTableManager

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from sqlalchemy.ext.asyncio import AsyncEngine

FAKE_DIM = 32

FAKE_MODEL = EmbeddingModelDescriptor(
    model_id="fake/hash-32",
    dimension=FAKE_DIM,
    provider="fake",
    model="hash-32",
)

WIDE_MODEL = EmbeddingModelDescriptor(
    model_id="fake/hash-2048",
    dimension=2048,
    provider="fake",
    model="hash-2048",
)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll *predicate* on the event loop until it holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.001)


def hash_vector(text: str, dimension: int = FAKE_DIM) -> list[float]:
    """Deterministic unit vector derived from *text*."""
    digest = hashlib.shake_256(text.encode()).digest(dimension)
    raw = [float(b) - 127.5 for b in digest]
    norm = math.sqrt(sum(x * x for x in raw))
    return [x / norm for x in raw]


class FakeEmbedding:
    """Deterministic async embedding provider for testing.

    *failures* maps a substring to the exception raised when a text
    containing it is embedded.  Every call is recorded in ``calls``.
    """

    def __init__(
        self,
        descriptor: EmbeddingModelDescriptor = FAKE_MODEL,
        *,
        failures: dict[str, BaseException] | None = None,
        delay: float = 0.0,
    ) -> None:
        self._descriptor = descriptor
        self.failures = dict(failures or {})
        self.delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self.closed = False

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            for needle, exc in self.failures.items():
                if needle in text:
                    raise exc
            return hash_vector(text, self._descriptor.dimension)
        finally:
            self.in_flight -= 1

    async def close(self) -> None:
        self.closed = True

    @property
    def dimensions(self) -> int:
        return self._descriptor.dimension

    @property
    def model_id(self) -> str:
        return self._descriptor.model_id

    @property
    def model_name(self) -> str:
        return self._descriptor.model


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Async in-memory SQLite engine; tables are created by the manager."""
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    yield eng
    await eng.dispose()


@pytest.fixture
def manager(async_engine: AsyncEngine) -> VectorTableManager:
    return VectorTableManager(async_engine)


@pytest.fixture
def fake_provider() -> FakeEmbedding:
    return FakeEmbedding()
