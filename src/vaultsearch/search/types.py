"""Search layer data types — chunk spans, sync summaries, search hits."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    from vaultsearch.models.vectors import VectorRecordBase


class ChunkSpan(NamedTuple):
    """1-indexed, inclusive line range of a chunk within its document."""

    start_line: int
    end_line: int


@dataclass(frozen=True, slots=True)
class Chunk:
    """A contiguous line-range excerpt of a document.

    Attributes:
        span: Line range within the source document.
        content: The chunk text.
    """

    span: ChunkSpan
    content: str


@dataclass(frozen=True, slots=True)
class SyncResult:
    """Summary of one sync pass.

    A pass over a large corpus legitimately mixes outcomes, so every
    category is counted separately.

    Attributes:
        inserted: Chunks embedded and inserted.
        updated: Chunks re-embedded and overwritten.
        unchanged: Chunks left alone or whose mtime was bumped without a call.
        deleted: Orphaned records removed.
        deferred: Chunks skipped because the backend was rate limited.
        failed: Chunks not written because of a provider error.
        embed_calls: Embedding calls issued.
    """

    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    deleted: int = 0
    deferred: int = 0
    failed: int = 0
    embed_calls: int = 0

    @property
    def embedded(self) -> int:
        """Chunks whose vector was written in this pass."""
        return self.inserted + self.updated

    @property
    def complete(self) -> bool:
        """True when nothing was deferred or failed."""
        return self.deferred == 0 and self.failed == 0


@dataclass(frozen=True, slots=True)
class SearchHit:
    """A single similarity search result.

    Attributes:
        record: The matched vector record.
        score: Cosine similarity (higher is more similar).
    """

    record: VectorRecordBase
    score: float

    @property
    def path(self) -> str:
        """Source document of the matched chunk."""
        return self.record.path

    @property
    def content(self) -> str:
        """Text of the matched chunk."""
        return self.record.content
