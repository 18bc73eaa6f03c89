"""Line-based chunking — split a document into contiguous line ranges."""

from __future__ import annotations

from vaultsearch.search.types import Chunk, ChunkSpan


def split_lines(content: str, chunk_size: int = 1000) -> list[Chunk]:
    """Pack whole lines into chunks of at most *chunk_size* characters.

    A line longer than *chunk_size* becomes a chunk of its own; lines are
    never split.  Spans are 1-indexed and inclusive.  Whitespace-only
    chunks are dropped, so identical content always yields identical spans.
    """
    if chunk_size <= 0:
        msg = f"chunk_size must be positive, got {chunk_size}"
        raise ValueError(msg)

    chunks: list[Chunk] = []
    buffer: list[str] = []
    buffer_len = 0
    start = 1

    def flush(end: int) -> None:
        text = "\n".join(buffer)
        if text.strip():
            chunks.append(Chunk(span=ChunkSpan(start, end), content=text))

    for lineno, line in enumerate(content.splitlines(), start=1):
        # +1 for the newline that joins it to the buffer
        added = len(line) + (1 if buffer else 0)
        if buffer and buffer_len + added > chunk_size:
            flush(lineno - 1)
            buffer, buffer_len, start = [], 0, lineno
            added = len(line)
        buffer.append(line)
        buffer_len += added

    if buffer:
        flush(start + len(buffer) - 1)
    return chunks
