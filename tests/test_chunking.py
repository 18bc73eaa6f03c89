"""Tests for line-based chunking."""

from __future__ import annotations

import pytest

from vaultsearch.search.chunking import split_lines
from vaultsearch.search.types import Chunk, ChunkSpan


def _spans(chunks: list[Chunk]) -> list[tuple[int, int]]:
    return [tuple(c.span) for c in chunks]


class TestSplitLines:
    def test_empty(self):
        assert split_lines("") == []

    def test_whitespace_only(self):
        assert split_lines("\n  \n\t\n") == []

    def test_small_document_is_one_chunk(self):
        chunks = split_lines("# Title\nbody\nmore")
        assert len(chunks) == 1
        assert chunks[0].span == ChunkSpan(1, 3)
        assert chunks[0].content == "# Title\nbody\nmore"

    def test_packs_lines_up_to_chunk_size(self):
        line = "x" * 10
        content = "\n".join([line] * 5)
        chunks = split_lines(content, chunk_size=21)
        assert _spans(chunks) == [(1, 2), (3, 4), (5, 5)]
        assert chunks[0].content == f"{line}\n{line}"
        assert all(len(c.content) <= 21 for c in chunks)

    def test_long_line_is_its_own_chunk(self):
        chunks = split_lines("abcdefghij\nxy\nz", chunk_size=5)
        assert _spans(chunks) == [(1, 1), (2, 3)]
        assert chunks[0].content == "abcdefghij"
        assert chunks[1].content == "xy\nz"

    def test_lines_are_never_split(self):
        lines = [f"line {i} " + "w" * (i % 7) for i in range(40)]
        chunks = split_lines("\n".join(lines), chunk_size=30)
        rebuilt = [line for chunk in chunks for line in chunk.content.split("\n")]
        assert rebuilt == lines

    def test_spans_are_contiguous(self):
        content = "\n".join(f"row {i}" for i in range(1, 51))
        chunks = split_lines(content, chunk_size=40)
        assert chunks[0].span.start_line == 1
        assert chunks[-1].span.end_line == 50
        for prev, nxt in zip(chunks, chunks[1:], strict=False):
            assert nxt.span.start_line == prev.span.end_line + 1

    def test_blank_chunks_are_dropped_but_lines_keep_numbers(self):
        chunks = split_lines("a\n\n\n   \nb", chunk_size=1)
        assert _spans(chunks) == [(1, 1), (5, 5)]
        assert [c.content for c in chunks] == ["a", "b"]

    def test_trailing_newline_and_crlf(self):
        assert _spans(split_lines("a\r\nb\r\n")) == [(1, 2)]
        assert split_lines("a\r\nb\r\n")[0].content == "a\nb"

    def test_deterministic(self):
        content = "\n".join(f"paragraph {i}: " + "lorem " * i for i in range(30))
        assert split_lines(content, 120) == split_lines(content, 120)

    def test_edit_only_moves_affected_chunk(self):
        before = "\n".join(["aaaa", "bbbb", "cccc", "dddd"])
        after = "\n".join(["aaaa", "bbbb", "cccc", "DDDD"])
        old = split_lines(before, chunk_size=9)
        new = split_lines(after, chunk_size=9)
        assert _spans(old) == _spans(new) == [(1, 2), (3, 4)]
        assert old[0] == new[0]
        assert old[1] != new[1]

    @pytest.mark.parametrize("size", [0, -1])
    def test_non_positive_chunk_size(self, size):
        with pytest.raises(ValueError, match="chunk_size"):
            split_lines("text", chunk_size=size)
