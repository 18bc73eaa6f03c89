"""Corpus sources — the documents a sync pass indexes."""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class Document:
    """A tracked document.

    Attributes:
        path: Document identifier, relative to the corpus root.
        mtime: Last modification time in integer milliseconds.
    """

    path: str
    mtime: int


@runtime_checkable
class Corpus(Protocol):
    """A set of documents that can be listed and read."""

    async def list_documents(self) -> list[Document]:
        """Return every document currently in the corpus."""
        ...

    async def read(self, path: str) -> str:
        """Return the current content of *path*."""
        ...


class DirectoryCorpus:
    """Documents on local disk under *root* with a matching extension.

    Paths are POSIX-style and relative to *root*.  Hidden files and
    dot-directories (``.obsidian``, ``.git``) are skipped.  Disk I/O runs
    in a worker thread via :func:`asyncio.to_thread`.
    """

    def __init__(self, root: str | Path, *, extensions: tuple[str, ...] = (".md",)) -> None:
        self._root = Path(root).resolve()
        if not self._root.is_dir():
            raise NotADirectoryError(f"Corpus root is not a directory: {self._root}")
        self._extensions = tuple(ext.lower() for ext in extensions)

    async def list_documents(self) -> list[Document]:
        """Walk the root and return matching documents, sorted by path."""
        return await asyncio.to_thread(self._scan)

    async def read(self, path: str) -> str:
        """Read *path* as UTF-8 text."""
        return await asyncio.to_thread(self._resolve(path).read_text, encoding="utf-8")

    @property
    def root(self) -> Path:
        return self._root

    def _scan(self) -> list[Document]:
        documents: list[Document] = []
        for dirpath, dirnames, filenames in os.walk(self._root):
            dirnames[:] = [d for d in dirnames if not d.startswith(".")]
            for name in filenames:
                if name.startswith(".") or not name.lower().endswith(self._extensions):
                    continue
                full = Path(dirpath) / name
                rel = full.relative_to(self._root).as_posix()
                documents.append(Document(path=rel, mtime=full.stat().st_mtime_ns // 1_000_000))
        documents.sort(key=lambda d: d.path)
        return documents

    def _resolve(self, path: str) -> Path:
        candidate = (self._root / path).resolve()
        if not candidate.is_relative_to(self._root):
            raise ValueError(f"Path escapes corpus root: {path}")
        return candidate


class MemoryCorpus:
    """Documents held in memory, keyed by path."""

    def __init__(self) -> None:
        self._docs: dict[str, tuple[int, str]] = {}

    def put(self, path: str, content: str, mtime: int) -> None:
        """Add or replace a document."""
        self._docs[path] = (mtime, content)

    def remove(self, path: str) -> None:
        """Remove a document; missing paths are ignored."""
        self._docs.pop(path, None)

    async def list_documents(self) -> list[Document]:
        return [Document(path=p, mtime=m) for p, (m, _) in sorted(self._docs.items())]

    async def read(self, path: str) -> str:
        try:
            return self._docs[path][1]
        except KeyError:
            raise FileNotFoundError(path) from None

    def __len__(self) -> int:
        return len(self._docs)
