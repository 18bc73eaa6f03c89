"""Index a notes directory and run a query against it.

Demonstrates the VaultSearch API end to end: configuration from the
environment, an incremental sync pass, and a similarity query.

- corpus    → every ``.md`` file under VAULT_DIR
- database  → ``VAULTSEARCH_DATABASE_URL`` (default ``~/.vaultsearch/vectors.db``)
- model     → ``VAULTSEARCH_EMBEDDING_MODEL`` (default openai/text-embedding-3-small)

Usage:
    uv run python scripts/index_vault.py ~/notes "what did we decide about pricing"
    uv run python scripts/index_vault.py ~/notes "pricing" --model ollama/nomic-embed-text
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

from vaultsearch import DirectoryCorpus, VaultSearch, VaultSearchConfig
from vaultsearch.exceptions import SyncAbortedError, VaultSearchError


async def run(vault_dir: Path, query: str, model_id: str | None, k: int) -> int:
    config = VaultSearchConfig.from_env()
    if model_id:
        config = replace(config, embedding_model_id=model_id)

    corpus = DirectoryCorpus(vault_dir)
    documents = await corpus.list_documents()
    print(f"Vault:     {vault_dir}")
    print(f"Documents: {len(documents)}")
    print(f"Model:     {config.embedding_model_id}")
    print(f"Database:  {config.database_url}")
    print()

    async with VaultSearch(corpus, config=config) as vs:
        # --------------------------------------------------------------
        # Phase 1: sync
        # --------------------------------------------------------------
        print("=" * 60)
        print("PHASE 1: Sync")
        print("=" * 60)
        try:
            result = await vs.sync()
        except SyncAbortedError as exc:
            print(f"  Sync aborted: {exc.reason}")
            print(f"  Chunks embedded before abort: {exc.result.embedded}")
            return 1

        print(f"  Inserted:  {result.inserted}")
        print(f"  Updated:   {result.updated}")
        print(f"  Unchanged: {result.unchanged}")
        print(f"  Deleted:   {result.deleted}")
        if not result.complete:
            print(f"  Deferred:  {result.deferred} (retried next sync)")
            print(f"  Failed:    {result.failed}")

        for model, rows in (await vs.stats()).items():
            print(f"  Table {model}: {rows} records")

        # --------------------------------------------------------------
        # Phase 2: query
        # --------------------------------------------------------------
        print("\n" + "=" * 60)
        print(f"PHASE 2: Top {k} for {query!r}")
        print("=" * 60)
        try:
            hits = await vs.search(query, k=k)
        except VaultSearchError as exc:
            print(f"  Search failed: {exc}")
            return 1

        for rank, hit in enumerate(hits, start=1):
            meta = hit.record.chunk_metadata
            first_line = hit.content.strip().splitlines()[0][:70]
            print(f"  {rank:2d}. {hit.score:.3f}  {hit.path}:{meta['startLine']}-{meta['endLine']}")
            print(f"      {first_line}")
        if not hits:
            print("  (no results)")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Index a notes directory and search it")
    parser.add_argument("vault_dir", type=Path)
    parser.add_argument("query")
    parser.add_argument("--model", dest="model_id", default=None)
    parser.add_argument("-k", type=int, default=5)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.exit(asyncio.run(run(args.vault_dir.expanduser(), args.query, args.model_id, args.k)))


if __name__ == "__main__":
    main()
