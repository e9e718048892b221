"""Comparison result caches.

The Comparator only needs batched get/set over text. Two implementations:
an in-memory dict (tests, throwaway runs) and a DuckDB-backed store that
persists across runs. Entries never expire and are never rewritten.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Protocol

import duckdb

from .infra import init_infra, read_cache_values, write_cache_values

CACHE_KEY_PREFIX = "match:"


def cache_key(desc_a: str, desc_b: str) -> str:
    """Stable key for an ordered pair.

    The pair is JSON-encoded before hashing so no separator inside either
    description can make two different pairs collide.
    """
    encoded = json.dumps([desc_a, desc_b], ensure_ascii=False)
    return CACHE_KEY_PREFIX + hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class MatchCache(Protocol):
    async def mget(self, keys: list[str]) -> list[str | None]: ...

    async def mset(self, items: list[tuple[str, str]]) -> None: ...


class MemoryCache:
    """Process-local cache."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    async def mget(self, keys: list[str]) -> list[str | None]:
        return [self.data.get(k) for k in keys]

    async def mset(self, items: list[tuple[str, str]]) -> None:
        for key, value in items:
            self.data.setdefault(key, value)


class DuckDBCache:
    """Cache persisted in the ``_match_cache`` table of a DuckDB file.

    All workers share one connection; access happens on the event loop
    thread so statements never interleave. ``mget`` and ``mset`` are async
    only to satisfy ``MatchCache``: the duckdb statements run synchronously
    and block the event loop while they execute.
    """

    def __init__(self, path: Path | str):
        self.path = str(path)
        self._conn: duckdb.DuckDBPyConnection | None = None

    def open(self) -> DuckDBCache:
        if self._conn is None:
            if self.path != ":memory:":
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = duckdb.connect(self.path)
            init_infra(self._conn)
        return self

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> DuckDBCache:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            raise RuntimeError(
                "DuckDBCache is not open: use `with DuckDBCache(path) as cache: ...`"
            )
        return self._conn

    async def mget(self, keys: list[str]) -> list[str | None]:
        found = read_cache_values(self.conn, list(dict.fromkeys(keys)))
        return [found.get(k) for k in keys]

    async def mset(self, items: list[tuple[str, str]]) -> None:
        write_cache_values(self.conn, items)
