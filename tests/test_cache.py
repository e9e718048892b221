import asyncio

import duckdb
import pytest

from propmatch.cache import CACHE_KEY_PREFIX, DuckDBCache, MemoryCache, cache_key
from propmatch.infra import count_cache_entries, persist_run_meta, read_run_meta


class TestCacheKey:
    def test_stable(self):
        assert cache_key("a", "b") == cache_key("a", "b")
        assert cache_key("a", "b").startswith(CACHE_KEY_PREFIX)

    def test_ordered(self):
        assert cache_key("a", "b") != cache_key("b", "a")

    def test_separator_in_text_does_not_collide(self):
        # Naive "match:{a}:{b}" keys would collide here.
        assert cache_key("x:y", "z") != cache_key("x", "y:z")


class TestMemoryCache:
    def test_get_missing(self):
        cache = MemoryCache()
        assert asyncio.run(cache.mget(["k1", "k2"])) == [None, None]

    def test_set_then_get(self):
        cache = MemoryCache()
        asyncio.run(cache.mset([("k1", "v1")]))
        assert asyncio.run(cache.mget(["k1", "k2"])) == ["v1", None]

    def test_entries_are_never_overwritten(self):
        cache = MemoryCache()
        asyncio.run(cache.mset([("k", "first")]))
        asyncio.run(cache.mset([("k", "second")]))
        assert cache.data["k"] == "first"


class TestDuckDBCache:
    def test_roundtrip_in_memory(self):
        with DuckDBCache(":memory:") as cache:
            asyncio.run(cache.mset([("k1", "v1"), ("k2", "v2")]))
            assert asyncio.run(cache.mget(["k2", "missing", "k1"])) == [
                "v2",
                None,
                "v1",
            ]

    def test_duplicate_writes_are_harmless(self):
        with DuckDBCache(":memory:") as cache:
            asyncio.run(cache.mset([("k", "v")]))
            asyncio.run(cache.mset([("k", "other"), ("k", "again")]))
            assert asyncio.run(cache.mget(["k"])) == ["v"]
            assert count_cache_entries(cache.conn) == 1

    def test_repeated_keys_in_one_read(self):
        with DuckDBCache(":memory:") as cache:
            asyncio.run(cache.mset([("k", "v")]))
            assert asyncio.run(cache.mget(["k", "k"])) == ["v", "v"]

    def test_persists_across_connections(self, tmp_path):
        path = tmp_path / "nested" / "cache.db"
        with DuckDBCache(path) as cache:
            asyncio.run(cache.mset([("k", "v")]))
        with DuckDBCache(path) as cache:
            assert asyncio.run(cache.mget(["k"])) == ["v"]

    def test_requires_open(self):
        cache = DuckDBCache(":memory:")
        with pytest.raises(RuntimeError, match="not open"):
            asyncio.run(cache.mget(["k"]))


class TestRunMeta:
    def test_persist_and_read(self):
        conn = duckdb.connect(":memory:")
        try:
            persist_run_meta(
                conn,
                "openai/gpt-4o-mini",
                list_a_file="a.json",
                status_counts={"Match": 2},
                success=True,
            )
            meta = read_run_meta(conn)
        finally:
            conn.close()
        assert meta["llm_model"] == "openai/gpt-4o-mini"
        assert meta["list_a_file"] == "a.json"
        assert meta["status_counts"] == '{"Match": 2}'
        assert meta["success"] == "true"

    def test_read_without_table(self):
        conn = duckdb.connect(":memory:")
        try:
            assert read_run_meta(conn) == {}
            assert count_cache_entries(conn) == 0
        finally:
            conn.close()
