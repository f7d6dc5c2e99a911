# tests/frontends/test_data_cache.py
"""Tests for DataCache."""

import asyncio

import pytest

from tiercache.frontends import DataCache


@pytest.fixture
def policy(cache_root):
    return DataCache.default_policy(memory_count_limit=2, cache_root=str(cache_root))


class TestDataCache:
    """Tests for the bytes front end."""

    def test_default_folder(self):
        cache = DataCache()
        assert cache.policy.disk.cache_folder_name == "tiercache_data"
        assert cache.policy.memory.name == "tiercache_data"

    @pytest.mark.asyncio
    async def test_save_and_load(self, policy):
        async with DataCache(policy) as cache:
            cache.save(b"payload", "blob")
            assert await cache.load("blob") == b"payload"

    @pytest.mark.asyncio
    async def test_evicted_blob_loads_from_disk(self, policy, cache_root):
        async with DataCache(policy) as cache:
            for i in range(3):
                cache.save(f"v{i}".encode(), f"k{i}")
            await cache.drain()

            assert (cache_root / "tiercache_data" / "k0").read_bytes() == b"v0"
            assert await cache.load("k0") == b"v0"

    @pytest.mark.asyncio
    async def test_bytearray_is_stored_as_bytes(self, policy):
        async with DataCache(policy) as cache:
            cache.save(bytearray(b"abc"), "k")
            assert await cache.load("k") == b"abc"

    def test_rejects_non_bytes(self, policy):
        with pytest.raises(TypeError):
            DataCache(policy).save("text", "k")

    def test_cost_defaults_to_length_with_cost_limit(self, cache_root):
        policy = DataCache.default_policy(
            memory_count_limit=0, total_cost_limit=10, cache_root=str(cache_root)
        )
        cache = DataCache(policy)
        cache.save(b"123456", "a")
        cache.save(b"123456", "b")

        memory = cache.tiered.memory
        assert memory.keys() == ["b"]
        assert memory.total_cost == 6

    @pytest.mark.asyncio
    async def test_delete_and_delete_all(self, policy):
        async with DataCache(policy) as cache:
            for i in range(4):
                cache.save(b"v", f"k{i}")
            await cache.drain()

            assert await cache.delete("k0") is True
            assert await cache.load("k0") is None
            assert await cache.delete_all() is True
            assert await cache.load("k3") is None

    @pytest.mark.asyncio
    async def test_load_with_callback(self, policy):
        async with DataCache(policy) as cache:
            await cache.tiered.disk.save("k", b"v")
            received = []
            await cache.load_with_callback("k", received.append)
            assert received == [b"v"]

    @pytest.mark.asyncio
    async def test_load_blocking(self, policy):
        async with DataCache(policy) as cache:
            await cache.tiered.disk.save("k", b"v")
            loop = asyncio.get_running_loop()
            assert await loop.run_in_executor(None, cache.load_blocking, "k") == b"v"

    @pytest.mark.asyncio
    async def test_stats(self, policy):
        async with DataCache(policy) as cache:
            cache.save(b"v", "k")
            await cache.load("k")
            assert cache.stats()["memory"]["hits"] == 1
