# tests/frontends/test_object_cache.py
"""Tests for ObjectCache."""

import asyncio
from datetime import datetime
from typing import List

import pytest
from pydantic import BaseModel

from tiercache.frontends import ObjectCache


class User(BaseModel):
    id: int
    name: str
    tags: List[str] = []


@pytest.fixture
def policy(cache_root):
    return ObjectCache.default_policy(memory_count_limit=2, cache_root=str(cache_root))


class TestObjectCache:
    """Tests for the JSON front end."""

    def test_default_folder(self):
        assert ObjectCache().policy.disk.cache_folder_name == "tiercache_object"

    @pytest.mark.asyncio
    async def test_plain_values(self, policy):
        async with ObjectCache(policy) as cache:
            assert cache.save({"a": [1, 2, 3]}, "dict") is True
            assert cache.save("text", "str") is True
            assert await cache.load("dict") == {"a": [1, 2, 3]}
            assert await cache.load("str") == "text"

    @pytest.mark.asyncio
    async def test_pydantic_model(self, policy):
        async with ObjectCache(policy) as cache:
            cache.save(User(id=1, name="Ada", tags=["admin"]), "user:1")

            user = await cache.load("user:1", User)
            assert user == User(id=1, name="Ada", tags=["admin"])
            assert await cache.load("user:1") == {"id": 1, "name": "Ada", "tags": ["admin"]}

    @pytest.mark.asyncio
    async def test_model_survives_eviction(self, policy):
        async with ObjectCache(policy) as cache:
            for i in range(3):
                cache.save(User(id=i, name=f"u{i}"), f"user:{i}")
            await cache.drain()

            assert cache.tiered.peek("user:0") is None
            assert await cache.load("user:0", User) == User(id=0, name="u0")

    @pytest.mark.asyncio
    async def test_typed_containers_and_datetimes(self, policy):
        async with ObjectCache(policy) as cache:
            stamp = datetime(2024, 5, 1, 12, 30)
            cache.save([stamp], "stamps")
            assert await cache.load("stamps", List[datetime]) == [stamp]

    def test_none_is_not_cached(self, policy):
        cache = ObjectCache(policy)
        assert cache.save(None, "k") is False
        assert "k" not in cache.tiered.memory

    def test_unserializable_value_is_rejected(self, policy):
        cache = ObjectCache(policy)
        assert cache.save(object(), "k") is False

    @pytest.mark.asyncio
    async def test_wrong_type_loads_as_none(self, policy):
        async with ObjectCache(policy) as cache:
            cache.save({"unrelated": True}, "k")
            assert await cache.load("k", User) is None

    @pytest.mark.asyncio
    async def test_load_with_callback_decodes(self, policy):
        async with ObjectCache(policy) as cache:
            cache.save(User(id=7, name="cb"), "k")
            received = []
            assert cache.load_with_callback("k", received.append, User) is None
            assert received == [User(id=7, name="cb")]

    @pytest.mark.asyncio
    async def test_load_blocking(self, policy):
        async with ObjectCache(policy) as cache:
            await cache.tiered.disk.save("k", b'{"id": 3, "name": "disk"}')
            loop = asyncio.get_running_loop()
            user = await loop.run_in_executor(None, cache.load_blocking, "k", User)
            assert user == User(id=3, name="disk")

    @pytest.mark.asyncio
    async def test_delete(self, policy):
        async with ObjectCache(policy) as cache:
            cache.save(1, "k")
            await cache.delete("k")
            assert await cache.load("k") is None
