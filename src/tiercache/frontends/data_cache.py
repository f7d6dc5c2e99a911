# src/tiercache/frontends/data_cache.py
"""Byte-blob cache: raw bytes in memory and on disk."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from ..codecs import BytesCodec
from ..config import CachePolicy
from .base import CacheFrontEnd

logger = logging.getLogger(__name__)


class DataCache(CacheFrontEnd):
    """Two-tier cache for ``bytes`` payloads.

    Entry cost in the memory tier defaults to the payload length when the
    policy sets a total cost limit, and to 1 otherwise.

    Example::

        async with DataCache(DataCache.default_policy(cache_root="/tmp/c")) as cache:
            cache.save(b"payload", "blob:1")
            data = await cache.load("blob:1")
    """

    default_folder = "tiercache_data"

    def __init__(self, policy: CachePolicy | None = None) -> None:
        super().__init__(policy, BytesCodec())

    def save(self, data: bytes, key: str, cost: int | None = None) -> None:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"DataCache stores bytes, got {type(data).__name__}")
        payload = bytes(data)
        if cost is None and self.policy.memory.total_cost_limit > 0:
            cost = len(payload)
        self._cache.put(key, payload, cost)

    async def load(self, key: str) -> bytes | None:
        return await self._cache.get(key)

    def load_with_callback(
        self, key: str, callback: Callable[[bytes | None], None]
    ) -> asyncio.Task[None] | None:
        return self._cache.load_with_callback(key, callback)

    def load_blocking(self, key: str, timeout: float | None = None) -> bytes | None:
        return self._cache.get_blocking(key, timeout)


__all__ = ["DataCache"]
