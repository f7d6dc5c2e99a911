# src/tiercache/frontends/object_cache.py
"""
Object cache: JSON-serializable values and pydantic models.

Values are encoded once on ``save`` and both tiers hold the encoded JSON
bytes; decoding happens on every ``load`` into the type the caller asks
for. Anything pydantic can serialize is accepted: plain JSON types,
pydantic models, dataclasses, datetimes, UUIDs and so on.

Example::

    class User(BaseModel):
        id: int
        name: str

    async with ObjectCache() as cache:
        cache.save(User(id=1, name="Ada"), "user:1")
        user = await cache.load("user:1", User)
        raw = await cache.load("user:1")        # {"id": 1, "name": "Ada"}

A ``None`` value is not cached, and values that fail to encode are dropped
with a warning. Payloads that fail to decode into the requested type load
as ``None``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from ..codecs import BytesCodec, JsonCodec
from ..config import CachePolicy
from ..exceptions import CodecError
from .base import CacheFrontEnd

logger = logging.getLogger(__name__)


class ObjectCache(CacheFrontEnd):
    """Two-tier cache for values serialized as JSON."""

    default_folder = "tiercache_object"

    def __init__(self, policy: CachePolicy | None = None) -> None:
        super().__init__(policy, BytesCodec())
        self._json = JsonCodec()

    def save(self, value: Any, key: str, cost: int | None = None) -> bool:
        """Encode ``value`` and store it in the memory tier.

        Returns:
            True if the value was cached; False for ``None`` or encoding failure.
        """
        if value is None:
            logger.debug("Not caching None for key %r", key)
            return False
        try:
            data = self._json.encode(value)
        except CodecError as e:
            logger.warning("Not caching key %r: %s", key, e)
            return False
        self._cache.put(key, data, cost)
        return True

    def _decode(self, key: str, data: bytes | None, type_: Any) -> Any:
        if data is None:
            return None
        try:
            return self._json.decode(data, type_)
        except CodecError as e:
            logger.debug("Cached value of key %r does not decode as %s: %s", key, type_, e)
            return None

    async def load(self, key: str, type_: Any = None) -> Any:
        """Return the value for ``key`` decoded as ``type_`` (plain JSON if None)."""
        return self._decode(key, await self._cache.get(key), type_)

    def load_with_callback(
        self, key: str, callback: Callable[[Any], None], type_: Any = None
    ) -> asyncio.Task[None] | None:
        return self._cache.load_with_callback(
            key, lambda data: callback(self._decode(key, data, type_))
        )

    def load_blocking(self, key: str, type_: Any = None, timeout: float | None = None) -> Any:
        return self._decode(key, self._cache.get_blocking(key, timeout), type_)


__all__ = ["ObjectCache"]
