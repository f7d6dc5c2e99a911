# src/tiercache/frontends/base.py
"""Shared plumbing for the typed cache front ends."""

from __future__ import annotations

import logging
from typing import Any

from ..codecs import Codec
from ..config import CachePolicy
from ..tiered import TieredCache

logger = logging.getLogger(__name__)


class CacheFrontEnd:
    """Owns one :class:`TieredCache` and forwards lifecycle and deletion to it.

    Subclasses set ``default_folder`` and pass their memory-tier codec.
    """

    default_folder: str = "tiercache"

    def __init__(self, policy: CachePolicy | None, codec: Codec | None) -> None:
        self.policy = policy or self.default_policy()
        self._cache: TieredCache[Any] = TieredCache(self.policy, codec=codec)

    @classmethod
    def default_policy(cls, **overrides: Any) -> CachePolicy:
        """Default policy with memory label and disk folder set to ``default_folder``."""
        return CachePolicy.named(cls.default_folder, **overrides)

    @property
    def tiered(self) -> TieredCache[Any]:
        """The underlying tiered cache."""
        return self._cache

    async def initialize(self) -> None:
        await self._cache.initialize()

    async def close(self) -> None:
        await self._cache.close()

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def drain(self) -> None:
        await self._cache.drain()

    async def delete(self, key: str) -> bool:
        """Delete ``key`` from memory and disk; never written back."""
        return await self._cache.delete(key)

    async def delete_all(self) -> bool:
        """Clear memory and disk; nothing is written back."""
        return await self._cache.clear()

    def stats(self) -> dict[str, Any]:
        return self._cache.stats()
