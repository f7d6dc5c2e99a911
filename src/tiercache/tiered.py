# src/tiercache/tiered.py
"""
Tiered Cache - memory tier in front of a disk tier with eviction write-back.

Architecture::

    put ──► BoundedMemoryStore ──(evicted)──► WriteBackQueue ──► SerializedDiskStore
    get ──► BoundedMemoryStore ──(miss)─────────────────────────► SerializedDiskStore
                     ▲                                                   │
                     └──────────────── promote on disk hit ──────────────┘

- ``put`` writes to memory only. Nothing reaches disk until the entry is
  evicted by capacity pressure.
- ``get`` answers from memory without suspending; on a miss it loads from
  disk, decodes, promotes the value back into memory and returns it.
- Evictions are encoded with the cache's codec and handed to the
  write-back queue; the evicting ``put`` does not wait for the disk.
- ``delete`` and ``clear`` remove from memory with
  ``RemovalMode.EXPLICIT_REMOVAL`` (no write-back), cancel queued
  write-backs of the affected keys and then delete from disk.

The removal mode is passed with every removal call, so an explicit delete
of one key running concurrently with a capacity eviction of another can
neither suppress the eviction's write-back nor cause its own.

Memory-tier inserts (including their eviction write-back offers) and the
memory half of ``delete``/``clear`` run under one per-instance lock. An
eviction of a key either completes before a delete of that key and is
cancelled by it, or finds the key already gone.

A disk hit is promoted into memory only if nothing touched the key while it
was loading: a ``put``, ``delete`` or ``clear`` during the load wins and
the loaded value is returned without being cached.

Lifecycle::

    async with TieredCache(policy, codec=PngImageCodec()) as cache:
        cache.put("k", value)
        value = await cache.get("k")

``initialize()`` starts the write-back worker and trims the disk tier to its
count limit; ``close()`` drains outstanding write-backs, stops the worker
and trims again. One instance per cache folder.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable, Generic, TypeVar

from .codecs import Codec
from .config import CachePolicy
from .exceptions import CodecError
from .tiers.disk import SerializedDiskStore
from .tiers.memory import BoundedMemoryStore, RemovalMode
from .writeback import WriteBackQueue

logger = logging.getLogger(__name__)

V = TypeVar("V")


class TieredCache(Generic[V]):
    """Read-through / write-back cache over a memory and a disk tier.

    Args:
        policy: Memory and disk policies.
        codec: Converts memory values to disk bytes and back. Required
            unless memory values are already ``bytes``.
        memory: Pre-built memory store (defaults to one built from policy).
        disk: Pre-built disk store (defaults to one built from policy).
    """

    def __init__(
        self,
        policy: CachePolicy | None = None,
        codec: Codec | None = None,
        memory: BoundedMemoryStore[str, V] | None = None,
        disk: SerializedDiskStore | None = None,
    ) -> None:
        self.policy = policy or CachePolicy()
        self.codec = codec
        self.memory: BoundedMemoryStore[str, V] = (
            memory if memory is not None else BoundedMemoryStore(policy=self.policy.memory)
        )
        self.disk = disk if disk is not None else SerializedDiskStore(self.policy.disk)
        self.writeback = WriteBackQueue(
            self.disk,
            max_pending=self.policy.writeback_max_pending,
            name=self.policy.memory.name,
        )
        self.memory.observer = self._handle_eviction
        self._eviction_lock = threading.RLock()
        # key -> [in-flight loads, generation]; only keys being loaded are tracked
        self._loads: dict[str, list[int]] = {}
        self._clear_generation = 0
        logger.debug(
            "TieredCache '%s' created (folder=%s).",
            self.policy.memory.name,
            self.policy.disk.cache_folder_name,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        """Start the write-back worker and trim the disk tier to its limit."""
        await self.writeback.start()
        await self.disk.check_and_enforce_count_limit()
        logger.info("TieredCache '%s' initialized at %s.", self.policy.memory.name, self.disk.directory)

    async def close(self) -> None:
        """Drain pending write-backs, stop the worker and trim the disk tier."""
        await self.writeback.stop()
        await self.disk.check_and_enforce_count_limit()
        logger.info("TieredCache '%s' closed.", self.policy.memory.name)

    async def __aenter__(self) -> "TieredCache[V]":
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def drain(self) -> None:
        """Wait until every queued eviction write-back has reached disk."""
        await self.writeback.drain()

    # -------------------------------------------------------------------------
    # Codec helpers
    # -------------------------------------------------------------------------

    def _encode(self, value: V) -> bytes:
        if self.codec is not None:
            return self.codec.encode(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)
        raise CodecError("none", f"no codec configured for {type(value).__name__}")

    def _decode(self, data: bytes) -> V:
        if self.codec is not None:
            return self.codec.decode(data)
        return data  # type: ignore[return-value]

    def _handle_eviction(self, key: str, value: V) -> None:
        """Memory-tier observer: queue the evicted value for disk."""
        try:
            data = self._encode(value)
        except CodecError as e:
            logger.warning("Skipping write-back of key %r: %s", key, e)
            return
        self.writeback.offer(key, data)

    def _begin_load(self, key: str) -> tuple[int, int]:
        with self._eviction_lock:
            entry = self._loads.setdefault(key, [0, 0])
            entry[0] += 1
            return entry[1], self._clear_generation

    def _invalidate(self, key: str) -> None:
        # caller holds _eviction_lock
        entry = self._loads.get(key)
        if entry is not None:
            entry[1] += 1

    def _finish_load(self, key: str, token: tuple[int, int], value: V | None) -> bool:
        """Promote ``value`` unless ``key`` was written or removed during the load."""
        with self._eviction_lock:
            entry = self._loads[key]
            entry[0] -= 1
            current = entry[1] == token[0] and self._clear_generation == token[1]
            if entry[0] == 0:
                del self._loads[key]
            if value is None or not current:
                return False
            return self.memory.set_if_absent(key, value)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def put(self, key: str, value: V, cost: int | None = None) -> None:
        """Store ``value`` in the memory tier only."""
        with self._eviction_lock:
            self._invalidate(key)
            self.memory.set(key, value, cost)

    def peek(self, key: str) -> V | None:
        """Memory-tier lookup that never touches disk."""
        return self.memory.get(key)

    async def get(self, key: str) -> V | None:
        """Return the value for ``key`` from memory, else from disk.

        A disk hit is decoded and promoted into memory with default cost,
        unless a ``put``, ``delete`` or ``clear`` of the key ran while it was
        loading; the loaded value is returned either way. Undecodable
        payloads are treated as a miss.
        """
        value = self.memory.get(key)
        if value is not None:
            return value

        token = self._begin_load(key)
        value = None
        try:
            data = await self.disk.load(key)
            if data is not None:
                try:
                    value = self._decode(data)
                except CodecError as e:
                    logger.warning("Treating undecodable disk entry %r as a miss: %s", key, e)
        finally:
            self._finish_load(key, token, value)
        return value

    def load_with_callback(
        self, key: str, callback: Callable[[V | None], None]
    ) -> asyncio.Task[None] | None:
        """Callback variant of :meth:`get`.

        On a memory hit ``callback`` runs immediately and ``None`` is
        returned. Otherwise a task doing the disk lookup is scheduled on the
        running loop and returned; ``callback`` receives its result.

        Raises:
            RuntimeError: On a memory miss outside a running event loop.
        """
        value = self.memory.get(key)
        if value is not None:
            callback(value)
            return None

        async def _load() -> None:
            callback(await self.get(key))

        return asyncio.get_running_loop().create_task(_load())

    def get_blocking(self, key: str, timeout: float | None = None) -> V | None:
        """Blocking variant of :meth:`get` for threads other than the loop's.

        Memory hits return without touching the loop. Misses are resolved on
        the loop the cache was initialized on.

        Raises:
            RuntimeError: If the cache is not running or this is the loop thread.
            TimeoutError: If ``timeout`` elapses first.
        """
        value = self.memory.get(key)
        if value is not None:
            return value

        loop = self.writeback.loop
        if loop is None or not loop.is_running():
            raise RuntimeError("get_blocking() needs an initialized cache with a running loop")
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            raise RuntimeError("get_blocking() would deadlock on the event loop thread; await get()")
        future = asyncio.run_coroutine_threadsafe(self.get(key), loop)
        return future.result(timeout)

    async def delete(self, key: str) -> bool:
        """Remove ``key`` from both tiers without writing it back.

        Returns:
            The disk tier's result: False if no file existed or it could not
            be removed.
        """
        with self._eviction_lock:
            self._invalidate(key)
            self.memory.remove(key, mode=RemovalMode.EXPLICIT_REMOVAL)
            self.writeback.cancel(key)
        await self.writeback.forget(key)
        return await self.disk.delete(key)

    async def clear(self) -> bool:
        """Remove every entry from both tiers without writing anything back.

        Returns:
            The disk tier's ``delete_all`` result.
        """
        with self._eviction_lock:
            self._clear_generation += 1
            self.memory.clear(mode=RemovalMode.EXPLICIT_REMOVAL)
            self.writeback.cancel_all()
        await self.writeback.forget_all()
        return await self.disk.delete_all()

    def stats(self) -> dict[str, Any]:
        """Statistics of both tiers and the write-back queue."""
        return {
            "memory": self.memory.stats(),
            "disk": self.disk.stats(),
            "writeback": self.writeback.stats(),
        }


__all__ = ["TieredCache"]
