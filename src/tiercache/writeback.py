# src/tiercache/writeback.py
"""
Eviction write-back queue.

When the memory tier evicts an entry, the encoded value has to reach the
disk tier without making the evicting ``put`` wait for file I/O. The
:class:`WriteBackQueue` decouples the two: the eviction observer calls
:meth:`WriteBackQueue.offer` (synchronous, thread-safe) and a single worker
task drains the queue into a :class:`~tiercache.tiers.disk.SerializedDiskStore`.

Behavior:
- The queue is bounded. When ``max_pending`` write-backs are outstanding
  a new one is dropped, logged at WARNING and counted as ``dropped``.
- A newer write-back of a key supersedes an older queued one; only the
  latest payload is written.
- :meth:`cancel` / :meth:`cancel_all` void queued write-backs immediately;
  :meth:`forget` / :meth:`forget_all` additionally wait for one that is
  already being written, so an explicit delete can never be undone by a
  write-back landing after it.
- After the queue runs empty following a write, the disk count limit is
  enforced once.
- :meth:`drain` waits until every accepted write-back has landed;
  :meth:`stop` drains and then stops the worker.

Offers made before :meth:`start` are kept and written once the worker runs.
Offers made from a thread other than the event loop's are registered at once
and handed to the worker with ``call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any

from .logging_config import log_display
from .tiers.disk import SerializedDiskStore

logger = logging.getLogger(__name__)


class WriteBackQueue:
    """Bounded single-worker queue persisting evicted entries to disk.

    Args:
        disk: Disk store the write-backs land in.
        max_pending: Maximum number of queued write-backs.
        name: Label used in log messages.
    """

    def __init__(
        self,
        disk: SerializedDiskStore,
        max_pending: int = 1024,
        name: str = "tiercache",
    ) -> None:
        self._disk = disk
        self._name = name
        self.max_pending = max_pending
        self._queue: asyncio.Queue[tuple[str, bytes, int]] = asyncio.Queue()
        self._state_lock = threading.Lock()
        self._latest: dict[str, int] = {}
        self._sequence = 0
        self._pending = 0
        self._closed = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._worker: asyncio.Task[None] | None = None
        self._current_key: str | None = None
        self._current_done: asyncio.Event | None = None
        self._stats = {
            "enqueued": 0,
            "written": 0,
            "superseded": 0,
            "dropped": 0,
            "failures": 0,
        }

    # -------------------------------------------------------------------------
    # Producer side
    # -------------------------------------------------------------------------

    def offer(self, key: str, data: bytes) -> None:
        """Queue ``data`` to be written to disk under ``key``.

        The write-back is registered before this returns, so a later
        :meth:`cancel` of the key always wins over it. Only the hand-over to
        the worker is deferred when called from a thread other than the
        loop's. Never blocks and never raises.
        """
        with self._state_lock:
            if self._closed:
                reason = "queue is closed"
            elif self._pending >= self.max_pending:
                reason = f"queue is full ({self.max_pending} pending)"
            else:
                reason = None
                self._sequence += 1
                token = self._sequence
                self._latest[key] = token
                self._pending += 1
                self._stats["enqueued"] += 1
        if reason is not None:
            self._drop(key, reason)
            return

        item = (key, data, token)
        loop = self._loop
        if loop is not None and loop.is_running() and not self._on_loop(loop):
            try:
                loop.call_soon_threadsafe(self._queue.put_nowait, item)
            except RuntimeError:
                # Loop closed between the check and the call.
                self._withdraw(key, token)
                self._drop(key, "event loop is closed")
            return
        self._queue.put_nowait(item)

    @staticmethod
    def _on_loop(loop: asyncio.AbstractEventLoop) -> bool:
        try:
            return asyncio.get_running_loop() is loop
        except RuntimeError:
            return False

    def _withdraw(self, key: str, token: int) -> None:
        with self._state_lock:
            if self._latest.get(key) == token:
                del self._latest[key]
            self._pending -= 1
            self._stats["enqueued"] -= 1

    def _drop(self, key: str, reason: str) -> None:
        with self._state_lock:
            self._stats["dropped"] += 1
        log_display(
            logger, logging.WARNING, "%s: dropped write-back of key %r (%s)", self._name, key, reason
        )

    # -------------------------------------------------------------------------
    # Worker
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Start the worker on the running event loop. Idempotent."""
        if self._worker is not None and not self._worker.done():
            return
        self._loop = asyncio.get_running_loop()
        with self._state_lock:
            self._closed = False
        self._worker = self._loop.create_task(self._run(), name=f"{self._name}-writeback")
        logger.debug("%s: write-back worker started", self._name)

    async def _run(self) -> None:
        while True:
            key, data, token = await self._queue.get()
            try:
                with self._state_lock:
                    stale = self._latest.get(key) != token
                    if stale:
                        self._stats["superseded"] += 1
                    else:
                        del self._latest[key]
                        self._current_key = key
                        self._current_done = asyncio.Event()
                if stale:
                    continue
                await self._disk.save(key, data)
                with self._state_lock:
                    self._stats["written"] += 1
                if self._queue.empty():
                    await self._disk.check_and_enforce_count_limit()
            except Exception as e:
                with self._state_lock:
                    self._stats["failures"] += 1
                logger.error("%s: write-back of key %r failed: %s", self._name, key, e, exc_info=True)
            finally:
                with self._state_lock:
                    done = self._current_done if self._current_key == key else None
                    if done is not None:
                        self._current_key = None
                        self._current_done = None
                    self._pending -= 1
                if done is not None:
                    done.set()
                self._queue.task_done()

    async def _wait_current(self, key: str | None = None) -> None:
        with self._state_lock:
            if key is None or self._current_key == key:
                done = self._current_done
            else:
                done = None
        if done is not None:
            await done.wait()

    # -------------------------------------------------------------------------
    # Control
    # -------------------------------------------------------------------------

    def cancel(self, key: str) -> None:
        """Cancel queued write-backs of ``key``. Safe to call from any thread."""
        with self._state_lock:
            self._latest.pop(key, None)

    def cancel_all(self) -> None:
        """Cancel every queued write-back. Safe to call from any thread."""
        with self._state_lock:
            self._latest.clear()

    async def forget(self, key: str) -> None:
        """Cancel queued write-backs of ``key`` and wait out one in flight."""
        self.cancel(key)
        await self._wait_current(key)

    async def forget_all(self) -> None:
        """Cancel every queued write-back and wait out the one in flight."""
        self.cancel_all()
        await self._wait_current()

    async def drain(self) -> None:
        """Wait until every accepted write-back has been processed.

        Raises:
            RuntimeError: If write-backs are pending but the worker is not running.
        """
        # Let offers handed over from other threads reach the queue first.
        await asyncio.sleep(0)
        if self._worker is None or self._worker.done():
            if self.pending:
                raise RuntimeError(f"{self._name}: write-back worker is not running")
            return
        await self._queue.join()

    async def stop(self) -> None:
        """Drain pending write-backs, then stop the worker.

        Offers arriving after this call are dropped until :meth:`start` runs again.
        """
        if self._worker is None:
            return
        await self.drain()
        with self._state_lock:
            self._closed = True
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.debug("%s: write-back worker stopped", self._name)

    @property
    def loop(self) -> asyncio.AbstractEventLoop | None:
        """Event loop the worker was started on."""
        return self._loop

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        """Write-backs accepted but not yet processed (including one in flight)."""
        with self._state_lock:
            return self._pending

    def stats(self) -> dict[str, Any]:
        """Return queue counters and the current backlog."""
        with self._state_lock:
            return {
                **self._stats,
                "pending": self._pending,
                "max_pending": self.max_pending,
                "running": self.running,
            }


__all__ = ["WriteBackQueue"]
