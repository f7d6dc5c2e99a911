# src/tiercache/tiers/disk.py
"""
Serialized Disk Tier - File-per-key persistent byte store.

Each key is stored as one file inside a dedicated cache folder::

    <cache-root>/<cache_folder_name>/<percent-encoded key>

The file content is the raw payload; there is no index or manifest. The
directory listing plus each file's creation time is the only state used for
retention.

Every public coroutine holds one ``asyncio.Lock`` for its whole duration, so
operations on one store instance run strictly one at a time and filesystem
mutations never interleave. File I/O goes through aiofiles so the event loop
is not blocked while the lock is held.

Failure policy:
- ``save`` and ``load`` never raise; a failed write is simply not cached and
  a failed read is a miss.
- ``delete`` and ``delete_all`` report failure through their return value,
  including deleting a key that does not exist.
- ``enforce_count_limit`` raises :class:`~tiercache.exceptions.DiskCacheError`;
  ``check_and_enforce_count_limit`` is the quiet wrapper around it.

Retention keeps the *oldest* ``count_limit`` files (by creation time) and
deletes the newer ones, the inverse of a typical keep-newest policy. Where the
platform does not record a creation time (``st_birthtime``, absent on most
Linux filesystems through ``os.stat``) the modification time is used, so an
overwritten file counts as new there.

Keys are percent-encoded into file names, so ``"a/b"`` becomes ``"a%2Fb"``
and cannot escape the cache folder. The empty key, ``"."`` and ``".."`` have
no file: saving them is a no-op, loading them is a miss and deleting them
fails.

Example::

    store = SerializedDiskStore(DiskPolicy(cache_folder_name="thumbs", count_limit=500))
    await store.save("avatar:42", png_bytes)
    data = await store.load("avatar:42")
    await store.check_and_enforce_count_limit()
"""

from __future__ import annotations

import asyncio
import logging
import os
import stat
from pathlib import Path
from typing import Any
from urllib.parse import quote, unquote

import aiofiles
import aiofiles.os as aios

from ..config import DiskPolicy
from ..exceptions import ConfigError, DiskCacheError
from ..logging_config import log_display

logger = logging.getLogger(__name__)


def key_to_filename(key: str) -> str | None:
    """Map a cache key to its file name, or ``None`` if the key has no file."""
    if key in ("", ".", ".."):
        return None
    return quote(key, safe="")


def filename_to_key(filename: str) -> str:
    """Inverse of :func:`key_to_filename`."""
    return unquote(filename)


def _creation_time_ns(stat_result: os.stat_result) -> int:
    """Creation timestamp where the platform records one, else modification time."""
    birthtime = getattr(stat_result, "st_birthtime", None)
    if birthtime is not None:
        return int(birthtime * 1_000_000_000)
    return stat_result.st_mtime_ns


# ---------------------------------------------------------------------------
# Disk store implementation
# ---------------------------------------------------------------------------


class SerializedDiskStore:
    """Persistent key/value store holding one file per key.

    Args:
        policy: Folder name, count limit and optional cache root.
    """

    def __init__(self, policy: DiskPolicy | None = None) -> None:
        self._policy = policy or DiskPolicy()
        self._lock = asyncio.Lock()
        self._stats = {
            "saves": 0,
            "save_failures": 0,
            "hits": 0,
            "misses": 0,
            "deletes": 0,
            "delete_failures": 0,
            "enforced_removals": 0,
        }
        logger.debug(
            "SerializedDiskStore created (folder=%s, count_limit=%d).",
            self._policy.cache_folder_name,
            self._policy.count_limit,
        )

    @property
    def policy(self) -> DiskPolicy:
        return self._policy

    @property
    def count_limit(self) -> int:
        return self._policy.count_limit

    @property
    def directory(self) -> Path:
        """The cache folder. Resolving it does not create it.

        Raises:
            ConfigError: If the cache root cannot be resolved.
        """
        return self._policy.resolve_directory()

    # -- Internal helpers ----------------------------------------------------

    async def _ensure_directory(self) -> Path:
        directory = self.directory
        try:
            await aios.makedirs(directory, exist_ok=True)
        except OSError as e:
            raise ConfigError(f"Could not create cache directory {directory}: {e}") from e
        return directory

    async def _list_files(self, directory: Path) -> list[tuple[Path, int]]:
        """Regular files in ``directory`` with creation times, oldest first.

        Ties on the timestamp are broken by file name so the order is stable.
        """
        if not await aios.path.isdir(directory):
            return []
        files: list[tuple[Path, int]] = []
        for name in await aios.listdir(directory):
            path = directory / name
            try:
                stat_result = await aios.stat(path)
            except FileNotFoundError:
                continue
            if not stat.S_ISREG(stat_result.st_mode):
                continue
            files.append((path, _creation_time_ns(stat_result)))
        files.sort(key=lambda item: (item[1], item[0].name))
        return files

    def _path_for(self, key: str) -> Path | None:
        filename = key_to_filename(key)
        if filename is None:
            return None
        return self.directory / filename

    # -- Public API ------------------------------------------------------------

    async def save(self, key: str, data: bytes) -> None:
        """Write ``data`` to the file for ``key``, creating the folder if needed.

        Failures are logged and swallowed; the entry is simply not stored.
        """
        async with self._lock:
            try:
                await self._ensure_directory()
                path = self._path_for(key)
                if path is None:
                    logger.debug("Key %r has no file representation; not saved.", key)
                    self._stats["save_failures"] += 1
                    return
                async with aiofiles.open(path, mode="wb") as f:
                    await f.write(data)
                self._stats["saves"] += 1
                logger.debug("Saved %d bytes for key %r to %s", len(data), key, path)
            except (OSError, ConfigError) as e:
                self._stats["save_failures"] += 1
                logger.warning("Failed to save key %r to disk cache: %s", key, e)

    async def load(self, key: str) -> bytes | None:
        """Read the payload for ``key``.

        Returns:
            The stored bytes, or ``None`` if the file is missing or unreadable.
        """
        async with self._lock:
            try:
                path = self._path_for(key)
                if path is None or not await aios.path.isfile(path):
                    self._stats["misses"] += 1
                    return None
                async with aiofiles.open(path, mode="rb") as f:
                    data = await f.read()
                self._stats["hits"] += 1
                return data
            except (OSError, ConfigError) as e:
                self._stats["misses"] += 1
                logger.warning("Failed to load key %r from disk cache: %s", key, e)
                return None

    async def delete(self, key: str) -> bool:
        """Remove the file for ``key``.

        Returns:
            True if the file was removed; False if it did not exist or could
            not be removed.
        """
        async with self._lock:
            try:
                path = self._path_for(key)
                if path is None:
                    self._stats["delete_failures"] += 1
                    logger.debug("Key %r has no file representation; nothing deleted.", key)
                    return False
                await aios.remove(path)
                self._stats["deletes"] += 1
                return True
            except (OSError, ConfigError) as e:
                self._stats["delete_failures"] += 1
                logger.debug("Could not delete key %r from disk cache: %s", key, e)
                return False

    async def delete_all(self) -> bool:
        """Remove every file in the cache folder.

        The sweep stops at the first failure; files removed before it stay
        removed.

        Returns:
            True on success (an absent folder counts as empty), False if the
            folder cannot be resolved or a removal fails.
        """
        async with self._lock:
            try:
                directory = self.directory
                if not await aios.path.isdir(directory):
                    return True
                removed = 0
                for name in await aios.listdir(directory):
                    path = directory / name
                    if await aios.path.isdir(path):
                        await aios.rmdir(path)
                    else:
                        await aios.remove(path)
                    removed += 1
                self._stats["deletes"] += removed
                logger.debug("Deleted %d files from %s", removed, directory)
                return True
            except (OSError, ConfigError) as e:
                self._stats["delete_failures"] += 1
                logger.error("Failed to delete all files from disk cache: %s", e)
                return False

    async def check_and_enforce_count_limit(self) -> None:
        """Apply the policy's count limit; a limit of 0 disables it.

        Errors from :meth:`enforce_count_limit` are logged and swallowed.
        """
        if self._policy.count_limit <= 0:
            return
        try:
            removed = await self.enforce_count_limit(self._policy.count_limit)
        except (DiskCacheError, ConfigError) as e:
            log_display(logger, logging.WARNING, "Could not enforce disk cache count limit: %s", e)
            return
        if removed:
            log_display(
                logger,
                logging.INFO,
                "Disk cache %s trimmed to %d files (%d removed)",
                self._policy.cache_folder_name,
                self._policy.count_limit,
                removed,
            )

    async def enforce_count_limit(self, count_limit: int) -> int:
        """Keep the ``count_limit`` oldest files and remove all newer ones.

        Files are ordered by creation time ascending (ties by name); every
        file after the first ``count_limit`` is removed.

        Returns:
            Number of files removed.

        Raises:
            ConfigError: If the cache folder cannot be resolved.
            DiskCacheError: If listing or removing files fails.
        """
        async with self._lock:
            directory = self.directory
            try:
                files = await self._list_files(directory)
                excess = files[max(0, count_limit):]
                for path, _ in excess:
                    await aios.remove(path)
            except OSError as e:
                raise DiskCacheError(str(directory), f"Failed to enforce count limit: {e}") from e

            self._stats["enforced_removals"] += len(excess)
            if excess:
                logger.debug(
                    "Disk cache %s trimmed %d files to count limit %d.",
                    directory,
                    len(excess),
                    count_limit,
                )
            return len(excess)

    async def keys(self) -> list[str]:
        """Keys currently on disk, oldest file first."""
        async with self._lock:
            try:
                files = await self._list_files(self.directory)
            except (OSError, ConfigError) as e:
                logger.warning("Could not list disk cache: %s", e)
                return []
            return [filename_to_key(path.name) for path, _ in files]

    async def count(self) -> int:
        """Number of files in the cache folder."""
        return len(await self.keys())

    def stats(self) -> dict[str, Any]:
        """Return disk tier counters plus folder and limit."""
        total = self._stats["hits"] + self._stats["misses"]
        return {
            **self._stats,
            "cache_folder_name": self._policy.cache_folder_name,
            "count_limit": self._policy.count_limit,
            "hit_rate": self._stats["hits"] / total if total > 0 else 0.0,
        }


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_disk_store(policy: DiskPolicy | None = None) -> SerializedDiskStore:
    """Create a SerializedDiskStore instance from a policy."""
    return SerializedDiskStore(policy)


__all__ = [
    "SerializedDiskStore",
    "create_disk_store",
    "filename_to_key",
    "key_to_filename",
]
