# src/tiercache/tiers/__init__.py
"""
Storage Tiers Package.

Tiers:
- **BoundedMemoryStore** (hot): thread-safe LRU store bounded by entry count
  and total cost, reporting evictions to an observer
- **SerializedDiskStore** (cold): one file per key, all operations of an
  instance serialized, retained file count capped

Architecture::

    BoundedMemoryStore ──(eviction write-back)──► SerializedDiskStore
         (memory)                                    (files)
"""

from .disk import (
    SerializedDiskStore,
    create_disk_store,
    filename_to_key,
    key_to_filename,
)
from .memory import (
    DEFAULT_COST,
    BoundedMemoryStore,
    CacheEntry,
    EvictionObserver,
    RemovalMode,
    create_memory_store,
)

__all__ = [
    # Memory (hot)
    "DEFAULT_COST",
    "BoundedMemoryStore",
    "CacheEntry",
    "EvictionObserver",
    "RemovalMode",
    "create_memory_store",
    # Disk (cold)
    "SerializedDiskStore",
    "create_disk_store",
    "filename_to_key",
    "key_to_filename",
]
