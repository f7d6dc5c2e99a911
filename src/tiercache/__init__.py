# src/tiercache/__init__.py
"""
tiercache - two-tier (memory + disk) caching for Python applications.

A bounded, thread-safe LRU memory tier sits in front of a file-per-key disk
tier. Entries evicted from memory by capacity pressure are written back to
disk in the background; reads fall through to disk on a memory miss and
promote the hit back into memory. Explicit deletes are never written back.

Typed front ends:
- :class:`DataCache` for ``bytes``
- :class:`ObjectCache` for JSON-serializable values and pydantic models
- :class:`ImageCache` for Pillow images

Quick start::

    from tiercache import ImageCache

    async with ImageCache(ImageCache.default_policy(disk_count_limit=500)) as cache:
        cache.save(image, "https://example.com/a.png")
        image = await cache.image("https://example.com/a.png")
"""

from .codecs import BytesCodec, Codec, JsonCodec, PngImageCodec
from .config import (
    CACHE_DIR_ENV_VAR,
    CachePolicy,
    DiskPolicy,
    MemoryPolicy,
    load_cache_config,
    resolve_cache_root,
)
from .exceptions import (
    CodecError,
    ConfigError,
    DiskCacheError,
    StorageError,
    TierCacheError,
)
from .frontends import CacheFrontEnd, DataCache, ImageCache, ImageKey, ObjectCache, image_key
from .logging_config import configure_logging, log_display
from .tiered import TieredCache
from .tiers import (
    BoundedMemoryStore,
    CacheEntry,
    RemovalMode,
    SerializedDiskStore,
)
from .writeback import WriteBackQueue

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Config
    "CACHE_DIR_ENV_VAR",
    "CachePolicy",
    "DiskPolicy",
    "MemoryPolicy",
    "load_cache_config",
    "resolve_cache_root",
    # Exceptions
    "CodecError",
    "ConfigError",
    "DiskCacheError",
    "StorageError",
    "TierCacheError",
    # Tiers
    "BoundedMemoryStore",
    "CacheEntry",
    "RemovalMode",
    "SerializedDiskStore",
    "WriteBackQueue",
    "TieredCache",
    # Codecs
    "BytesCodec",
    "Codec",
    "JsonCodec",
    "PngImageCodec",
    # Front ends
    "CacheFrontEnd",
    "DataCache",
    "ImageCache",
    "ImageKey",
    "ObjectCache",
    "image_key",
    # Logging
    "configure_logging",
    "log_display",
]
