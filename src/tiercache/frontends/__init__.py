# src/tiercache/frontends/__init__.py
"""
Typed cache front ends.

Each front end owns one :class:`~tiercache.tiered.TieredCache` specialized
with a value codec:

- **DataCache**: raw ``bytes``
- **ObjectCache**: JSON via pydantic (models, dataclasses, plain values)
- **ImageCache**: Pillow images, PNG on disk

There are no shared instances. Construct one per cache folder, hand it to
the code that needs it and ``close()`` it on shutdown.
"""

from .base import CacheFrontEnd
from .data_cache import DataCache
from .image_cache import ImageCache, ImageKey, image_key
from .object_cache import ObjectCache

__all__ = [
    "CacheFrontEnd",
    "DataCache",
    "ImageCache",
    "ImageKey",
    "ObjectCache",
    "image_key",
]
