# src/tiercache/frontends/image_cache.py
"""
Image cache: decoded Pillow images in memory, PNG files on disk.

Images are kept decoded in the memory tier and only encoded to PNG when they
are evicted. Images that cannot be encoded are not written back. Keys are
strings; parsed URLs from :mod:`urllib.parse` are accepted and keyed by
their full URL string.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Union
from urllib.parse import ParseResult, SplitResult

from PIL import Image

from ..codecs import PngImageCodec
from ..config import CachePolicy
from .base import CacheFrontEnd

logger = logging.getLogger(__name__)

ImageKey = Union[str, ParseResult, SplitResult]


def image_key(key: ImageKey) -> str:
    """Normalize a string or parsed URL into a cache key."""
    if isinstance(key, (ParseResult, SplitResult)):
        return key.geturl()
    return key


class ImageCache(CacheFrontEnd):
    """Two-tier cache for :class:`PIL.Image.Image` objects."""

    default_folder = "tiercache_image"

    def __init__(self, policy: CachePolicy | None = None) -> None:
        super().__init__(policy, PngImageCodec())

    def save(self, image: Image.Image, key: ImageKey, cost: int | None = None) -> None:
        if not isinstance(image, Image.Image):
            raise TypeError(f"ImageCache stores PIL images, got {type(image).__name__}")
        self._cache.put(image_key(key), image, cost)

    async def image(self, key: ImageKey) -> Image.Image | None:
        """Return the image for ``key`` from memory, else decoded from disk."""
        return await self._cache.get(image_key(key))

    def image_with_callback(
        self, key: ImageKey, callback: Callable[[Image.Image | None], None]
    ) -> asyncio.Task[None] | None:
        return self._cache.load_with_callback(image_key(key), callback)

    def image_blocking(self, key: ImageKey, timeout: float | None = None) -> Image.Image | None:
        return self._cache.get_blocking(image_key(key), timeout)

    async def delete(self, key: ImageKey) -> bool:
        return await super().delete(image_key(key))


__all__ = ["ImageCache", "ImageKey", "image_key"]
