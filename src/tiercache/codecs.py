# src/tiercache/codecs.py
"""
Value codecs used by the typed front ends.

A codec turns a memory-tier value into the bytes stored on disk and back.
Codecs raise :class:`~tiercache.exceptions.CodecError` on failure; callers
in this package treat that as a cache miss (or a skipped write-back).
"""

from __future__ import annotations

import io
import json
import logging
from abc import ABC, abstractmethod
from typing import Any

import pydantic_core
from PIL import Image, UnidentifiedImageError
from pydantic import TypeAdapter, ValidationError

from .exceptions import CodecError

logger = logging.getLogger(__name__)


class Codec(ABC):
    """Converts values to bytes for the disk tier and back."""

    name: str = "codec"

    @abstractmethod
    def encode(self, value: Any) -> bytes:
        """Encode ``value``; raises CodecError on failure."""

    @abstractmethod
    def decode(self, data: bytes) -> Any:
        """Decode ``data``; raises CodecError on failure."""


class BytesCodec(Codec):
    """Identity codec for raw byte payloads."""

    name = "bytes"

    def encode(self, value: Any) -> bytes:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise CodecError(self.name, f"expected bytes, got {type(value).__name__}")
        return bytes(value)

    def decode(self, data: bytes) -> bytes:
        return bytes(data)


class JsonCodec(Codec):
    """JSON codec backed by pydantic.

    Encodes anything pydantic can serialize: plain JSON types, pydantic
    models, dataclasses, datetimes and so on. Decoding without a target type
    returns plain JSON values; with ``type_`` the payload is validated into
    that type (e.g. a pydantic model or ``list[int]``).
    """

    name = "json"

    def __init__(self) -> None:
        self._adapters: dict[Any, TypeAdapter[Any]] = {}

    def _adapter(self, type_: Any) -> TypeAdapter[Any]:
        try:
            return self._adapters[type_]
        except (KeyError, TypeError):
            adapter: TypeAdapter[Any] = TypeAdapter(type_)
            try:
                self._adapters[type_] = adapter
            except TypeError:
                pass  # unhashable type hint, not cached
            return adapter

    def encode(self, value: Any) -> bytes:
        try:
            return pydantic_core.to_json(value)
        except pydantic_core.PydanticSerializationError as e:
            raise CodecError(self.name, f"cannot serialize {type(value).__name__}: {e}") from e

    def decode(self, data: bytes, type_: Any = None) -> Any:
        try:
            if type_ is None:
                return json.loads(data)
            return self._adapter(type_).validate_json(data)
        except (ValueError, ValidationError) as e:
            raise CodecError(self.name, f"cannot decode payload: {e}") from e


class PngImageCodec(Codec):
    """Pillow codec storing images as PNG."""

    name = "png"

    def encode(self, value: Any) -> bytes:
        if not isinstance(value, Image.Image):
            raise CodecError(self.name, f"expected a PIL image, got {type(value).__name__}")
        buffer = io.BytesIO()
        try:
            value.save(buffer, format="PNG")
        except (OSError, ValueError) as e:
            raise CodecError(self.name, f"cannot encode image: {e}") from e
        return buffer.getvalue()

    def decode(self, data: bytes) -> Image.Image:
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise CodecError(self.name, f"cannot decode image: {e}") from e
        return image


__all__ = ["BytesCodec", "Codec", "JsonCodec", "PngImageCodec"]
