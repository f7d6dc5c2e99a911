# tests/test_codecs.py
"""Tests for the value codecs."""

import pytest
from PIL import Image
from pydantic import BaseModel

from tiercache.codecs import BytesCodec, JsonCodec, PngImageCodec
from tiercache.exceptions import CodecError


class Point(BaseModel):
    x: int
    y: int


class TestBytesCodec:

    def test_passthrough(self):
        codec = BytesCodec()
        assert codec.encode(memoryview(b"abc")) == b"abc"
        assert codec.decode(b"abc") == b"abc"

    def test_rejects_str(self):
        with pytest.raises(CodecError):
            BytesCodec().encode("abc")


class TestJsonCodec:

    def test_model_to_typed_value(self):
        codec = JsonCodec()
        data = codec.encode(Point(x=1, y=2))
        assert codec.decode(data) == {"x": 1, "y": 2}
        assert codec.decode(data, Point) == Point(x=1, y=2)

    def test_generic_type_hint(self):
        codec = JsonCodec()
        assert codec.decode(b"[1, 2]", list[int]) == [1, 2]

    def test_encode_failure(self):
        with pytest.raises(CodecError) as exc_info:
            JsonCodec().encode(object())
        assert exc_info.value.codec_name == "json"

    def test_decode_failure(self):
        with pytest.raises(CodecError):
            JsonCodec().decode(b"{broken")
        with pytest.raises(CodecError):
            JsonCodec().decode(b'{"x": "nope"}', Point)


class TestPngImageCodec:

    def test_encode_decode(self):
        codec = PngImageCodec()
        image = Image.new("RGBA", (3, 2), (1, 2, 3, 4))
        data = codec.encode(image)
        assert data.startswith(b"\x89PNG")

        restored = codec.decode(data)
        assert restored.size == (3, 2)
        assert restored.getpixel((0, 0)) == (1, 2, 3, 4)

    def test_rejects_non_image(self):
        with pytest.raises(CodecError):
            PngImageCodec().encode(b"raw")

    def test_decode_garbage(self):
        with pytest.raises(CodecError):
            PngImageCodec().decode(b"garbage")
