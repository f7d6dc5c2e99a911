# tests/test_exceptions.py
"""Tests for the tiercache exception hierarchy."""

import pytest

from tiercache.exceptions import (
    CodecError,
    ConfigError,
    DiskCacheError,
    StorageError,
    TierCacheError,
)


class TestExceptionHierarchy:
    """Tests for inheritance and messages."""

    @pytest.mark.parametrize("exc_type", [ConfigError, StorageError, DiskCacheError, CodecError])
    def test_all_derive_from_base(self, exc_type):
        assert issubclass(exc_type, TierCacheError)

    def test_disk_cache_error_is_storage_error(self):
        assert issubclass(DiskCacheError, StorageError)

    def test_default_messages(self):
        assert str(TierCacheError()) == "An unspecified error occurred in tiercache."
        assert str(ConfigError()) == "Configuration error."

    def test_disk_cache_error_carries_directory(self):
        err = DiskCacheError("/tmp/cache", "Failed to trim.")
        assert err.directory == "/tmp/cache"
        assert str(err) == "Failed to trim. Directory: '/tmp/cache'"

    def test_codec_error_carries_codec_name(self):
        err = CodecError("png", "cannot decode image")
        assert err.codec_name == "png"
        assert str(err) == "Error with codec 'png': cannot decode image"

    def test_catchable_as_base(self):
        with pytest.raises(TierCacheError):
            raise DiskCacheError()
