# src/tiercache/exceptions.py
"""
Custom exceptions for the tiercache library.

This module defines a small hierarchy of exception classes so callers can
tell configuration problems apart from storage and codec failures.

Most cache operations never raise: disk reads and writes degrade to a miss
or a no-op, and codec failures are treated as a miss by the typed front
ends. These exceptions surface where a caller asked for something strict
(e.g. ``enforce_count_limit``) or where the cache cannot be set up at all.
"""

class TierCacheError(Exception):
    """Base class for all tiercache specific errors."""
    def __init__(self, message: str = "An unspecified error occurred in tiercache."):
        super().__init__(message)

class ConfigError(TierCacheError):
    """Raised when a cache policy is invalid or the cache directory cannot be resolved or created."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message)

class StorageError(TierCacheError):
    """Base class for errors related to storage operations."""
    def __init__(self, message: str = "Storage error."):
        super().__init__(message)

class DiskCacheError(StorageError):
    """Raised for filesystem failures in the disk tier that the caller asked to see."""
    def __init__(self, directory: str = "Unknown", message: str = "Disk cache error."):
        self.directory = directory
        super().__init__(f"{message} Directory: '{directory}'")

class CodecError(TierCacheError):
    """Raised when a value cannot be encoded to or decoded from bytes."""
    def __init__(self, codec_name: str = "Unknown", message: str = "Codec error."):
        self.codec_name = codec_name
        super().__init__(f"Error with codec '{codec_name}': {message}")
