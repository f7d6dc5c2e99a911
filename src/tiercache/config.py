# src/tiercache/config.py
"""
Pydantic models for tiercache configuration.

Every cache is described by a :class:`CachePolicy`, which bundles one
:class:`MemoryPolicy` (bounded in-memory tier) and one :class:`DiskPolicy`
(file-per-key disk tier). All fields carry defaults, so ``CachePolicy()`` is
a usable configuration.

Policies can be built in code, from a plain dictionary, or from the
``[tiercache]`` section of a TOML file via :func:`load_cache_config`::

    [tiercache]
    writeback_max_pending = 512

    [tiercache.memory]
    name = "thumbnails"
    count_limit = 200

    [tiercache.disk]
    cache_folder_name = "thumbnails"
    count_limit = 1000

Cache root resolution order for the disk tier:

1. ``DiskPolicy.cache_root`` when set
2. ``$TIERCACHE_CACHE_DIR``
3. ``$XDG_CACHE_HOME``
4. ``~/.cache``

Two caches must not be configured with the same ``cache_folder_name`` under
the same root; the disk tier does no cross-instance coordination.

Constructing a policy directly with invalid values raises pydantic
``ValidationError``; :func:`load_cache_config` reports the same failures,
and malformed TOML, as :class:`~tiercache.exceptions.ConfigError`.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .exceptions import ConfigError

CACHE_DIR_ENV_VAR = "TIERCACHE_CACHE_DIR"


# =============================================================================
# TIER POLICIES
# =============================================================================


class MemoryPolicy(BaseModel):
    """Configuration for the bounded in-memory tier.

    Attributes:
        name: Label used in log messages and statistics.
        count_limit: Maximum number of entries (0 = unlimited).
        total_cost_limit: Maximum aggregate cost of all entries (0 = unlimited).
    """

    name: str = Field(default="tiercache_memory", description="Debug label for the memory tier")
    count_limit: int = Field(default=100, ge=0, description="Max entries (0=unlimited)")
    total_cost_limit: int = Field(default=0, ge=0, description="Max aggregate cost (0=unlimited)")


class DiskPolicy(BaseModel):
    """Configuration for the file-per-key disk tier.

    Attributes:
        cache_folder_name: Directory name under the cache root. Must be a
            single path component, else ``ValidationError``.
        count_limit: Maximum number of retained files (0 = unlimited).
        cache_root: Explicit cache root; ``None`` resolves from the
            environment (see module docstring).
    """

    cache_folder_name: str = Field(
        default="tiercache_disk", description="Folder under the cache root"
    )
    count_limit: int = Field(default=100, ge=0, description="Max retained files (0=unlimited)")
    cache_root: str | None = Field(default=None, description="Override for the cache root")

    @field_validator("cache_folder_name")
    @classmethod
    def _single_component(cls, value: str) -> str:
        if not value or value in (".", "..") or "/" in value or "\\" in value:
            raise ValueError(
                f"cache_folder_name must be a single path component, got {value!r}"
            )
        return value

    def resolve_directory(self) -> Path:
        """Return ``<cache-root>/<cache_folder_name>`` without creating it.

        Raises:
            ConfigError: If no cache root can be determined.
        """
        return resolve_cache_root(self.cache_root) / self.cache_folder_name


class CachePolicy(BaseModel):
    """Memory and disk policy for one tiered cache instance.

    Attributes:
        memory: Policy for the in-memory tier.
        disk: Policy for the disk tier.
        writeback_max_pending: Capacity of the eviction write-back queue.
    """

    memory: MemoryPolicy = Field(default_factory=MemoryPolicy)
    disk: DiskPolicy = Field(default_factory=DiskPolicy)
    writeback_max_pending: int = Field(
        default=1024, ge=1, description="Max queued eviction write-backs"
    )

    @classmethod
    def named(cls, name: str, **overrides: Any) -> "CachePolicy":
        """Build a policy whose memory label and disk folder are both ``name``.

        Limits keep their defaults unless given in ``overrides`` as
        ``memory_count_limit``, ``total_cost_limit``, ``disk_count_limit``,
        ``cache_root`` or ``writeback_max_pending``.
        """
        memory = MemoryPolicy(
            name=name,
            count_limit=overrides.get("memory_count_limit", MemoryPolicy().count_limit),
            total_cost_limit=overrides.get("total_cost_limit", 0),
        )
        disk = DiskPolicy(
            cache_folder_name=name,
            count_limit=overrides.get("disk_count_limit", DiskPolicy().count_limit),
            cache_root=overrides.get("cache_root"),
        )
        return cls(
            memory=memory,
            disk=disk,
            writeback_max_pending=overrides.get("writeback_max_pending", 1024),
        )


# =============================================================================
# HELPERS
# =============================================================================


def resolve_cache_root(explicit: str | None = None) -> Path:
    """Resolve the directory that holds every cache folder.

    Args:
        explicit: Root given in the policy; wins over the environment.

    Returns:
        Absolute, user-expanded path. The directory may not exist yet.

    Raises:
        ConfigError: If the home directory cannot be determined.
    """
    candidate = explicit or os.environ.get(CACHE_DIR_ENV_VAR) or os.environ.get("XDG_CACHE_HOME")
    try:
        if candidate:
            return Path(candidate).expanduser().resolve()
        return (Path.home() / ".cache").resolve()
    except (RuntimeError, OSError) as e:
        raise ConfigError(f"Could not resolve cache root directory: {e}") from e


def load_cache_config(
    config_path: str | Path | None = None,
    config_dict: dict[str, Any] | None = None,
    section: str = "tiercache",
) -> CachePolicy:
    """Load a :class:`CachePolicy` from a TOML file and/or a dictionary.

    Values from ``config_dict`` take precedence over the file. Both may
    contain the section key (``{"tiercache": {...}}``) or be the section
    itself.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        ConfigError: If the file is not valid TOML or the values fail
            validation.
    """
    data: dict[str, Any] = {}

    if config_path is not None:
        import tomllib

        path = Path(config_path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        try:
            with open(path, "rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}") from e
        data = raw.get(section, {})

    if config_dict is not None:
        if section in config_dict:
            data = {**data, **config_dict[section]}
        else:
            data = {**data, **config_dict}

    try:
        return CachePolicy(**data)
    except ValueError as e:
        raise ConfigError(f"Invalid cache configuration: {e}") from e


__all__ = [
    "CACHE_DIR_ENV_VAR",
    "CachePolicy",
    "DiskPolicy",
    "MemoryPolicy",
    "load_cache_config",
    "resolve_cache_root",
]
