# tests/conftest.py
"""
Shared fixtures for tiercache tests.

Every test runs with ``$TIERCACHE_CACHE_DIR`` pointing into its own
``tmp_path`` so nothing is ever written under the real user cache.
"""

from pathlib import Path

import pytest

from tiercache.config import CACHE_DIR_ENV_VAR, CachePolicy, DiskPolicy


@pytest.fixture(autouse=True)
def isolated_cache_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the default cache root at a per-test directory."""
    root = tmp_path / "env-cache"
    monkeypatch.setenv(CACHE_DIR_ENV_VAR, str(root))
    return root


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    """Explicit cache root for policies under test."""
    root = tmp_path / "cache"
    root.mkdir()
    return root


@pytest.fixture
def disk_policy(cache_root: Path) -> DiskPolicy:
    """Disk policy with the default count limit under ``cache_root``."""
    return DiskPolicy(cache_folder_name="test_disk", cache_root=str(cache_root))


@pytest.fixture
def small_policy(cache_root: Path) -> CachePolicy:
    """Policy with a two-entry memory tier and an unlimited disk tier."""
    return CachePolicy.named(
        "test_cache",
        memory_count_limit=2,
        disk_count_limit=0,
        cache_root=str(cache_root),
    )
