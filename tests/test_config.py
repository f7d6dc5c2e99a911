# tests/test_config.py
"""Tests for the pydantic cache policies and the TOML loader."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from tiercache.config import (
    CACHE_DIR_ENV_VAR,
    CachePolicy,
    DiskPolicy,
    MemoryPolicy,
    load_cache_config,
    resolve_cache_root,
)
from tiercache.exceptions import ConfigError


class TestPolicies:
    """Tests for defaults and validation."""

    def test_defaults(self):
        policy = CachePolicy()
        assert policy.memory.count_limit == 100
        assert policy.memory.total_cost_limit == 0
        assert policy.disk.count_limit == 100
        assert policy.writeback_max_pending == 1024

    def test_negative_limits_rejected(self):
        with pytest.raises(ValidationError):
            MemoryPolicy(count_limit=-1)
        with pytest.raises(ValidationError):
            DiskPolicy(count_limit=-5)

    @pytest.mark.parametrize("name", ["", ".", "..", "a/b", "a\\b"])
    def test_folder_name_must_be_single_component(self, name):
        with pytest.raises(ValidationError):
            DiskPolicy(cache_folder_name=name)

    def test_named(self):
        policy = CachePolicy.named("thumbs", disk_count_limit=5, total_cost_limit=99)
        assert policy.memory.name == "thumbs"
        assert policy.disk.cache_folder_name == "thumbs"
        assert policy.disk.count_limit == 5
        assert policy.memory.total_cost_limit == 99
        assert policy.memory.count_limit == 100


class TestCacheRoot:
    """Tests for cache root resolution."""

    def test_explicit_root_wins(self, tmp_path):
        assert resolve_cache_root(str(tmp_path)) == tmp_path.resolve()

    def test_env_var(self, tmp_path, monkeypatch):
        monkeypatch.setenv(CACHE_DIR_ENV_VAR, str(tmp_path / "env"))
        assert resolve_cache_root() == (tmp_path / "env").resolve()

    def test_xdg_cache_home(self, tmp_path, monkeypatch):
        monkeypatch.delenv(CACHE_DIR_ENV_VAR, raising=False)
        monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg"))
        assert resolve_cache_root() == (tmp_path / "xdg").resolve()

    def test_home_fallback(self, tmp_path, monkeypatch):
        monkeypatch.delenv(CACHE_DIR_ENV_VAR, raising=False)
        monkeypatch.delenv("XDG_CACHE_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert resolve_cache_root() == (tmp_path / ".cache").resolve()

    def test_unresolvable_home_raises_config_error(self, monkeypatch):
        monkeypatch.delenv(CACHE_DIR_ENV_VAR, raising=False)
        monkeypatch.delenv("XDG_CACHE_HOME", raising=False)

        def no_home(cls):
            raise RuntimeError("Could not determine home directory.")

        monkeypatch.setattr(Path, "home", classmethod(no_home))
        with pytest.raises(ConfigError):
            resolve_cache_root()

    def test_resolve_directory(self, tmp_path):
        policy = DiskPolicy(cache_folder_name="imgs", cache_root=str(tmp_path))
        assert policy.resolve_directory() == tmp_path.resolve() / "imgs"


class TestLoadCacheConfig:
    """Tests for load_cache_config."""

    def test_from_toml(self, tmp_path):
        path = tmp_path / "cache.toml"
        path.write_text(
            "[tiercache]\n"
            "writeback_max_pending = 8\n"
            "[tiercache.memory]\n"
            "count_limit = 3\n"
            "[tiercache.disk]\n"
            'cache_folder_name = "thumbs"\n'
        )
        policy = load_cache_config(config_path=path)
        assert policy.writeback_max_pending == 8
        assert policy.memory.count_limit == 3
        assert policy.disk.cache_folder_name == "thumbs"

    def test_dict_overrides_file(self, tmp_path):
        path = tmp_path / "cache.toml"
        path.write_text("[tiercache]\nwriteback_max_pending = 8\n")
        policy = load_cache_config(path, {"tiercache": {"writeback_max_pending": 16}})
        assert policy.writeback_max_pending == 16

    def test_dict_without_section(self):
        policy = load_cache_config(config_dict={"memory": {"count_limit": 7}})
        assert policy.memory.count_limit == 7

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_cache_config(tmp_path / "absent.toml")

    def test_malformed_toml_raises_config_error(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[tiercache\nwriteback_max_pending = \n")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_cache_config(path)

    def test_invalid_values_raise_config_error(self):
        with pytest.raises(ConfigError):
            load_cache_config(config_dict={"disk": {"cache_folder_name": ".."}})

    def test_no_sources_gives_defaults(self):
        assert load_cache_config() == CachePolicy()
