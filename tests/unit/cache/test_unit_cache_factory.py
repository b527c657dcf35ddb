# tests/unit/cache/test_cache_factory.py — v4
"""Tests for cache/cache_factory.py."""

from __future__ import annotations

import pytest

from profilegen.cache.cache_factory import create_cache_store
from profilegen.cache.json_store import JsonCacheStore
from profilegen.cache.sqlite_store import SqliteCacheStore
from profilegen.config.settings import Settings


class TestCreateCacheStore:
    def test_json_backend(self, tmp_path):
        s = Settings(_env_file=None, cache_root=tmp_path)
        store = create_cache_store(s)
        assert isinstance(store, JsonCacheStore)
        assert store.manifest_path == tmp_path / "cache-manifest.json"

    def test_sqlite_backend(self, tmp_path):
        s = Settings(_env_file=None, cache_backend="sqlite", cache_root=tmp_path)
        store = create_cache_store(s)
        assert isinstance(store, SqliteCacheStore)
        assert (tmp_path / "profilegen_cache.db").exists()
        store.close()

    def test_max_age_from_settings(self, tmp_path):
        s = Settings(_env_file=None, cache_root=tmp_path, cache_max_age_days=30)
        assert create_cache_store(s).max_age.days == 30

    def test_unsupported_backend(self):
        """Settings validation rejects invalid backends before factory is reached."""
        with pytest.raises(ValueError):
            create_cache_store(Settings(_env_file=None, cache_backend="nonexistent"))
