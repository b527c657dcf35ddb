# src/cache/cache_factory.py — v3
"""Factory for cache store instantiation."""

from __future__ import annotations

from profilegen.cache.base_cache_store import BaseCacheStore
from profilegen.config.settings import Settings


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to the JSON manifest backend.

    Returns:
        Configured BaseCacheStore implementation.
    """
    settings = settings or Settings()
    image_dir = settings.image_dir if settings.cache_keep_local_copy else None

    if settings.cache_backend == "json":
        from profilegen.cache.json_store import JsonCacheStore
        return JsonCacheStore(
            manifest_path=settings.manifest_path,
            max_age=settings.cache_max_age,
            image_dir=image_dir,
        )

    if settings.cache_backend == "sqlite":
        from profilegen.cache.sqlite_store import SqliteCacheStore
        db_path = settings.cache_root.expanduser() / "profilegen_cache.db"
        return SqliteCacheStore(
            db_path=db_path,
            max_age=settings.cache_max_age,
            image_dir=image_dir,
        )

    raise ValueError(f"Unsupported cache backend: {settings.cache_backend!r}")
