# src/cache/base_cache_store.py — v2
"""Abstract cache store interface plus the shared freshness policy."""

from __future__ import annotations

import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from pathlib import Path

from profilegen.cache.models import CacheEntry
from profilegen.core.models import Artifact, UploadResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(days=180)

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends.

    One live entry per entity id. ``put`` replaces, never appends, and must
    reach durable storage before returning.
    """

    def __init__(
        self,
        max_age: timedelta = DEFAULT_MAX_AGE,
        image_dir: Path | str | None = None,
    ) -> None:
        self._max_age = max_age
        self._image_dir = Path(image_dir).expanduser() if image_dir else None

    @property
    def max_age(self) -> timedelta:
        return self._max_age

    @abstractmethod
    async def lookup(self, entity_id: str) -> CacheEntry | None:
        """Return the entry for ``entity_id`` or None."""

    @abstractmethod
    async def put(
        self,
        entity_id: str,
        fingerprint: str,
        upload_result: UploadResult,
        *,
        prompt: str | None = None,
        source: str | None = None,
        artifact: Artifact | None = None,
    ) -> CacheEntry:
        """Atomically replace the entry for ``entity_id``.

        Raises:
            CachePersistenceError: If the durable write failed.
        """

    @abstractmethod
    async def delete(self, entity_id: str) -> None:
        """Remove the entry for ``entity_id`` if present."""

    @abstractmethod
    async def list_entries(self) -> list[CacheEntry]:
        """List all live entries."""

    def is_fresh(
        self,
        entry: CacheEntry,
        fingerprint: str,
        now: datetime | None = None,
    ) -> bool:
        """Whether ``entry`` may be reused for a request with ``fingerprint``."""
        if entry.fingerprint != fingerprint:
            return False
        now = now or datetime.now(timezone.utc)
        return now - _as_utc(entry.created_at) <= self._max_age

    async def evict_expired(self, now: datetime | None = None) -> list[str]:
        """Delete entries older than the max age. Returns evicted ids."""
        now = now or datetime.now(timezone.utc)
        evicted: list[str] = []
        for entry in await self.list_entries():
            if now - _as_utc(entry.created_at) > self._max_age:
                await self.delete(entry.entity_id)
                self._remove_local_copy(entry)
                evicted.append(entry.entity_id)
        if evicted:
            logger.info("Evicted %d expired cache entries", len(evicted))
        return evicted

    def _build_entry(
        self,
        entity_id: str,
        fingerprint: str,
        upload_result: UploadResult,
        prompt: str | None,
        source: str | None,
        artifact: Artifact | None,
    ) -> CacheEntry:
        return CacheEntry(
            entity_id=entity_id,
            fingerprint=fingerprint,
            artifact_url=upload_result.url,
            cdn_file_id=upload_result.cdn_file_id,
            created_at=datetime.now(timezone.utc),
            prompt=prompt,
            source=source,
            size_bytes=upload_result.size_bytes,
            local_path=self._write_local_copy(entity_id, artifact),
        )

    def _write_local_copy(self, entity_id: str, artifact: Artifact | None) -> str | None:
        """Keep a disposable local copy of the artifact. Failure is not fatal."""
        if self._image_dir is None or artifact is None:
            return None
        safe_id = _UNSAFE_NAME_CHARS.sub("_", entity_id)
        path = self._image_dir / f"{safe_id}.{artifact.extension}"
        try:
            atomic_write_bytes(path, artifact.data)
        except OSError as e:
            logger.warning("Could not keep local copy for %s: %s", entity_id, e)
            return None
        return str(path)

    def _remove_local_copy(self, entry: CacheEntry) -> None:
        if entry.local_path:
            Path(entry.local_path).unlink(missing_ok=True)


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` via a fsynced temp file and os.replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
