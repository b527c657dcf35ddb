# src/cache/json_store.py — v3
"""JSON manifest cache store (default CACHE_BACKEND=json).

All entries live in one manifest file, rewritten atomically on every put.
Writers are serialized by an asyncio lock inside the process and an fcntl
lock file across processes; each write re-reads the manifest and merges its
own key so concurrent writers for different entities never lose each other.
"""

from __future__ import annotations

import asyncio
import fcntl
import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path

from pydantic import ValidationError

from profilegen.cache.base_cache_store import DEFAULT_MAX_AGE, BaseCacheStore, atomic_write_bytes
from profilegen.cache.models import CacheEntry, Manifest
from profilegen.core.errors import CachePersistenceError
from profilegen.core.models import Artifact, UploadResult

logger = logging.getLogger(__name__)

LOCK_POLL_INTERVAL_S = 0.05


class JsonCacheStore(BaseCacheStore):
    """Manifest-file cache store."""

    def __init__(
        self,
        manifest_path: Path | str,
        max_age: timedelta = DEFAULT_MAX_AGE,
        image_dir: Path | str | None = None,
        lock_timeout_s: float = 10.0,
    ) -> None:
        super().__init__(max_age=max_age, image_dir=image_dir)
        self._lock_timeout_s = lock_timeout_s
        self._path = Path(manifest_path).expanduser()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock_path = self._path.with_name(self._path.name + ".lock")
        self._lock = asyncio.Lock()
        self._entries: dict[str, CacheEntry] = {}
        self._loaded_mtime: int | None = None
        self._reload()

    @property
    def manifest_path(self) -> Path:
        return self._path

    async def lookup(self, entity_id: str) -> CacheEntry | None:
        """Retrieve the entry for an entity, picking up external writes."""
        if self._changed_on_disk():
            self._reload()
        return self._entries.get(entity_id)

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
        """Replace the entry for an entity and persist the manifest."""
        entry = self._build_entry(
            entity_id, fingerprint, upload_result, prompt, source, artifact
        )
        async with self._lock:
            async with self._file_lock():
                manifest = self._read_for_update()
                manifest.images[entity_id] = entry
                self._persist(manifest)
        logger.debug("Cache entry written for %s", entity_id)
        return entry

    async def delete(self, entity_id: str) -> None:
        """Remove an entry and persist the manifest."""
        async with self._lock:
            async with self._file_lock():
                manifest = self._read_for_update()
                if manifest.images.pop(entity_id, None) is None:
                    self._entries = dict(manifest.images)
                    return
                self._persist(manifest)

    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries."""
        if self._changed_on_disk():
            self._reload()
        return list(self._entries.values())

    # --- internals ---

    def _persist(self, manifest: Manifest) -> None:
        payload = manifest.model_dump_json(by_alias=True, indent=2).encode("utf-8")
        try:
            atomic_write_bytes(self._path, payload)
        except OSError as e:
            raise CachePersistenceError(
                f"Failed to write cache manifest {self._path}: {e}"
            ) from e
        self._entries = dict(manifest.images)
        self._loaded_mtime = self._current_mtime()

    def _read_for_update(self) -> Manifest:
        """Read the on-disk manifest, keeping in-memory entries if it is unreadable."""
        manifest = self._read_manifest()
        if manifest is None:
            return Manifest(images=dict(self._entries))
        return manifest

    def _read_manifest(self) -> Manifest | None:
        if not self._path.exists():
            return Manifest()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return Manifest.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error("Error loading cache manifest %s: %s", self._path, e)
            return None

    def _reload(self) -> None:
        manifest = self._read_manifest()
        if manifest is not None:
            self._entries = dict(manifest.images)
        self._loaded_mtime = self._current_mtime()

    def _current_mtime(self) -> int | None:
        try:
            return self._path.stat().st_mtime_ns
        except FileNotFoundError:
            return None

    def _changed_on_disk(self) -> bool:
        return self._current_mtime() != self._loaded_mtime

    @asynccontextmanager
    async def _file_lock(self) -> AsyncIterator[None]:
        """Hold the cross-process manifest lock without blocking the event loop."""
        try:
            fh = open(self._lock_path, "a+")  # noqa: SIM115
        except OSError as e:
            raise CachePersistenceError(f"Cannot open manifest lock {self._lock_path}: {e}") from e
        try:
            await self._acquire(fh.fileno())
            try:
                yield
            finally:
                fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
        finally:
            fh.close()

    async def _acquire(self, fd: int) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._lock_timeout_s
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                return
            except BlockingIOError:
                if loop.time() >= deadline:
                    raise CachePersistenceError(
                        f"Timed out after {self._lock_timeout_s}s waiting for manifest lock {self._lock_path}"
                    ) from None
                await asyncio.sleep(LOCK_POLL_INTERVAL_S)
