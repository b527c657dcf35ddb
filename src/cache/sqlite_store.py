# src/cache/sqlite_store.py — v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3. Each put is a single-row upsert committed before
returning, so SQLite's own locking covers concurrent writers.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import timedelta
from pathlib import Path

from pydantic import ValidationError

from profilegen.cache.base_cache_store import DEFAULT_MAX_AGE, BaseCacheStore
from profilegen.cache.models import CacheEntry
from profilegen.core.errors import CachePersistenceError
from profilegen.core.models import Artifact, UploadResult

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_entries (
    entity_id TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    fingerprint TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_created_at ON cache_entries(created_at);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store."""

    def __init__(
        self,
        db_path: Path | str,
        max_age: timedelta = DEFAULT_MAX_AGE,
        image_dir: Path | str | None = None,
    ) -> None:
        super().__init__(max_age=max_age, image_dir=image_dir)
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), timeout=10.0)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def lookup(self, entity_id: str) -> CacheEntry | None:
        """Retrieve the entry for an entity."""
        cursor = self._conn.execute(
            "SELECT data FROM cache_entries WHERE entity_id = ?", (entity_id,)
        )
        row = cursor.fetchone()
        if row is None:
            return None
        try:
            return CacheEntry.model_validate_json(row[0])
        except ValidationError as e:
            logger.warning("Failed to deserialize cache entry %s: %s", entity_id, e)
            return None

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
        """Upsert the entry for an entity."""
        entry = self._build_entry(
            entity_id, fingerprint, upload_result, prompt, source, artifact
        )
        try:
            with self._conn:
                self._conn.execute(
                    """INSERT OR REPLACE INTO cache_entries
                       (entity_id, data, fingerprint, created_at)
                       VALUES (?, ?, ?, ?)""",
                    (
                        entity_id,
                        entry.model_dump_json(by_alias=True),
                        entry.fingerprint,
                        entry.created_at.isoformat(),
                    ),
                )
        except sqlite3.Error as e:
            raise CachePersistenceError(f"Failed to write cache entry {entity_id}: {e}") from e
        return entry

    async def delete(self, entity_id: str) -> None:
        """Remove an entry."""
        try:
            with self._conn:
                self._conn.execute(
                    "DELETE FROM cache_entries WHERE entity_id = ?", (entity_id,)
                )
        except sqlite3.Error as e:
            raise CachePersistenceError(f"Failed to delete cache entry {entity_id}: {e}") from e

    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries."""
        cursor = self._conn.execute("SELECT entity_id, data FROM cache_entries")
        entries: list[CacheEntry] = []
        for entity_id, data in cursor.fetchall():
            try:
                entries.append(CacheEntry.model_validate_json(data))
            except ValidationError:
                logger.warning("Skipping unreadable cache row %s", entity_id)
        return entries

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
