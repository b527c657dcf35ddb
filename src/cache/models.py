# src/cache/models.py — v2
"""Cache domain models: CacheEntry and the persisted Manifest.

Field aliases define the on-disk manifest layout (camelCase keys).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

MANIFEST_VERSION = 1


class CacheEntry(BaseModel):
    """Last-known artifact for one entity."""

    model_config = ConfigDict(populate_by_name=True)

    entity_id: str = Field(alias="entityId")
    fingerprint: str
    artifact_url: str = Field(alias="artifactURL")
    cdn_file_id: str = Field(alias="cdnFileId")
    created_at: datetime = Field(alias="createdAt")
    prompt: str | None = None
    source: str | None = None
    size_bytes: int | None = Field(default=None, alias="sizeBytes")
    local_path: str | None = Field(default=None, alias="localPath")


class Manifest(BaseModel):
    """Persisted mapping from entity id to its cache entry."""

    version: int = MANIFEST_VERSION
    images: dict[str, CacheEntry] = Field(default_factory=dict)
