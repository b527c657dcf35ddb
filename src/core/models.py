# src/core/models.py — v2
"""Shared Pydantic domain models used across modules.

No module redefines these types: requests, artifacts, upload results and the
uniform result envelope all come from core.models.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from profilegen.core.errors import ErrorKind
from profilegen.core.mime import extension_for

EntityKind = Literal["appraiser", "location"]
JobStatus = Literal["Submitted", "Pending", "Ready", "Error"]


# === REQUEST ===


class GenerationRequest(BaseModel):
    """Immutable request to produce a profile image for one entity."""

    model_config = ConfigDict(frozen=True)

    entity_id: str
    entity_kind: EntityKind = "appraiser"
    attributes: dict[str, Any] = Field(default_factory=dict)
    prompt_override: str | None = None

    @field_validator("entity_id")
    @classmethod
    def validate_entity_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("entity_id must not be empty")
        return v

    def attribute(self, name: str) -> Any:
        """Return an attribute value, treating blank strings as missing."""
        value = self.attributes.get(name)
        if isinstance(value, str) and not value.strip():
            return None
        return value


# === PROVIDER / UPLOAD ===


@dataclass
class GenerationJob:
    """Transient state of one submit+poll provider call."""

    provider_request_id: str
    status: JobStatus = "Submitted"
    attempts: int = 0


class Artifact(BaseModel):
    """Raw image bytes produced by a provider, typed once at the boundary."""

    data: bytes
    mime_type: str
    source_url: str | None = None

    @property
    def extension(self) -> str:
        return extension_for(self.mime_type)

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def has_remote_source(self) -> bool:
        """Whether the provider URL can be re-fetched by the CDN."""
        return bool(self.source_url) and self.source_url.startswith(("http://", "https://"))


class UploadResult(BaseModel):
    """CDN upload outcome from whichever tier succeeded first."""

    url: str
    cdn_file_id: str
    size_bytes: int
    tier: str = ""


# === RESULT ENVELOPE ===


class GenerationSuccess(BaseModel):
    """Successful generation (fresh or cached)."""

    ok: Literal[True] = True
    entity_id: str
    image_url: str
    cached: bool
    prompt: str | None = None
    source: str
    fingerprint: str | None = None
    degraded: bool = False


class GenerationFailure(BaseModel):
    """Structured failure returned instead of raising across the boundary."""

    ok: Literal[False] = False
    entity_id: str
    error_kind: ErrorKind
    message: str


GenerationResult = Union[GenerationSuccess, GenerationFailure]
