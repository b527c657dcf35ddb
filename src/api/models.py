# src/api/models.py — v2
"""Boundary payload models: the JSON shapes a front end hands to the facade."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Keys that carry a prompt override instead of an entity attribute
PROMPT_OVERRIDE_KEYS: tuple[str, ...] = ("customPrompt", "prompt_override")


class EntityPayload(BaseModel):
    """One entity as received from a caller. Unknown keys become attributes."""

    model_config = ConfigDict(extra="allow")

    id: str

    @field_validator("id", mode="before")
    @classmethod
    def validate_id(cls, v: Any) -> str:
        if isinstance(v, bool) or not isinstance(v, (str, int)):
            raise ValueError("id must be a string or integer")
        text = str(v).strip()
        if not text:
            raise ValueError("id must not be empty")
        return text

    def attributes(self) -> dict[str, Any]:
        extra = dict(self.model_extra or {})
        for key in PROMPT_OVERRIDE_KEYS:
            extra.pop(key, None)
        return extra


class GenerateResponse(BaseModel):
    """Response body for a generation call."""

    success: bool
    data: dict[str, Any] | None = None
    error: str | None = None
    error_kind: str | None = Field(default=None, serialization_alias="errorKind")
