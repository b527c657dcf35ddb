# src/logging/context.py — v2
"""Contextual logging support: attach entity_id, request_id, provider to records.

Context variables are task-local, so concurrent generation flows keep their
own values.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_entity_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "entity_id", default=None
)
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_provider: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "provider", default=None
)


@dataclass
class LogContext:
    """Snapshot of current logging context."""

    entity_id: str | None = None
    request_id: str | None = None
    provider: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        entity_id=_entity_id.get(),
        request_id=_request_id.get(),
        provider=_provider.get(),
    )


def set_request_context(entity_id: str, request_id: str) -> None:
    """Set request-level context (called once per generation flow)."""
    _entity_id.set(entity_id)
    _request_id.set(request_id)


def set_provider_context(provider: str | None) -> None:
    """Set the image provider handling the current flow."""
    _provider.set(provider)


def clear_context() -> None:
    """Reset all context variables."""
    _entity_id.set(None)
    _request_id.set(None)
    _provider.set(None)
