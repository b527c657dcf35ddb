# src/providers/provider_factory.py — v2
"""Factory: instantiate the configured image provider adapter.

Adding a provider means one adapter module plus one registry entry; the
orchestrator only ever sees BaseImageProvider.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Callable

import httpx

from profilegen.config.secrets import SecretProvider
from profilegen.config.settings import Settings
from profilegen.core.errors import ClientInitError
from profilegen.providers.base_provider import BaseImageProvider

logger = logging.getLogger(__name__)


def _bfl_kwargs(settings: Settings) -> dict[str, Any]:
    return {
        "base_url": settings.bfl_base_url,
        "model": settings.bfl_model,
        "width": settings.bfl_width,
        "height": settings.bfl_height,
        "poll_interval_s": settings.poll_interval_s,
        "poll_max_attempts": settings.poll_max_attempts,
    }


def _fal_kwargs(settings: Settings) -> dict[str, Any]:
    return {
        "base_url": settings.fal_base_url,
        "model": settings.fal_model,
        "aspect_ratio": settings.fal_aspect_ratio,
    }


# provider -> (adapter class path, settings key attribute, secret names, kwargs builder)
_PROVIDER_REGISTRY: dict[str, tuple[str, str, tuple[str, ...], Callable[[Settings], dict[str, Any]]]] = {
    "bfl": (
        "profilegen.providers.adapters.bfl_provider.BFLProvider",
        "bfl_api_key",
        ("BFL_API_KEY",),
        _bfl_kwargs,
    ),
    "fal": (
        "profilegen.providers.adapters.fal_provider.FalProvider",
        "fal_api_key",
        ("FAL_API_KEY", "FAL_KEY"),
        _fal_kwargs,
    ),
}


def available_providers() -> list[str]:
    return sorted(_PROVIDER_REGISTRY)


def resolve_provider_key(settings: Settings, secrets: SecretProvider | None = None) -> str:
    """Return the API key for ``settings.image_provider``.

    Raises:
        ClientInitError: Unknown provider or no API key available.
    """
    name = settings.image_provider
    if name not in _PROVIDER_REGISTRY:
        raise ClientInitError(
            f"Unsupported image provider: {name!r}. "
            f"Available: {', '.join(available_providers())}"
        )

    _, key_attr, secret_names, _ = _PROVIDER_REGISTRY[name]
    api_key = getattr(settings, key_attr)
    if not api_key and secrets is not None:
        api_key = secrets.first_of(*secret_names) or ""
    if not api_key:
        raise ClientInitError(
            f"No API key for image provider {name!r} (set {key_attr.upper()} or "
            f"secret {secret_names[0]})"
        )
    return api_key


def create_image_provider(
    settings: Settings,
    http: httpx.AsyncClient,
    secrets: SecretProvider | None = None,
    api_key: str | None = None,
) -> BaseImageProvider:
    """Build the provider named by ``settings.image_provider``.

    Raises:
        ClientInitError: Unknown provider or no API key available.
    """
    if api_key is None:
        api_key = resolve_provider_key(settings, secrets)
    name = settings.image_provider
    class_path, _, _, kwargs_builder = _PROVIDER_REGISTRY[name]
    module_path, class_name = class_path.rsplit(".", 1)
    adapter_cls = getattr(importlib.import_module(module_path), class_name)
    logger.debug("Creating image provider: %s", name)
    return adapter_cls(
        http=http,
        api_key=api_key,
        timeout_s=settings.provider_http_timeout_s,
        **kwargs_builder(settings),
    )
