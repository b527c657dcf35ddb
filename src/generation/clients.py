# src/generation/clients.py — v2
"""Explicit client context built once at startup and passed to the orchestrator."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx

from profilegen.cache.base_cache_store import BaseCacheStore
from profilegen.cache.cache_factory import create_cache_store
from profilegen.config.secrets import SecretProvider
from profilegen.config.settings import Settings
from profilegen.core.errors import ClientInitError
from profilegen.llm.client_factory import UnsupportedProviderError, create_llm_client
from profilegen.prompts.prompt_builder import PromptBuilder
from profilegen.providers.base_provider import BaseImageProvider
from profilegen.providers.provider_factory import create_image_provider, resolve_provider_key
from profilegen.upload.imagekit_client import ImageKitClient
from profilegen.upload.tiering import UploadTiering

logger = logging.getLogger(__name__)


@dataclass
class Clients:
    """Everything the orchestrator talks to."""

    provider: BaseImageProvider
    uploader: UploadTiering
    cache: BaseCacheStore
    prompts: PromptBuilder
    http: httpx.AsyncClient | None = field(default=None, repr=False)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        secrets: SecretProvider | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> Clients:
        """Build every client, failing fast.

        Raises:
            ClientInitError: A required client (provider, CDN, LLM registry)
                could not be constructed.
        """
        if secrets is None:
            secrets = SecretProvider(project_id=settings.gcp_project)

        provider_key = resolve_provider_key(settings, secrets)
        private_key = settings.imagekit_private_key or secrets.first_of(
            "IMAGEKIT_PRIVATE_KEY",
        ) or ""
        if not private_key:
            raise ClientInitError("No ImageKit private key (set IMAGEKIT_PRIVATE_KEY)")

        try:
            llm = create_llm_client(settings, secrets)
        except UnsupportedProviderError as e:
            raise ClientInitError(str(e)) from e
        prompts = PromptBuilder(
            llm,
            timeout_s=settings.prompt_llm_timeout_s,
            max_tokens=settings.prompt_llm_max_tokens,
            temperature=settings.prompt_llm_temperature,
        )
        cache = create_cache_store(settings)

        # Everything that can fail runs above, so a client created here never leaks.
        owns_http = http is None
        if http is None:
            http = httpx.AsyncClient()

        provider = create_image_provider(settings, http, api_key=provider_key)
        imagekit = ImageKitClient(
            http,
            private_key=private_key,
            upload_url=settings.imagekit_upload_url,
            timeout_s=settings.upload_timeout_s,
        )
        uploader = UploadTiering(
            imagekit,
            folder=settings.cdn_folder,
            tiers=settings.upload_tiers_list,
        )

        logger.info(
            "Clients ready: provider=%s, cache=%s, tiers=%s, prompt_llm=%s",
            provider.provider_name, settings.cache_backend,
            ",".join(uploader.tiers), "on" if llm is not None else "off",
        )
        return cls(
            provider=provider,
            uploader=uploader,
            cache=cache,
            prompts=prompts,
            http=http if owns_http else None,
        )

    async def aclose(self) -> None:
        """Close the HTTP client if this context created it."""
        if self.http is not None:
            await self.http.aclose()
            self.http = None
