# src/generation/orchestrator.py — v2
"""Generation flow: fingerprint, cache check, prompt, provider, upload, cache write.

``generate_for_entity`` returns a GenerationResult for every domain failure
instead of raising. Caller cancellation still propagates, and nothing is
cached for a cancelled flow.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime

from profilegen.cache.fingerprint import compute_fingerprint
from profilegen.config.settings import Settings
from profilegen.core.errors import (
    BillingBlocked,
    CachePersistenceError,
    ProviderFailure,
    UploadFailed,
)
from profilegen.core.models import (
    EntityKind,
    GenerationFailure,
    GenerationRequest,
    GenerationResult,
    GenerationSuccess,
)
from profilegen.generation.clients import Clients
from profilegen.generation.retry import default_retry_configs, with_retry
from profilegen.logging.context import clear_context, set_provider_context, set_request_context
from profilegen.logging.logger import log_billing_alert

logger = logging.getLogger(__name__)


def cache_key(entity_id: str, entity_kind: EntityKind = "appraiser") -> str:
    """Manifest key for an entity. Appraisers keep the bare id."""
    if entity_kind == "appraiser":
        return entity_id
    return f"{entity_kind}:{entity_id}"


class Orchestrator:
    """Run generation flows against one Clients context."""

    def __init__(self, clients: Clients, settings: Settings | None = None) -> None:
        self._clients = clients
        self._settings = settings or Settings()
        self._retry_configs = default_retry_configs(
            max_retries=self._settings.generation_max_retries,
            base_delay_s=self._settings.generation_retry_delay_s,
        )

    @property
    def clients(self) -> Clients:
        return self._clients

    async def generate_for_entity(
        self,
        request: GenerationRequest,
        force: bool = False,
    ) -> GenerationResult:
        """Return a CDN URL for ``request``, reusing a fresh cached artifact.

        Args:
            request: Validated generation request.
            force: Skip the cache lookup and always regenerate.

        Returns:
            GenerationSuccess or GenerationFailure. Never raises for
            provider, upload or cache failures.
        """
        request_id = uuid.uuid4().hex[:12]
        set_request_context(request.entity_id, request_id)
        set_provider_context(self._clients.provider.provider_name)
        timeout_s = self._settings.request_timeout_s
        try:
            return await asyncio.wait_for(self._run(request, force), timeout=timeout_s)
        except asyncio.TimeoutError:
            logger.error("Generation for %s exceeded %.0fs", request.entity_id, timeout_s)
            return GenerationFailure(
                entity_id=request.entity_id,
                error_kind="ProviderError",
                message=f"Generation timed out after {timeout_s:.0f}s",
            )
        except Exception as e:
            logger.exception("Unexpected error generating image for %s", request.entity_id)
            return GenerationFailure(
                entity_id=request.entity_id,
                error_kind="ProviderError",
                message=f"Unexpected error: {e}",
            )
        finally:
            clear_context()

    async def get_prompt(self, entity_id: str, entity_kind: EntityKind = "appraiser") -> str | None:
        """Return the prompt stored with the cached image, if any."""
        entry = await self._clients.cache.lookup(cache_key(entity_id, entity_kind))
        return entry.prompt if entry is not None else None

    async def evict_expired(self, now: datetime | None = None) -> list[str]:
        """Drop cache entries older than the configured max age."""
        return await self._clients.cache.evict_expired(now)

    async def _run(self, request: GenerationRequest, force: bool) -> GenerationResult:
        cache = self._clients.cache
        key = cache_key(request.entity_id, request.entity_kind)
        fingerprint = compute_fingerprint(
            request, self._settings.fingerprint_fields_for(request.entity_kind),
        )

        # --- Cache check ---
        if force:
            logger.info("Forced regeneration for %s, skipping cache", request.entity_id)
        else:
            entry = await cache.lookup(key)
            if entry is not None and cache.is_fresh(entry, fingerprint):
                logger.info("Using cached image for %s: %s", request.entity_id, entry.artifact_url)
                return GenerationSuccess(
                    entity_id=request.entity_id,
                    image_url=entry.artifact_url,
                    cached=True,
                    prompt=entry.prompt,
                    source="cache",
                    fingerprint=fingerprint,
                )
            if entry is not None:
                reason = "attributes changed" if entry.fingerprint != fingerprint else "expired"
                logger.info("Cached image for %s is stale (%s), regenerating", request.entity_id, reason)

        # --- Prompt + provider ---
        built = await self._clients.prompts.build_prompt(request)
        provider = self._clients.provider
        logger.info(
            "Generating image for %s with %s (%s prompt)",
            request.entity_id, provider.provider_name, built.source,
        )
        try:
            artifact = await with_retry(
                provider.generate,
                built.text,
                operation=f"{provider.provider_name} generate",
                retry_configs=self._retry_configs,
            )
        except BillingBlocked as e:
            log_billing_alert(e.provider, str(e))
            return GenerationFailure(
                entity_id=request.entity_id, error_kind="BillingBlocked", message=str(e),
            )
        except ProviderFailure as e:
            logger.error("Image generation failed for %s: %s", request.entity_id, e)
            return GenerationFailure(
                entity_id=request.entity_id, error_kind="ProviderError", message=str(e),
            )

        # --- Upload ---
        try:
            upload = await self._clients.uploader.upload(
                artifact, request.entity_id, request.entity_kind,
            )
        except UploadFailed as e:
            if self._settings.degrade_on_upload_failure and artifact.has_remote_source:
                logger.warning(
                    "CDN upload failed for %s, returning provider URL instead: %s",
                    request.entity_id, e,
                )
                return GenerationSuccess(
                    entity_id=request.entity_id,
                    image_url=artifact.source_url,
                    cached=False,
                    prompt=built.text,
                    source="provider",
                    fingerprint=fingerprint,
                    degraded=True,
                )
            logger.error("CDN upload failed for %s: %s", request.entity_id, e)
            return GenerationFailure(
                entity_id=request.entity_id, error_kind="UploadError", message=str(e),
            )
        except Exception as e:
            logger.exception("Unexpected error uploading image for %s", request.entity_id)
            return GenerationFailure(
                entity_id=request.entity_id,
                error_kind="UploadError",
                message=f"Unexpected upload error: {e}",
            )

        # --- Cache write ---
        try:
            await cache.put(
                key, fingerprint, upload,
                prompt=built.text, source=built.source, artifact=artifact,
            )
        except CachePersistenceError as e:
            logger.warning(
                "Image for %s uploaded but cache write failed, next request will regenerate: %s",
                request.entity_id, e,
            )

        return GenerationSuccess(
            entity_id=request.entity_id,
            image_url=upload.url,
            cached=False,
            prompt=built.text,
            source="cdn",
            fingerprint=fingerprint,
        )
