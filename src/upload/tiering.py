# src/upload/tiering.py — v1
"""Tiered CDN upload: try each configured strategy in order, stop at first success.

Tiers:
    buffer: raw bytes as a multipart file part.
    base64: the bytes re-encoded as a data URI.
    url:    the provider's own URL, fetched by the CDN (skipped if the
            artifact has no http(s) source).
"""

from __future__ import annotations

import base64
import logging
import re
from typing import Any

from profilegen.core.errors import UploadFailed
from profilegen.core.models import Artifact, EntityKind, UploadResult
from profilegen.upload.imagekit_client import ImageKitClient, ImageKitError, UploadOptions

logger = logging.getLogger(__name__)

DEFAULT_TIERS: tuple[str, ...] = ("buffer", "base64", "url")

_UNSAFE_PATH_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

# One name per entity folder whatever the format, so a regeneration always
# overwrites the previous file.
PROFILE_FILE_NAME = "profile"


class UploadTiering:
    """Upload an artifact through an ordered list of tiers."""

    def __init__(
        self,
        client: ImageKitClient,
        folder: str = "profile-images",
        tiers: list[str] | tuple[str, ...] = DEFAULT_TIERS,
    ) -> None:
        unknown = [t for t in tiers if t not in DEFAULT_TIERS]
        if unknown:
            raise ValueError(f"Unknown upload tiers: {unknown}")
        if not tiers:
            raise ValueError("At least one upload tier is required")
        self._client = client
        self._folder = folder.strip("/")
        self._tiers = list(tiers)

    @property
    def tiers(self) -> list[str]:
        return list(self._tiers)

    async def upload(
        self,
        artifact: Artifact,
        entity_id: str,
        entity_kind: EntityKind = "appraiser",
    ) -> UploadResult:
        """Upload ``artifact`` for ``entity_id``.

        Raises:
            UploadFailed: Every tier failed; ``tier_errors`` maps tier -> reason.
        """
        options = UploadOptions(
            file_name=PROFILE_FILE_NAME,
            folder=self.folder_for(entity_id, entity_kind),
            tags=[f"{entity_kind}-{entity_id}", "ai-generated"],
        )
        tier_errors: dict[str, str] = {}

        for tier in self._tiers:
            if tier == "url" and not artifact.has_remote_source:
                tier_errors[tier] = "skipped: artifact has no remote source URL"
                continue
            try:
                payload = await self._run_tier(tier, artifact, options)
            except ImageKitError as e:
                logger.warning("Upload tier %s failed for %s: %s", tier, entity_id, e)
                tier_errors[tier] = str(e)
                continue

            result = _to_result(payload, tier, artifact)
            logger.info("Uploaded %s via %s tier: %s", entity_id, tier, result.url)
            return result

        raise UploadFailed(
            f"All upload tiers failed for {entity_id}: "
            + "; ".join(f"{k}: {v}" for k, v in tier_errors.items()),
            tier_errors=tier_errors,
        )

    def folder_for(self, entity_id: str, entity_kind: EntityKind) -> str:
        safe_id = _UNSAFE_PATH_CHARS.sub("_", entity_id)
        return f"/{self._folder}/{entity_kind}s/{safe_id}"

    async def _run_tier(self, tier: str, artifact: Artifact, options: UploadOptions) -> dict[str, Any]:
        if tier == "buffer":
            return await self._client.upload_bytes(artifact.data, artifact.mime_type, options)
        if tier == "base64":
            encoded = base64.b64encode(artifact.data).decode("ascii")
            return await self._client.upload_reference(
                f"data:{artifact.mime_type};base64,{encoded}", options,
            )
        if not artifact.source_url:
            raise ImageKitError("url tier needs a remote source URL")
        return await self._client.upload_reference(artifact.source_url, options)


def _to_result(payload: dict[str, Any], tier: str, artifact: Artifact) -> UploadResult:
    size = payload.get("size")
    return UploadResult(
        url=payload["url"],
        cdn_file_id=str(payload.get("fileId", "")),
        size_bytes=size if isinstance(size, int) else artifact.size_bytes,
        tier=tier,
    )
