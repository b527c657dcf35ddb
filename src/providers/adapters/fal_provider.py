# src/providers/adapters/fal_provider.py — v1
"""fal.ai adapter: one synchronous call returns the finished image."""

from __future__ import annotations

import logging

import httpx

from profilegen.core.errors import FatalError
from profilegen.core.models import Artifact
from profilegen.providers.base_provider import BaseImageProvider

logger = logging.getLogger(__name__)


class FalProvider(BaseImageProvider):
    """Single-call adapter for fal.ai FLUX models."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str,
        base_url: str = "https://fal.run",
        model: str = "fal-ai/flux-pro/v1.1-ultra",
        aspect_ratio: str = "16:9",
        timeout_s: float = 30.0,
    ) -> None:
        super().__init__(http, timeout_s)
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model = model.strip("/")
        self._aspect_ratio = aspect_ratio

    @property
    def provider_name(self) -> str:
        return "fal"

    async def generate(self, prompt: str) -> Artifact:
        body = {
            "prompt": prompt,
            "aspect_ratio": self._aspect_ratio,
            "num_images": 1,
            "sync_mode": True,
            "enable_safety_checker": True,
        }
        data = await self._request_json(
            "POST",
            f"{self._base_url}/{self._model}",
            json=body,
            headers={"Authorization": f"Key {self._api_key}", "accept": "application/json"},
        )

        images = data.get("images")
        if not isinstance(images, list) or not images or not isinstance(images[0], dict):
            raise FatalError("No image returned from fal.ai", provider=self.provider_name)
        url = images[0].get("url")
        if not isinstance(url, str) or not url:
            raise FatalError("fal.ai image has no URL", provider=self.provider_name)

        if data.get("has_nsfw_concepts") and any(data["has_nsfw_concepts"]):
            logger.warning("fal.ai flagged the generated image by its safety checker")

        content_type = images[0].get("content_type")
        return await self._fetch_artifact(
            url, mime_hint=content_type if isinstance(content_type, str) else None,
        )
