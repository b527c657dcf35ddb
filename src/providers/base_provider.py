# src/providers/base_provider.py — v1
"""Abstract image provider plus the HTTP helpers every adapter shares.

Adapters only raise ProviderFailure subclasses: every httpx error, bad
status or malformed payload goes through providers.classifier.
"""

from __future__ import annotations

import base64
import binascii
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from profilegen.core.errors import FatalError
from profilegen.core.mime import DEFAULT_MIME_TYPE, detect_mime_type
from profilegen.core.models import Artifact
from profilegen.providers.classifier import classify_exception, classify_failure

logger = logging.getLogger(__name__)


class BaseImageProvider(ABC):
    """Unified interface for image generation back ends."""

    def __init__(self, http: httpx.AsyncClient, timeout_s: float = 30.0) -> None:
        self._http = http
        self._timeout = httpx.Timeout(timeout_s, connect=min(10.0, timeout_s))

    @abstractmethod
    async def generate(self, prompt: str) -> Artifact:
        """Generate one image for ``prompt``.

        Raises:
            TransientError: Network failure, timeout or 5xx.
            BillingBlocked: Provider refuses because of account state.
            FatalError: Malformed response or missing output.
        """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (bfl, fal)."""

    async def _request_json(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        """Send a request and return its JSON object body, classifying failures."""
        try:
            response = await self._http.request(method, url, timeout=self._timeout, **kwargs)
        except httpx.HTTPError as e:
            raise classify_exception(e, self.provider_name) from e

        if response.is_error:
            raise classify_failure(response.status_code, response.text, self.provider_name)

        try:
            data = response.json()
        except ValueError as e:
            raise FatalError(
                f"{self.provider_name} returned non-JSON body", provider=self.provider_name,
            ) from e
        if not isinstance(data, dict):
            raise FatalError(
                f"{self.provider_name} returned unexpected JSON type {type(data).__name__}",
                provider=self.provider_name,
            )
        return data

    async def _fetch_artifact(self, url: str, mime_hint: str | None = None) -> Artifact:
        """Resolve a provider image reference (http URL or data URI) to bytes."""
        if url.startswith("data:"):
            return self._decode_data_uri(url)

        try:
            response = await self._http.get(url, timeout=self._timeout, follow_redirects=True)
        except httpx.HTTPError as e:
            raise classify_exception(e, self.provider_name) from e
        if response.is_error:
            raise classify_failure(response.status_code, None, self.provider_name)
        if not response.content:
            raise FatalError(
                f"{self.provider_name} image download was empty", provider=self.provider_name,
            )

        header_type = response.headers.get("content-type", "").split(";")[0].strip()
        fallback = mime_hint or (header_type if header_type.startswith("image/") else DEFAULT_MIME_TYPE)
        return Artifact(
            data=response.content,
            mime_type=detect_mime_type(response.content, default=fallback),
            source_url=url,
        )

    def _decode_data_uri(self, uri: str) -> Artifact:
        header, _, payload = uri.partition(",")
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise FatalError(
                f"{self.provider_name} returned an invalid data URI", provider=self.provider_name,
            ) from e
        if not data:
            raise FatalError(
                f"{self.provider_name} returned an empty image", provider=self.provider_name,
            )
        declared = header[len("data:"):].split(";")[0] or DEFAULT_MIME_TYPE
        return Artifact(data=data, mime_type=detect_mime_type(data, default=declared))
