# src/upload/imagekit_client.py — v1
"""Minimal async client for the ImageKit upload REST endpoint.

The endpoint accepts ``file`` as a binary part, a base64 data URI or a remote
URL that ImageKit fetches itself; the tiering layer picks which.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class ImageKitError(Exception):
    """Upload request rejected or failed in transit."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


@dataclass
class UploadOptions:
    """Form fields sent alongside the file."""

    file_name: str
    folder: str
    tags: list[str] = field(default_factory=list)
    use_unique_file_name: bool = False

    def form_fields(self) -> dict[str, str]:
        fields = {
            "fileName": self.file_name,
            "folder": self.folder,
            "useUniqueFileName": "true" if self.use_unique_file_name else "false",
        }
        if self.tags:
            fields["tags"] = ",".join(self.tags)
        return fields


class ImageKitClient:
    """Upload files to ImageKit with private-key basic auth."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        private_key: str,
        upload_url: str = "https://upload.imagekit.io/api/v1/files/upload",
        timeout_s: float = 60.0,
    ) -> None:
        if not private_key:
            raise ValueError("ImageKit private key is required")
        self._http = http
        self._auth = httpx.BasicAuth(private_key, "")
        self._upload_url = upload_url
        self._timeout = httpx.Timeout(timeout_s, connect=min(10.0, timeout_s))

    async def upload_bytes(self, data: bytes, mime_type: str, options: UploadOptions) -> dict[str, Any]:
        """Upload raw bytes as a multipart file part."""
        files = {"file": (options.file_name, data, mime_type)}
        return await self._post(options, files=files)

    async def upload_reference(self, reference: str, options: UploadOptions) -> dict[str, Any]:
        """Upload from a data URI or remote URL passed as the ``file`` field."""
        return await self._post(options, extra={"file": reference})

    async def _post(
        self,
        options: UploadOptions,
        files: dict[str, Any] | None = None,
        extra: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        form = options.form_fields()
        if extra:
            form.update(extra)
        # httpx only encodes multipart when files are present
        if files is None:
            files = {k: (None, v) for k, v in form.items()}
            form = {}

        try:
            response = await self._http.post(
                self._upload_url, data=form, files=files, auth=self._auth, timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            raise ImageKitError(f"ImageKit request failed: {e}") from e

        if response.is_error:
            raise ImageKitError(
                f"ImageKit returned HTTP {response.status_code}: {response.text[:300]}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as e:
            raise ImageKitError("ImageKit returned a non-JSON body") from e
        if not isinstance(payload, dict) or not payload.get("url"):
            raise ImageKitError("ImageKit response has no url")
        return payload
