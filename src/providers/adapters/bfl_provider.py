# src/providers/adapters/bfl_provider.py — v2
"""Black Forest Labs adapter: submit a job, then poll until it resolves.

Job statuses: Ready (result.sample holds the image URL), Pending and its
queue variants (keep polling), Error / moderated / not found (failure).
Each poll waits one interval first, since a fresh job is never ready.
Exhausting the poll budget is a TransientError; the wait is a plain
asyncio.sleep so cancellation stops the loop immediately.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from profilegen.core.errors import FatalError, TransientError
from profilegen.core.models import Artifact, GenerationJob, JobStatus
from profilegen.providers.base_provider import BaseImageProvider
from profilegen.providers.classifier import classify_failure

logger = logging.getLogger(__name__)

_PENDING_STATUSES = frozenset({"pending", "queued", "processing", "submitted"})
_ERROR_STATUSES = frozenset({
    "error", "failed", "task not found", "request moderated", "content moderated",
})


class BFLProvider(BaseImageProvider):
    """Submit+poll adapter for the BFL FLUX API."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str,
        base_url: str = "https://api.us1.bfl.ai/v1",
        model: str = "flux-pro-1.1",
        width: int = 1024,
        height: int = 576,
        poll_interval_s: float = 0.5,
        poll_max_attempts: int = 30,
        timeout_s: float = 30.0,
    ) -> None:
        super().__init__(http, timeout_s)
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._width = width
        self._height = height
        self._poll_interval_s = poll_interval_s
        self._poll_max_attempts = poll_max_attempts

    @property
    def provider_name(self) -> str:
        return "bfl"

    async def generate(self, prompt: str) -> Artifact:
        job, polling_url = await self._submit(prompt)
        logger.info("BFL job submitted: %s", job.provider_request_id)
        image_url = await self._poll(job, polling_url)
        return await self._fetch_artifact(image_url)

    async def _submit(self, prompt: str) -> tuple[GenerationJob, str]:
        body = {"prompt": prompt, "width": self._width, "height": self._height}
        data = await self._request_json(
            "POST", f"{self._base_url}/{self._model}", json=body, headers=self._headers(),
        )
        request_id = data.get("id")
        if not isinstance(request_id, str) or not request_id:
            raise FatalError("No request ID received from BFL API", provider=self.provider_name)
        polling_url = data.get("polling_url") or f"{self._base_url}/get_result?id={request_id}"
        return GenerationJob(provider_request_id=request_id), polling_url

    async def _poll(self, job: GenerationJob, polling_url: str) -> str:
        """Poll the job until Ready; return the provider image URL."""
        while job.attempts < self._poll_max_attempts:
            await asyncio.sleep(self._poll_interval_s)
            job.attempts += 1
            data = await self._request_json("GET", polling_url, headers=self._headers())
            raw_status = str(data.get("status", ""))
            job.status = _job_status(raw_status)

            if job.status == "Ready":
                sample = (data.get("result") or {}).get("sample")
                if not isinstance(sample, str) or not sample:
                    raise FatalError(
                        f"BFL job {job.provider_request_id} is Ready but has no image URL",
                        provider=self.provider_name,
                    )
                logger.debug(
                    "BFL job %s ready after %d polls", job.provider_request_id, job.attempts,
                )
                return sample

            if job.status == "Error":
                failure = classify_failure(None, _error_details(data, raw_status), self.provider_name)
                raise failure

            if job.attempts % 10 == 0:
                logger.debug(
                    "BFL job %s still %s (poll %d/%d)",
                    job.provider_request_id, raw_status or "pending",
                    job.attempts, self._poll_max_attempts,
                )

        raise TransientError(
            f"BFL job {job.provider_request_id} timed out after {job.attempts} polls",
            provider=self.provider_name,
        )

    def _headers(self) -> dict[str, str]:
        return {"accept": "application/json", "x-key": self._api_key}


def _job_status(raw: str) -> JobStatus:
    lowered = raw.strip().lower()
    if lowered == "ready":
        return "Ready"
    if lowered in _ERROR_STATUSES:
        return "Error"
    if lowered in _PENDING_STATUSES or not lowered:
        return "Pending"
    # Unknown statuses are treated as still running; the poll budget bounds them
    logger.debug("Unknown BFL status %r, continuing to poll", raw)
    return "Pending"


def _error_details(data: dict[str, Any], raw_status: str) -> dict[str, Any]:
    details = {"status": raw_status}
    for key in ("error", "details", "message", "result"):
        if data.get(key):
            details[key] = data[key]
    return details
