# tests/unit/providers/test_unit_bfl_provider.py — v1
"""Tests for providers/adapters/bfl_provider.py (submit + poll) over httpx.MockTransport."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from profilegen.core.errors import BillingBlocked, FatalError, TransientError
from profilegen.providers.adapters.bfl_provider import BFLProvider

JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 32
BASE = "https://api.us1.bfl.ai/v1"
IMAGE_URL = "https://delivery.bfl.ai/results/img.jpg"


class BflServer:
    """Scripted BFL API: submit response plus a queue of poll responses."""

    def __init__(self, polls: list[dict], submit: httpx.Response | None = None) -> None:
        self.polls = list(polls)
        self.submit = submit
        self.poll_count = 0
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            return self.submit or httpx.Response(
                200, json={"id": "job-1", "polling_url": f"{BASE}/get_result?id=job-1"},
            )
        if request.url.path.endswith("/get_result"):
            self.poll_count += 1
            body = self.polls.pop(0) if len(self.polls) > 1 else self.polls[0]
            return httpx.Response(200, json=body)
        if str(request.url) == IMAGE_URL:
            return httpx.Response(200, content=JPEG, headers={"content-type": "image/jpeg"})
        return httpx.Response(404)


def _provider(server: BflServer, **kwargs) -> BFLProvider:
    http = httpx.AsyncClient(transport=httpx.MockTransport(server))
    kwargs.setdefault("poll_interval_s", 0.001)
    return BFLProvider(http, api_key="bfl-key", **kwargs)


READY = {"id": "job-1", "status": "Ready", "result": {"sample": IMAGE_URL}}
PENDING = {"id": "job-1", "status": "Pending"}


class TestBFLProvider:
    @pytest.mark.asyncio
    async def test_submit_poll_fetch(self):
        server = BflServer([PENDING, PENDING, READY])
        artifact = await _provider(server).generate("a portrait")

        assert artifact.data == JPEG
        assert artifact.mime_type == "image/jpeg"
        assert artifact.source_url == IMAGE_URL
        assert server.poll_count == 3

        submit = server.requests[0]
        assert submit.url == f"{BASE}/flux-pro-1.1"
        assert submit.headers["x-key"] == "bfl-key"
        assert json.loads(submit.content) == {"prompt": "a portrait", "width": 1024, "height": 576}

    @pytest.mark.asyncio
    async def test_poll_budget_exhausted(self):
        server = BflServer([PENDING])
        with pytest.raises(TransientError, match="timed out"):
            await _provider(server, poll_max_attempts=4).generate("p")
        assert server.poll_count == 4

    @pytest.mark.asyncio
    async def test_waits_before_first_poll(self, monkeypatch):
        server = BflServer([READY])
        events: list[str] = []

        async def fake_sleep(delay: float) -> None:
            events.append(f"sleep:{server.poll_count}")

        monkeypatch.setattr("profilegen.providers.adapters.bfl_provider.asyncio.sleep", fake_sleep)
        await _provider(server, poll_interval_s=2.0).generate("p")
        assert events == ["sleep:0"]
        assert server.poll_count == 1

    @pytest.mark.asyncio
    async def test_unknown_status_keeps_polling(self):
        server = BflServer([{"status": "Queued"}, {"status": "SomethingNew"}, READY])
        await _provider(server).generate("p")
        assert server.poll_count == 3

    @pytest.mark.asyncio
    async def test_error_status_is_fatal(self):
        server = BflServer([{"status": "Error", "error": "generation crashed"}])
        with pytest.raises(FatalError):
            await _provider(server).generate("p")

    @pytest.mark.asyncio
    async def test_moderated_is_fatal(self):
        server = BflServer([{"status": "Content Moderated"}])
        with pytest.raises(FatalError):
            await _provider(server).generate("p")

    @pytest.mark.asyncio
    async def test_error_status_with_billing_text(self):
        server = BflServer([{"status": "Error", "details": "Insufficient credits on account"}])
        with pytest.raises(BillingBlocked):
            await _provider(server).generate("p")

    @pytest.mark.asyncio
    async def test_ready_without_sample(self):
        server = BflServer([{"status": "Ready", "result": {}}])
        with pytest.raises(FatalError, match="no image URL"):
            await _provider(server).generate("p")

    @pytest.mark.asyncio
    async def test_submit_402(self):
        server = BflServer([READY], submit=httpx.Response(402, json={"detail": "Payment required"}))
        with pytest.raises(BillingBlocked) as exc_info:
            await _provider(server).generate("p")
        assert exc_info.value.status_code == 402
        assert server.poll_count == 0

    @pytest.mark.asyncio
    async def test_submit_503(self):
        server = BflServer([READY], submit=httpx.Response(503, text="overloaded"))
        with pytest.raises(TransientError):
            await _provider(server).generate("p")

    @pytest.mark.asyncio
    async def test_submit_without_id(self):
        server = BflServer([READY], submit=httpx.Response(200, json={"status": "ok"}))
        with pytest.raises(FatalError, match="No request ID"):
            await _provider(server).generate("p")

    @pytest.mark.asyncio
    async def test_submit_non_json(self):
        server = BflServer([READY], submit=httpx.Response(200, text="<html>"))
        with pytest.raises(FatalError):
            await _provider(server).generate("p")

    @pytest.mark.asyncio
    async def test_network_error_is_transient(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider = BFLProvider(
            httpx.AsyncClient(transport=httpx.MockTransport(handler)), api_key="k",
        )
        with pytest.raises(TransientError):
            await provider.generate("p")

    @pytest.mark.asyncio
    async def test_polling_url_fallback(self):
        server = BflServer([READY], submit=httpx.Response(200, json={"id": "job-9"}))
        await _provider(server).generate("p")
        poll = server.requests[1]
        assert poll.url.path == "/v1/get_result"
        assert poll.url.params["id"] == "job-9"

    @pytest.mark.asyncio
    async def test_cancellation_stops_polling(self):
        server = BflServer([PENDING])
        provider = _provider(server, poll_interval_s=0.01, poll_max_attempts=10_000)
        task = asyncio.create_task(provider.generate("p"))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        polls_at_cancel = server.poll_count
        await asyncio.sleep(0.05)
        assert server.poll_count == polls_at_cancel
