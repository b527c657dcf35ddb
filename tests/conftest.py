# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides settings pointed at temp directories, sample requests and artifacts,
scripted fake providers/uploaders and a mock LLM client.
No external dependencies: all HTTP is faked or served by httpx.MockTransport.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest

from profilegen.cache.json_store import JsonCacheStore
from profilegen.config.settings import Settings
from profilegen.core.errors import UploadFailed
from profilegen.core.models import Artifact, GenerationRequest, UploadResult
from profilegen.generation.clients import Clients
from profilegen.llm.models import LLMResponse
from profilegen.prompts.prompt_builder import PromptBuilder
from profilegen.providers.base_provider import BaseImageProvider

JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x00" * 64
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


# === FIXTURES: Settings ===


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from .env and the real filesystem."""
    return Settings(
        _env_file=None,
        bfl_api_key="bfl-test-key",
        fal_api_key="fal-test-key",
        imagekit_private_key="private_test_key",
        prompt_llm_enabled=False,
        cache_root=tmp_path / "data",
        results_dir=tmp_path / "logs",
        poll_interval_s=0.001,
        generation_retry_delay_s=0.0,
        request_timeout_s=5.0,
    )


# === FIXTURES: Sample data ===


@pytest.fixture
def appraiser_request() -> GenerationRequest:
    return GenerationRequest(
        entity_id="appraiser-42",
        attributes={
            "name": "Jane Doe",
            "gender": "female",
            "age": "45",
            "specialization": "modern art",
        },
    )


@pytest.fixture
def location_request() -> GenerationRequest:
    return GenerationRequest(
        entity_id="loc-7",
        entity_kind="location",
        attributes={
            "name": "Harbor Gallery",
            "type": "gallery",
            "city": "Boston",
            "state": "MA",
            "features": ["skylights", "sculpture garden"],
        },
    )


@pytest.fixture
def jpeg_artifact() -> Artifact:
    return Artifact(
        data=JPEG_BYTES,
        mime_type="image/jpeg",
        source_url="https://provider.example/out/img.jpg",
    )


@pytest.fixture
def upload_result() -> UploadResult:
    return UploadResult(
        url="https://ik.imagekit.io/test/profile-images/appraisers/appraiser-42/profile",
        cdn_file_id="file_123",
        size_bytes=len(JPEG_BYTES),
        tier="buffer",
    )


# === FIXTURES: Fakes ===


class FakeProvider(BaseImageProvider):
    """Provider returning scripted outcomes (Artifact or exception) in order."""

    def __init__(self, outcomes: list[Any] | None = None, name: str = "fake") -> None:
        self._outcomes = list(outcomes or [])
        self._name = name
        self.prompts: list[str] = []

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def call_count(self) -> int:
        return len(self.prompts)

    async def generate(self, prompt: str) -> Artifact:
        self.prompts.append(prompt)
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeUploader:
    """Upload tiering stand-in that records calls."""

    def __init__(self, result: UploadResult | None = None, fail: bool = False) -> None:
        self._result = result
        self._fail = fail
        self.calls: list[tuple[Artifact, str, str]] = []
        self.tiers = ["buffer", "base64", "url"]

    async def upload(self, artifact: Artifact, entity_id: str, entity_kind: str = "appraiser") -> UploadResult:
        self.calls.append((artifact, entity_id, entity_kind))
        if self._fail:
            raise UploadFailed("all tiers failed", tier_errors={"buffer": "boom"})
        if self._result is not None:
            return self._result
        return UploadResult(
            url=f"https://ik.imagekit.io/test/{entity_kind}s/{entity_id}/profile",
            cdn_file_id=f"file_{entity_id}",
            size_bytes=artifact.size_bytes,
            tier="buffer",
        )


@pytest.fixture
def make_provider():
    """FakeProvider class, for tests that script their own outcomes."""
    return FakeProvider


@pytest.fixture
def make_uploader():
    return FakeUploader


@pytest.fixture
def fake_provider(jpeg_artifact) -> FakeProvider:
    return FakeProvider([jpeg_artifact])


@pytest.fixture
def fake_uploader() -> FakeUploader:
    return FakeUploader()


@pytest.fixture
def json_cache(settings) -> JsonCacheStore:
    return JsonCacheStore(
        manifest_path=settings.manifest_path,
        max_age=settings.cache_max_age,
        image_dir=settings.image_dir,
    )


@pytest.fixture
def make_clients(json_cache):
    """Build a Clients context around fakes."""

    def _make(provider: BaseImageProvider, uploader: Any = None, prompts: PromptBuilder | None = None) -> Clients:
        return Clients(
            provider=provider,
            uploader=uploader or FakeUploader(),
            cache=json_cache,
            prompts=prompts or PromptBuilder(),
        )

    return _make


@pytest.fixture
def mock_llm_client() -> AsyncMock:
    """Mock BaseLLMClient returning a canned prompt."""
    client = AsyncMock()
    client.provider_name = "mock"
    client.complete.return_value = LLMResponse(
        content="A photorealistic portrait of a seasoned art appraiser in a gallery office.",
        input_tokens=80,
        output_tokens=20,
        model="mock-model",
        provider="mock",
        latency_ms=12,
    )
    return client
