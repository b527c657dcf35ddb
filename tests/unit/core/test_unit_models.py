# tests/unit/core/test_unit_models.py — v2
"""Tests for core/models.py, core/mime.py and core/errors.py."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from profilegen.core.errors import (
    ERROR_HTTP_STATUS,
    BillingBlocked,
    FatalError,
    ProviderFailure,
    TransientError,
    UploadFailed,
)
from profilegen.core.mime import detect_mime_type, extension_for
from profilegen.core.models import (
    Artifact,
    GenerationFailure,
    GenerationJob,
    GenerationRequest,
    GenerationSuccess,
)


class TestGenerationRequest:
    def test_defaults(self):
        req = GenerationRequest(entity_id="a1")
        assert req.entity_kind == "appraiser"
        assert req.attributes == {}
        assert req.prompt_override is None

    def test_strips_id(self):
        assert GenerationRequest(entity_id="  a1 ").entity_id == "a1"

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            GenerationRequest(entity_id="   ")

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            GenerationRequest(entity_id="a1", entity_kind="gallery")

    def test_frozen(self):
        req = GenerationRequest(entity_id="a1")
        with pytest.raises(ValidationError):
            req.entity_id = "a2"

    def test_attribute_blank_is_none(self):
        req = GenerationRequest(entity_id="a1", attributes={"gender": " ", "age": 40})
        assert req.attribute("gender") is None
        assert req.attribute("age") == 40
        assert req.attribute("missing") is None


class TestArtifact:
    def test_extension_and_size(self):
        art = Artifact(data=b"12345", mime_type="image/png")
        assert art.extension == "png"
        assert art.size_bytes == 5

    def test_remote_source(self):
        assert Artifact(data=b"x", mime_type="image/jpeg", source_url="https://a/b.jpg").has_remote_source
        assert not Artifact(data=b"x", mime_type="image/jpeg").has_remote_source
        assert not Artifact(data=b"x", mime_type="image/jpeg", source_url="data:image/jpeg;base64,eA==").has_remote_source


class TestGenerationJob:
    def test_initial_state(self):
        job = GenerationJob(provider_request_id="job-1")
        assert job.status == "Submitted"
        assert job.attempts == 0


class TestResultEnvelope:
    def test_success(self):
        res = GenerationSuccess(entity_id="a1", image_url="https://x", cached=True, source="cache")
        assert res.ok is True
        assert res.degraded is False

    def test_failure(self):
        res = GenerationFailure(entity_id="a1", error_kind="BillingBlocked", message="no credits")
        assert res.ok is False

    def test_failure_kind_validated(self):
        with pytest.raises(ValidationError):
            GenerationFailure(entity_id="a1", error_kind="Oops", message="x")


class TestMime:
    @pytest.mark.parametrize("data, expected", [
        (b"\xff\xd8\xff\xe0rest", "image/jpeg"),
        (b"\x89PNG\r\n\x1a\nrest", "image/png"),
        (b"GIF89a...", "image/gif"),
        (b"RIFF\x00\x00\x00\x00WEBPVP8 ", "image/webp"),
        (b"BM......", "image/bmp"),
    ])
    def test_signatures(self, data, expected):
        assert detect_mime_type(data) == expected

    def test_unknown_falls_back(self):
        assert detect_mime_type(b"plain text") == "image/jpeg"
        assert detect_mime_type(b"plain text", default="image/png") == "image/png"

    def test_riff_non_webp_not_webp(self):
        assert detect_mime_type(b"RIFF\x00\x00\x00\x00WAVEfmt ") == "image/jpeg"

    def test_extension_for(self):
        assert extension_for("image/jpeg") == "jpg"
        assert extension_for("IMAGE/WEBP") == "webp"
        assert extension_for("application/octet-stream") == "jpg"


class TestErrors:
    def test_taxonomy(self):
        assert issubclass(TransientError, ProviderFailure)
        assert issubclass(FatalError, ProviderFailure)
        assert issubclass(BillingBlocked, ProviderFailure)
        assert BillingBlocked("x").error_kind == "BillingBlocked"
        assert TransientError("x").error_kind == "ProviderError"
        assert BillingBlocked.retryable is False

    def test_provider_context(self):
        err = TransientError("boom", provider="bfl", status_code=503)
        assert err.provider == "bfl"
        assert err.status_code == 503

    def test_upload_failed_tier_errors(self):
        err = UploadFailed("all failed", {"buffer": "413"})
        assert err.tier_errors == {"buffer": "413"}
        assert err.error_kind == "UploadError"

    def test_http_status_map(self):
        assert ERROR_HTTP_STATUS == {
            "ValidationError": 400,
            "BillingBlocked": 402,
            "ProviderError": 502,
            "UploadError": 502,
        }
