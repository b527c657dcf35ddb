# tests/unit/generation/test_unit_clients.py — v1
"""Tests for generation/clients.py."""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest

from profilegen.cache.json_store import JsonCacheStore
from profilegen.cache.sqlite_store import SqliteCacheStore
from profilegen.config.secrets import SecretProvider
from profilegen.core.errors import ClientInitError
from profilegen.generation.clients import Clients
from profilegen.providers.adapters.bfl_provider import BFLProvider
from profilegen.providers.adapters.fal_provider import FalProvider


class TestFromSettings:
    @pytest.mark.asyncio
    async def test_builds_everything(self, settings):
        clients = Clients.from_settings(settings, SecretProvider(environ={}))
        try:
            assert isinstance(clients.provider, BFLProvider)
            assert isinstance(clients.cache, JsonCacheStore)
            assert clients.uploader.tiers == ["buffer", "base64", "url"]
            assert clients.http is not None
        finally:
            await clients.aclose()
        assert clients.http is None

    @pytest.mark.asyncio
    async def test_shared_http_not_closed(self, settings):
        http = httpx.AsyncClient()
        clients = Clients.from_settings(settings, SecretProvider(environ={}), http=http)
        await clients.aclose()
        assert not http.is_closed
        await http.aclose()

    def test_fal_and_sqlite(self, settings):
        settings = settings.model_copy(update={"image_provider": "fal", "cache_backend": "sqlite"})
        clients = Clients.from_settings(settings, SecretProvider(environ={}), http=httpx.AsyncClient())
        assert isinstance(clients.provider, FalProvider)
        assert isinstance(clients.cache, SqliteCacheStore)

    def test_upload_tier_order_from_settings(self, settings):
        settings = settings.model_copy(update={"upload_tiers": "url,buffer"})
        clients = Clients.from_settings(settings, SecretProvider(environ={}), http=httpx.AsyncClient())
        assert clients.uploader.tiers == ["url", "buffer"]

    def test_missing_provider_key(self, settings):
        settings = settings.model_copy(update={"bfl_api_key": ""})
        with pytest.raises(ClientInitError, match="BFL_API_KEY"):
            Clients.from_settings(settings, SecretProvider(environ={}), http=httpx.AsyncClient())

    def test_missing_imagekit_key(self, settings):
        settings = settings.model_copy(update={"imagekit_private_key": ""})
        with pytest.raises(ClientInitError, match="IMAGEKIT_PRIVATE_KEY"):
            Clients.from_settings(settings, SecretProvider(environ={}), http=httpx.AsyncClient())

    def test_imagekit_key_from_secrets(self, settings):
        settings = settings.model_copy(update={"imagekit_private_key": ""})
        secrets = SecretProvider(environ={"IMAGEKIT_PRIVATE_KEY": "from-env"})
        clients = Clients.from_settings(settings, secrets, http=httpx.AsyncClient())
        assert clients.uploader is not None

    def test_unsupported_llm_provider(self, settings):
        settings = settings.model_copy(
            update={"prompt_llm_enabled": True, "prompt_llm_provider": "nope"},
        )
        with pytest.raises(ClientInitError):
            Clients.from_settings(settings, SecretProvider(environ={}), http=httpx.AsyncClient())

    @pytest.mark.parametrize("update, match", [
        ({"bfl_api_key": ""}, "BFL_API_KEY"),
        ({"imagekit_private_key": ""}, "IMAGEKIT_PRIVATE_KEY"),
        ({"prompt_llm_enabled": True, "prompt_llm_provider": "nope"}, "nope"),
    ])
    def test_failed_init_creates_no_http_client(self, settings, update, match):
        settings = settings.model_copy(update=update)
        with patch("profilegen.generation.clients.httpx.AsyncClient") as client_cls:
            with pytest.raises(ClientInitError, match=match):
                Clients.from_settings(settings, SecretProvider(environ={}))
        client_cls.assert_not_called()
