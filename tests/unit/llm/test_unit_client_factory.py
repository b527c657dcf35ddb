# tests/unit/llm/test_unit_client_factory.py — v1
"""Tests for llm/client_factory.py and the OpenAI adapter."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from profilegen.config.secrets import SecretProvider
from profilegen.config.settings import Settings
from profilegen.llm.adapters.openai_adapter import OpenAIAdapter
from profilegen.llm.client_factory import UnsupportedProviderError, create_llm_client
from profilegen.llm.models import Message


class TestCreateLLMClient:
    def test_disabled_returns_none(self):
        s = Settings(_env_file=None, prompt_llm_enabled=False, openai_api_key="sk-x")
        assert create_llm_client(s) is None

    def test_no_key_returns_none(self):
        s = Settings(_env_file=None, openai_api_key="")
        assert create_llm_client(s, SecretProvider(environ={})) is None

    def test_key_from_settings(self):
        s = Settings(_env_file=None, openai_api_key="sk-test", prompt_llm_model="gpt-4o-mini")
        client = create_llm_client(s)
        assert isinstance(client, OpenAIAdapter)
        assert client.provider_name == "openai"

    def test_key_from_legacy_secret_name(self):
        s = Settings(_env_file=None, openai_api_key="")
        client = create_llm_client(s, SecretProvider(environ={"OPEN_AI_API_SEO": "sk-legacy"}))
        assert isinstance(client, OpenAIAdapter)

    def test_unknown_provider(self):
        s = Settings(_env_file=None, prompt_llm_provider="nonexistent", openai_api_key="k")
        with pytest.raises(UnsupportedProviderError, match="nonexistent"):
            create_llm_client(s)


class TestOpenAIAdapter:
    @pytest.mark.asyncio
    async def test_complete_maps_response(self):
        sdk = MagicMock()
        sdk.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="a prompt"))],
            usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5),
        ))
        adapter = OpenAIAdapter(model="gpt-4o", client=sdk)

        resp = await adapter.complete(
            [Message(role="user", content="hi")], system="sys", max_tokens=500, temperature=0.7,
        )

        assert resp.content == "a prompt"
        assert resp.input_tokens == 10
        assert resp.output_tokens == 5
        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["messages"][0] == {"role": "system", "content": "sys"}
        assert kwargs["max_tokens"] == 500

    @pytest.mark.asyncio
    async def test_empty_content(self):
        sdk = MagicMock()
        sdk.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=None))], usage=None,
        ))
        resp = await OpenAIAdapter(client=sdk).complete([Message(role="user", content="x")])
        assert resp.content == ""
        assert resp.input_tokens == 0
