# src/llm/base_client.py — v2
"""Abstract LLM client interface used for prompt synthesis."""

from __future__ import annotations

from abc import ABC, abstractmethod

from profilegen.llm.models import LLMResponse, Message


class BaseLLMClient(ABC):
    """Unified interface for text-completion providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Text completion."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (e.g. openai)."""
