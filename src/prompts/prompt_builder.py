# src/prompts/prompt_builder.py — v1
"""Prompt builder with a three-tier fallback: override, LLM, template.

``build_prompt`` never raises. LLM failures (auth, timeout, empty or
malformed reply) are logged and the deterministic template is used instead.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from profilegen.core.models import GenerationRequest
from profilegen.llm.models import Message
from profilegen.prompts.templates import build_template_prompt

if TYPE_CHECKING:
    from profilegen.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

_PROMPT_DIR = Path(__file__).parent
_MAX_PROMPT_CHARS = 2000

PromptSource = Literal["override", "llm", "template"]


@dataclass(frozen=True)
class BuiltPrompt:
    """Prompt text plus the tier that produced it."""

    text: str
    source: PromptSource


class PromptBuilder:
    """Build generation prompts for appraisers and locations."""

    def __init__(
        self,
        llm: BaseLLMClient | None = None,
        timeout_s: float = 20.0,
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> None:
        self._llm = llm
        self._timeout_s = timeout_s
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._system_prompts: dict[str, str] = {}

    async def build_prompt(self, request: GenerationRequest) -> BuiltPrompt:
        """Return the prompt for ``request``, degrading tier by tier."""
        if request.prompt_override is not None and request.prompt_override.strip():
            logger.info("Using custom prompt for %s", request.entity_id)
            return BuiltPrompt(request.prompt_override, "override")

        if self._llm is not None:
            text = await self._synthesize(self._llm, request)
            if text:
                return BuiltPrompt(text, "llm")

        return BuiltPrompt(build_template_prompt(request), "template")

    async def _synthesize(self, llm: BaseLLMClient, request: GenerationRequest) -> str | None:
        """Tier 2: one bounded LLM call. Returns None on any failure."""
        messages = [Message(role="user", content=self._user_message(request))]
        try:
            response = await asyncio.wait_for(
                llm.complete(
                    messages,
                    system=self._system_prompt(request.entity_kind),
                    max_tokens=self._max_tokens,
                    temperature=self._temperature,
                ),
                timeout=self._timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Prompt LLM timed out after %.1fs for %s, using template",
                self._timeout_s, request.entity_id,
            )
            return None
        except Exception as e:
            logger.error("Error generating prompt with LLM for %s: %s", request.entity_id, e)
            return None

        text = _clean_reply(response.content)
        if not text:
            logger.warning("Empty LLM prompt reply for %s, using template", request.entity_id)
            return None
        logger.info(
            "Generated prompt with %s for %s (%d ms)",
            response.provider, request.entity_id, response.latency_ms,
        )
        return text

    def _system_prompt(self, kind: str) -> str:
        if kind not in self._system_prompts:
            path = _PROMPT_DIR / f"{kind}_system.txt"
            self._system_prompts[kind] = path.read_text(encoding="utf-8").strip()
        return self._system_prompts[kind]

    @staticmethod
    def _user_message(request: GenerationRequest) -> str:
        noun = "art business location" if request.entity_kind == "location" else "art appraiser"
        lines = [f"Create a detailed image generation prompt for an {noun} with these characteristics:"]
        for key in sorted(request.attributes):
            value = request.attribute(key)
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                value = ", ".join(str(v) for v in value)
            lines.append(f"- {key}: {value}")
        return "\n".join(lines)


def _clean_reply(content: str) -> str:
    """Strip fences and quotes the model sometimes wraps around the prompt."""
    text = content.strip()
    if text.startswith("```"):
        text = "\n".join(l for l in text.split("\n") if not l.strip().startswith("```"))
    text = text.strip().strip('"').strip()
    return text[:_MAX_PROMPT_CHARS]
