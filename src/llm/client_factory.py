# src/llm/client_factory.py — v3
"""Factory: instantiate the prompt-synthesis LLM client from settings.

Returns None when prompt synthesis is disabled or no credential is available;
the prompt builder then goes straight to its template tier.
"""

from __future__ import annotations

import importlib
import logging

from profilegen.config.secrets import SecretProvider
from profilegen.config.settings import Settings
from profilegen.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# Registry of provider name -> (adapter class path, secret names to try).
_PROVIDER_REGISTRY: dict[str, tuple[str, tuple[str, ...]]] = {
    "openai": (
        "profilegen.llm.adapters.openai_adapter.OpenAIAdapter",
        ("OPENAI_API_KEY", "OPEN_AI_API_SEO"),
    ),
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_llm_client(
    settings: Settings,
    secrets: SecretProvider | None = None,
) -> BaseLLMClient | None:
    """Build the configured LLM client, or None if it cannot be used.

    Raises:
        UnsupportedProviderError: If the configured provider is not registered.
    """
    if not settings.prompt_llm_enabled:
        logger.info("Prompt LLM disabled, template prompts only")
        return None

    provider = settings.prompt_llm_provider
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    class_path, secret_names = _PROVIDER_REGISTRY[provider]
    api_key = settings.openai_api_key
    if not api_key and secrets is not None:
        api_key = secrets.first_of(*secret_names) or ""
    if not api_key:
        logger.warning("No API key for prompt LLM %s, falling back to template prompts", provider)
        return None

    adapter_cls = _import_class(class_path)
    logger.debug("Creating LLM client: provider=%s, model=%s", provider, settings.prompt_llm_model)
    return adapter_cls(
        model=settings.prompt_llm_model,
        api_key=api_key,
        timeout_s=settings.prompt_llm_timeout_s,
    )


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
