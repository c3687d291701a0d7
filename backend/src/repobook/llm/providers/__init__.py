"""Chat model backends behind the completion service.

``create_provider`` picks the backend named by ``LLM_PROVIDER``; the
service in ``repobook.llm.service`` is the only caller outside tests.
"""

import logging
from typing import Literal

from repobook.llm.providers.base import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)

ProviderType = Literal["openai", "anthropic"]


def create_provider(
    provider_type: ProviderType,
    api_key: str,
    model: str | None = None,
    timeout: float = 120.0,
) -> LLMProvider:
    """Build the provider for a configured backend.

    Args:
        provider_type: The provider to use ("openai" or "anthropic")
        api_key: API key for the provider
        model: Model override; each backend has its own default
        timeout: Request timeout in seconds

    Returns:
        A ready provider

    Raises:
        ValueError: If provider_type is unknown or api_key is missing
    """
    if not api_key:
        raise ValueError(f"API key is required for {provider_type} provider")

    if provider_type == "openai":
        from repobook.llm.providers.openai_provider import OpenAIProvider

        return OpenAIProvider(
            api_key=api_key, model=model or "gpt-4o-mini", timeout=timeout
        )

    elif provider_type == "anthropic":
        from repobook.llm.providers.anthropic_provider import AnthropicProvider

        return AnthropicProvider(
            api_key=api_key,
            model=model or "claude-sonnet-4-5-20250514",
            timeout=timeout,
        )

    else:
        raise ValueError(
            f"Unknown provider type: {provider_type}. "
            f"Supported providers: openai, anthropic"
        )


__all__ = [
    "LLMProvider",
    "LLMResponse",
    "ProviderType",
    "create_provider",
]
