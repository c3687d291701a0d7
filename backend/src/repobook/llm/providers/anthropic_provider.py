"""Anthropic LLM provider implementation."""

import json
import logging
import time
from typing import Any

from anthropic import Anthropic

from repobook.llm.providers.base import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


class AnthropicProvider(LLMProvider):
    """Anthropic Messages API provider.

    JSON output is requested through the system prompt and the first JSON
    object in the reply is returned, since the Messages API has no JSON mode.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-5-20250514",
        timeout: float = 120.0,
    ):
        if not api_key:
            raise ValueError("Anthropic API key is required")

        self.client = Anthropic(api_key=api_key, timeout=timeout)
        self._model = model
        logger.info(f"Initialized Anthropic provider with model: {model}")

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def model_name(self) -> str:
        return self._model

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        json_schema: dict[str, Any] | None = None,
    ) -> LLMResponse:
        start_time = time.time()

        if json_schema is not None:
            system_prompt += (
                "\n\nIMPORTANT: Respond with a single valid JSON object only. "
                "Do not include markdown code blocks or any other text."
            )

        response = self.client.messages.create(
            model=self._model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )
        duration_ms = (time.time() - start_time) * 1000

        content = "".join(
            block.text for block in response.content if block.type == "text"
        )
        if json_schema is not None:
            content = _extract_json_object(content)

        prompt_tokens = response.usage.input_tokens
        completion_tokens = response.usage.output_tokens
        return LLMResponse(
            content=content,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            finish_reason=response.stop_reason or "unknown",
            model=response.model,
            duration_ms=duration_ms,
        )


def _extract_json_object(text: str) -> str:
    """Trim prose around the first JSON object; return text unchanged if none parses."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return text
    candidate = text[start : end + 1]
    try:
        json.loads(candidate)
    except json.JSONDecodeError:
        return text
    return candidate
