"""OpenAI LLM provider implementation."""

import logging
import time
from typing import Any

from openai import OpenAI

from repobook.llm.providers.base import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions provider.

    JSON output uses the ``json_object`` response format.
    """

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", timeout: float = 120.0):
        if not api_key:
            raise ValueError("OpenAI API key is required")

        self.client = OpenAI(api_key=api_key, timeout=timeout)
        self._model = model
        logger.info(f"Initialized OpenAI provider with model: {model}")

    @property
    def provider_name(self) -> str:
        return "openai"

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

        request_params: dict[str, Any] = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_schema is not None:
            request_params["response_format"] = {"type": "json_object"}

        response = self.client.chat.completions.create(**request_params)
        duration_ms = (time.time() - start_time) * 1000

        usage = response.usage
        return LLMResponse(
            content=response.choices[0].message.content or "",
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            total_tokens=usage.total_tokens if usage else 0,
            finish_reason=response.choices[0].finish_reason or "unknown",
            model=response.model,
            duration_ms=duration_ms,
        )
