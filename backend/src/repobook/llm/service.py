"""
Completion service shared by the pipeline, diagram generator and interviews.

Wraps an LLMProvider with interaction logging and turns every provider
failure into an LLMServiceError so callers only handle one error type.
"""

import logging
from functools import lru_cache
from typing import Optional

from repobook.config import settings
from repobook.exceptions import LLMServiceError
from repobook.llm.llm_logger import LLMLogger, llm_logger
from repobook.llm.providers import LLMProvider, create_provider

logger = logging.getLogger(__name__)

# JSON mode needs a schema argument; the prompts describe the exact shape
JSON_OBJECT_SCHEMA = {"type": "object"}


class CompletionService:
    """
    Issue single-turn completions.

    Args:
        provider: Configured LLM provider
        interaction_logger: LLM logger (defaults to the global instance)
        max_tokens: Default response token cap
    """

    def __init__(
        self,
        provider: LLMProvider,
        interaction_logger: Optional[LLMLogger] = None,
        max_tokens: Optional[int] = None,
    ):
        self.provider = provider
        self.interaction_logger = interaction_logger or llm_logger
        self.max_tokens = max_tokens or settings.llm_max_tokens

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        json_mode: bool = False,
        temperature: float = 0.7,
        purpose: str = "completion",
    ) -> str:
        """
        Run one completion and return its text.

        Args:
            system_prompt: System message
            user_prompt: User message
            json_mode: Require a single JSON object in the response
            temperature: Sampling temperature
            purpose: Short label used in logs

        Returns:
            The response content

        Raises:
            LLMServiceError: If the provider call fails or returns nothing
        """
        request_id = self.interaction_logger.log_request(
            purpose,
            self.provider.model_name,
            user_prompt,
            self.max_tokens,
            temperature,
            json_mode,
        )
        try:
            response = self.provider.complete(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                max_tokens=self.max_tokens,
                temperature=temperature,
                json_schema=JSON_OBJECT_SCHEMA if json_mode else None,
            )
        except Exception as e:
            self.interaction_logger.log_error(request_id, e)
            logger.error(f"LLM call '{purpose}' failed: {e}")
            raise LLMServiceError(str(e) or "LLM request failed") from e

        self.interaction_logger.log_response(request_id, response)
        logger.debug(
            f"LLM call '{purpose}' finished in {response.duration_ms:.0f}ms "
            f"({response.total_tokens} tokens)"
        )

        if not response.content:
            raise LLMServiceError(f"Empty response from {self.provider.provider_name}")
        return response.content


@lru_cache(maxsize=1)
def get_completion_service() -> CompletionService:
    """
    Build the process-wide completion service from settings.

    Used as a FastAPI dependency; tests override it.

    Raises:
        LLMServiceError: If the configured provider has no API key
    """
    if settings.llm_provider == "anthropic":
        api_key, model = settings.anthropic_api_key, settings.anthropic_model
    else:
        api_key, model = settings.openai_api_key, settings.openai_model

    try:
        provider = create_provider(
            settings.llm_provider,
            api_key=api_key,
            model=model,
            timeout=settings.llm_timeout_seconds,
        )
    except ValueError as e:
        raise LLMServiceError(str(e)) from e
    return CompletionService(provider)
