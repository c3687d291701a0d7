"""Provider interface shared by the OpenAI and Anthropic backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class LLMResponse:
    """One completion plus its usage numbers.

    Attributes:
        content: The generated text content
        prompt_tokens: Number of tokens in the prompt
        completion_tokens: Number of tokens in the completion
        total_tokens: Total tokens used
        finish_reason: Why generation stopped (stop, length, error, etc.)
        model: The actual model used (may differ from requested)
        duration_ms: Time taken for the API call in milliseconds
    """

    content: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    finish_reason: str
    model: str
    duration_ms: float


class LLMProvider(ABC):
    """A chat model that turns a system and user prompt into text.

    Implementations own their SDK client, apply the configured request
    timeout, and let SDK errors propagate; the completion service wraps them.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider identifier (e.g., 'openai', 'anthropic')."""
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model identifier being used."""
        ...

    @abstractmethod
    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        json_schema: dict[str, Any] | None = None,
    ) -> LLMResponse:
        """Run one completion.

        Args:
            system_prompt: System message setting the context
            user_prompt: User message with the actual request
            max_tokens: Maximum tokens in the response
            temperature: Sampling temperature
            json_schema: When given, the response must be a single JSON object

        Returns:
            LLMResponse with the completion and metadata
        """
        ...
