"""
Extraction of a single string value from a JSON-mode LLM response.

The model is asked for a specific key, but replies sometimes use a different
one. Callers list the strategies to try, in order; the first that yields a
non-empty string wins.
"""

import json
from dataclasses import dataclass
from typing import Any, Sequence, Union

from repobook.exceptions import LLMPayloadError


@dataclass(frozen=True)
class KnownKey:
    """Take the value stored under a specific key."""

    key: str

    def pick(self, payload: dict[str, Any]) -> Any:
        return payload.get(self.key)


@dataclass(frozen=True)
class FirstObjectValue:
    """Take the first value of the object, whatever its key."""

    def pick(self, payload: dict[str, Any]) -> Any:
        return next(iter(payload.values()), None)


PayloadStrategy = Union[KnownKey, FirstObjectValue]

DEFAULT_STRATEGIES: tuple[PayloadStrategy, ...] = (KnownKey("code"), FirstObjectValue())


def extract_payload(
    raw: str, strategies: Sequence[PayloadStrategy] = DEFAULT_STRATEGIES
) -> str:
    """
    Parse a JSON object and return the first non-empty string found.

    Args:
        raw: Raw LLM response text
        strategies: Extraction strategies in fallback order

    Returns:
        The extracted string

    Raises:
        LLMPayloadError: If the text is not a JSON object or no strategy
            produces a non-empty string
    """
    try:
        payload = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        raise LLMPayloadError(f"Response is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise LLMPayloadError("Response is not a JSON object")

    for strategy in strategies:
        value = strategy.pick(payload)
        if isinstance(value, str) and value.strip():
            return value

    raise LLMPayloadError("Response JSON contains no usable value")
