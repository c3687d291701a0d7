"""LLM access: providers, completion service and response helpers."""

from repobook.llm.service import CompletionService, get_completion_service

__all__ = ["CompletionService", "get_completion_service"]
