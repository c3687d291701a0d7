"""
LLM interaction logging.

Writes one line per request, response and error to a dedicated rotating
file (``<log_dir>/llm/requests.log``) when LLM logging is enabled.
"""

import json
import logging
import logging.handlers
import time
from datetime import datetime, timezone

from repobook.config import settings
from repobook.llm.providers.base import LLMResponse

logger = logging.getLogger(__name__)


def _preview(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


class LLMLogger:
    """Logger for LLM API interactions, separate from the application log."""

    def __init__(self):
        self.llm_logger = logging.getLogger("repobook.llm")
        self.enabled = settings.llm_logging_enabled

        if self.enabled and settings.log_file_enabled:
            self._setup_file_handler()

    def _setup_file_handler(self) -> None:
        llm_dir = settings.log_directory / "llm"
        llm_dir.mkdir(parents=True, exist_ok=True)

        handler = logging.handlers.RotatingFileHandler(
            llm_dir / "requests.log",
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
            encoding="utf-8",
        )
        handler.setFormatter(
            logging.Formatter(
                fmt="[%(asctime)s] [%(levelname)s] %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

        self.llm_logger.addHandler(handler)
        self.llm_logger.setLevel(logging.INFO)
        self.llm_logger.propagate = False

    def log_request(
        self,
        purpose: str,
        model: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
        json_mode: bool,
    ) -> str:
        """
        Log an outgoing completion request.

        Args:
            purpose: What the call is for (e.g. ``stage-1``, ``diagram``)
            model: Model name
            user_prompt: Full user prompt
            max_tokens: Maximum tokens requested
            temperature: Temperature parameter
            json_mode: Whether a JSON object was requested

        Returns:
            str: Request ID for correlating with the response
        """
        request_id = f"{purpose}_{int(time.time() * 1000)}"
        if not self.enabled or not settings.llm_log_requests:
            return request_id

        log_entry = {
            "type": "request",
            "request_id": request_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "model": model,
            "purpose": purpose,
            "parameters": {
                "max_tokens": max_tokens,
                "temperature": temperature,
                "json_mode": json_mode,
            },
            "prompt_preview": _preview(user_prompt, 500),
            "prompt_length": len(user_prompt),
        }
        self.llm_logger.info(f"REQUEST: {json.dumps(log_entry)}")
        return request_id

    def log_response(self, request_id: str, response: LLMResponse) -> None:
        """Log a completion response."""
        if not self.enabled or not settings.llm_log_responses:
            return

        log_entry = {
            "type": "response",
            "request_id": request_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "model": response.model,
            "finish_reason": response.finish_reason,
            "content_length": len(response.content),
            "duration_ms": round(response.duration_ms, 2),
        }
        if settings.llm_log_tokens:
            log_entry["tokens"] = {
                "prompt": response.prompt_tokens,
                "completion": response.completion_tokens,
                "total": response.total_tokens,
            }
        if response.content:
            log_entry["content_preview"] = _preview(response.content, 200)

        self.llm_logger.info(f"RESPONSE: {json.dumps(log_entry)}")

    def log_error(self, request_id: str, error: Exception) -> None:
        """Log a failed completion request."""
        if not self.enabled:
            return

        log_entry = {
            "type": "error",
            "request_id": request_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "error_type": type(error).__name__,
            "error_message": str(error),
        }
        self.llm_logger.error(f"ERROR: {json.dumps(log_entry)}")


# Global LLM logger instance
llm_logger = LLMLogger()
