"""
Logging configuration for RepoBook.

Console output is split between stdout (DEBUG/INFO) and stderr
(WARNING and above). File output goes to a rotating log per process
context (api, cli) inside the configured log directory.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone

from repobook.config import settings

_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "anthropic", "urllib3")

_configured_contexts: set[str] = set()


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


class _MaxLevelFilter(logging.Filter):
    """Only pass records strictly below a level (used for the stdout handler)."""

    def __init__(self, max_level: int):
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.max_level


def _build_formatter() -> logging.Formatter:
    if settings.log_format == "json":
        return JsonFormatter()
    return logging.Formatter(
        fmt="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def setup_logging(context: str = "api") -> None:
    """
    Configure root logging for a process context.

    Safe to call more than once; a context is only configured the first time.

    Args:
        context: Name of the running component, used for the log file name

    Raises:
        PermissionError: If the log directory cannot be created
    """
    if context in _configured_contexts:
        return

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    formatter = _build_formatter()

    root = logging.getLogger()
    root.setLevel(level)

    if settings.log_console_enabled:
        if settings.log_to_stdout:
            stdout_handler = logging.StreamHandler(sys.stdout)
            stdout_handler.setLevel(logging.DEBUG)
            stdout_handler.addFilter(_MaxLevelFilter(logging.WARNING))
            stdout_handler.setFormatter(formatter)
            root.addHandler(stdout_handler)
        if settings.log_to_stderr:
            stderr_handler = logging.StreamHandler(sys.stderr)
            stderr_handler.setLevel(logging.WARNING)
            stderr_handler.setFormatter(formatter)
            root.addHandler(stderr_handler)

    if settings.log_file_enabled:
        log_dir = settings.log_directory
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / f"{context}.log",
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured_contexts.add(context)
    logging.getLogger(__name__).debug(
        f"Logging configured (context={context}, level={settings.log_level})"
    )
