"""
RepoBook Configuration.

Centralized configuration management using Pydantic Settings.
Loads configuration from environment variables.
"""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_xdg_state_dir() -> str:
    """
    Get XDG-compliant state directory for RepoBook logs.

    Follows XDG Base Directory Specification:
    - Uses $XDG_STATE_HOME/repobook if XDG_STATE_HOME is set
    - Falls back to $HOME/.local/state/repobook if not set
    - Returns relative path ./logs if HOME not available (dev/testing)

    Returns:
        str: Path to state/logs directory
    """
    xdg_state_home = os.getenv("XDG_STATE_HOME")
    if xdg_state_home:
        return str(Path(xdg_state_home) / "repobook" / "logs")

    home = os.getenv("HOME")
    if home:
        return str(Path(home) / ".local" / "state" / "repobook" / "logs")

    # Fallback for development/testing environments without HOME
    return "./logs"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    postgres_db: str = "repobook"
    postgres_user: str = "repobook"
    postgres_password: str = "repobook_dev_password"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    database_url_override: str = Field(default="", alias="DATABASE_URL")

    db_pool_size: int = 5
    db_pool_max_overflow: int = 5
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800

    @property
    def database_url(self) -> str:
        """Construct database URL from components (DATABASE_URL wins if set)."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # LLM
    llm_provider: str = "openai"  # openai or anthropic
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250514"
    llm_max_tokens: int = 4096
    llm_timeout_seconds: float = 120.0

    # Realtime interview sessions
    openai_realtime_url: str = "https://api.openai.com/v1/realtime/sessions"
    openai_realtime_model: str = "gpt-4o-mini-realtime-preview-2024-12-17"
    openai_realtime_voice: str = "alloy"

    # GitHub
    github_token: str = ""
    github_api_url: str = "https://api.github.com"
    github_timeout_seconds: float = 30.0

    # Cloudinary
    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    cloudinary_diagram_folder: str = "gitdoc_generated_diagrams"
    cloudinary_upload_folder: str = "gitdoc_uploads"

    # Diagrams
    mermaid_render_url: str = "https://mermaid.ink/img"
    diagram_max_workers: int = 4

    # Credits
    credit_ceiling: int = 2  # Credits restored on every reset
    credit_reset_hours: int = 48  # Rolling window from first consumption

    # File analysis
    file_content_char_budget: int = 30_000  # Characters sent to the LLM per file

    # Auth
    admin_email: str = ""
    password_hash_iterations: int = 600_000  # PBKDF2-SHA256 rounds
    token_rate_limit: int = 3  # API key issues per window per email
    token_rate_window_seconds: int = 3600

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = True
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Application
    environment: str = "development"

    # Logging
    log_level: str = "INFO"
    log_dir: str = ""  # XDG-compliant log directory (defaults to XDG state dir if empty)
    log_format: str = "standard"  # standard or json
    log_console_enabled: bool = True  # Enable console (stdout/stderr) logging
    log_file_enabled: bool = True  # Enable file-based logging
    log_max_bytes: int = 10_485_760  # 10MB per log file
    log_backup_count: int = 5  # Keep 5 backup files
    log_to_stdout: bool = True  # Log INFO/DEBUG to stdout
    log_to_stderr: bool = True  # Log WARNING/ERROR/CRITICAL to stderr

    # LLM Logging
    llm_logging_enabled: bool = False  # Enable detailed LLM interaction logging
    llm_log_requests: bool = True  # Log LLM API requests
    llm_log_responses: bool = True  # Log LLM API responses
    llm_log_tokens: bool = True  # Log token usage statistics

    @property
    def log_directory(self) -> Path:
        """Get the log directory path, using XDG default if not specified."""
        if self.log_dir:
            return Path(self.log_dir).expanduser()
        return Path(get_xdg_state_dir())


# Global settings instance
settings = Settings()
