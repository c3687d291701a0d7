"""
Startup dependency checks for the RepoBook API.

Validates critical dependencies before the application starts serving requests.
Fails fast with clear, actionable error messages when requirements aren't met.
"""

import sys
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import text

from repobook.config import settings
from repobook.db.connection import SessionLocal, init_db


@dataclass
class StartupMetrics:
    """Metrics collected during startup checks."""

    started_at: datetime
    completed_at: Optional[datetime] = None
    total_duration_ms: Optional[float] = None
    environment_check_ms: Optional[float] = None
    database_check_ms: Optional[float] = None
    schema_check_ms: Optional[float] = None
    log_directory_check_ms: Optional[float] = None
    checks_passed: bool = False


# Global startup metrics (populated during startup)
startup_metrics = StartupMetrics(started_at=datetime.now(timezone.utc))


class StartupCheckError(Exception):
    """Raised when a critical startup check fails."""

    def __init__(self, message: str, hint: Optional[str] = None):
        self.message = message
        self.hint = hint
        super().__init__(message)

    def __str__(self) -> str:
        error_msg = f"\n{'='*70}\nSTARTUP CHECK FAILED\n{'='*70}\n\n{self.message}\n"
        if self.hint:
            error_msg += f"\nHint: {self.hint}\n"
        error_msg += f"{'='*70}\n"
        return error_msg


def check_required_environment() -> None:
    """
    Validate required environment variables are set.

    Raises:
        StartupCheckError: If the LLM provider is unknown or has no API key
    """
    if settings.llm_provider not in ("openai", "anthropic"):
        raise StartupCheckError(
            f"Unknown LLM_PROVIDER: {settings.llm_provider}",
            "Set LLM_PROVIDER to 'openai' or 'anthropic'",
        )

    missing = []
    if settings.llm_provider == "openai" and not settings.openai_api_key:
        missing.append("OPENAI_API_KEY")
    if settings.llm_provider == "anthropic" and not settings.anthropic_api_key:
        missing.append("ANTHROPIC_API_KEY")

    if missing:
        raise StartupCheckError(
            "Missing required environment variables:\n"
            + "\n".join(f"  - {var}" for var in missing),
            "Set these variables in your .env file",
        )


def check_database_connection() -> None:
    """
    Verify the database is accessible and responsive.

    Raises:
        StartupCheckError: If database connection fails
    """
    try:
        with SessionLocal() as session:
            result = session.execute(text("SELECT 1")).scalar()
            if result != 1:
                raise StartupCheckError(
                    "Database query returned unexpected result",
                    "Database may be corrupted or misconfigured",
                )
    except StartupCheckError:
        raise
    except Exception as e:
        error_str = str(e).lower()

        if "could not connect" in error_str or "connection refused" in error_str:
            hint = (
                "PostgreSQL is not running.\n"
                "  - Start with Docker: docker-compose up -d"
            )
        elif "authentication failed" in error_str or "password" in error_str:
            hint = (
                "Database authentication failed.\n"
                "  - Check credentials in .env file\n"
                f"  - Current user: {settings.postgres_user}\n"
                f"  - Current database: {settings.postgres_db}"
            )
        elif "timeout" in error_str or "timed out" in error_str:
            hint = (
                "Database connection timed out.\n"
                f"  - Current host: {settings.postgres_host}:{settings.postgres_port}"
            )
        else:
            hint = f"Check your database configuration in .env\nError: {str(e)}"

        raise StartupCheckError("Cannot connect to the database", hint) from e


def check_database_schema() -> None:
    """
    Create missing tables.

    Raises:
        StartupCheckError: If the schema cannot be created
    """
    try:
        init_db()
    except Exception as e:
        raise StartupCheckError(
            f"Failed to create database tables: {str(e)}",
            "Check that the database user may create tables",
        ) from e


def check_log_directory() -> None:
    """
    Verify the log directory is writable when file logging is enabled.

    Raises:
        StartupCheckError: If the directory cannot be created or written
    """
    if not settings.log_file_enabled:
        return

    log_dir = settings.log_directory
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        probe = log_dir / ".write_test"
        probe.write_text("ok")
        probe.unlink()
    except OSError as e:
        raise StartupCheckError(
            f"Log directory is not writable: {log_dir}",
            "Set LOG_DIR to a writable path or LOG_FILE_ENABLED=false",
        ) from e


def run_all_startup_checks() -> None:
    """
    Execute all startup dependency checks.

    Runs checks in order of dependency:
    1. Environment variables
    2. Database connection
    3. Database schema
    4. Log directory

    Raises:
        SystemExit: After printing the failed check
    """
    startup_start = time.time()

    checks = [
        ("Environment Variables", check_required_environment, "environment_check_ms"),
        ("Database Connection", check_database_connection, "database_check_ms"),
        ("Database Schema", check_database_schema, "schema_check_ms"),
        ("Log Directory", check_log_directory, "log_directory_check_ms"),
    ]

    print("\n" + "=" * 70)
    print("Starting RepoBook API - Running Startup Checks")
    print("=" * 70 + "\n")

    for check_name, check_func, metric_name in checks:
        print(f"  Checking {check_name}...", end=" ", flush=True)
        check_start = time.time()
        try:
            check_func()
        except StartupCheckError as e:
            setattr(startup_metrics, metric_name, (time.time() - check_start) * 1000)
            print("FAIL")
            print(str(e))
            sys.exit(1)
        check_duration = (time.time() - check_start) * 1000
        setattr(startup_metrics, metric_name, check_duration)
        print(f"PASS ({check_duration:.1f}ms)")

    startup_metrics.completed_at = datetime.now(timezone.utc)
    startup_metrics.total_duration_ms = (time.time() - startup_start) * 1000
    startup_metrics.checks_passed = True

    print("\n" + "=" * 70)
    print(
        f"All startup checks passed - Server is ready ({startup_metrics.total_duration_ms:.1f}ms)"
    )
    print("=" * 70 + "\n")
