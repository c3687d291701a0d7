"""Tests for configuration loading."""

from pathlib import Path

import pytest

from repobook.config import Settings, get_xdg_state_dir


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Settings under test must not see the suite's own overrides."""
    for var in (
        "DATABASE_URL",
        "PASSWORD_HASH_ITERATIONS",
        "LOG_FILE_ENABLED",
        "LLM_LOGGING_ENABLED",
        "XDG_STATE_HOME",
    ):
        monkeypatch.delenv(var, raising=False)


def make_settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


class TestSettings:
    """Tests for Settings defaults and overrides."""

    def test_credit_defaults(self):
        settings = make_settings()

        assert settings.credit_ceiling == 2
        assert settings.credit_reset_hours == 48

    def test_database_url_from_components(self):
        settings = make_settings(
            postgres_user="u",
            postgres_password="p",
            postgres_host="db",
            postgres_port=6543,
            postgres_db="books",
        )

        assert settings.database_url == "postgresql://u:p@db:6543/books"

    def test_database_url_env_wins(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///books.db")

        assert make_settings().database_url == "sqlite:///books.db"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "anthropic")
        monkeypatch.setenv("CREDIT_RESET_HOURS", "24")
        monkeypatch.setenv("DIAGRAM_MAX_WORKERS", "8")

        settings = make_settings()

        assert settings.llm_provider == "anthropic"
        assert settings.credit_reset_hours == 24
        assert settings.diagram_max_workers == 8

    def test_explicit_log_dir(self, tmp_path):
        settings = make_settings(log_dir=str(tmp_path / "logs"))

        assert settings.log_directory == tmp_path / "logs"


class TestXdgStateDir:
    def test_uses_xdg_state_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path))

        assert get_xdg_state_dir() == str(tmp_path / "repobook" / "logs")

    def test_falls_back_to_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))

        expected = Path(tmp_path) / ".local" / "state" / "repobook" / "logs"
        assert get_xdg_state_dir() == str(expected)
