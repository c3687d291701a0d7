"""
Pytest configuration and fixtures for RepoBook tests.

This module provides shared fixtures for testing database models,
repositories, services and API routes. External collaborators (LLM, GitHub,
render service, CDN, realtime API) are replaced with in-process fakes.
"""

import os

# Must be set before repobook is imported: the settings object and the
# engine are created at import time.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LLM_LOGGING_ENABLED", "false")

import base64
import json
from typing import Any, Callable, Generator, Optional
from unittest.mock import patch

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from repobook.api.auth import hash_password, issue_api_key
from repobook.llm.providers.base import LLMProvider, LLMResponse
from repobook.llm.service import CompletionService
from repobook.models.db import Base, User

BOOK_JSON = json.dumps(
    {
        "title": "The Architecture of Demo: A Technical Deep Dive",
        "chapters": [
            {"title": "Chapter 1: The Vision & Core Purpose", "content": "Vision."},
            {"title": "Chapter 2: Architecture & Code Structure", "content": "Structure."},
            {"title": "Chapter 3: Visual Blueprint", "content": "Blueprint."},
        ],
    }
)

MERMAID_JSON = json.dumps({"code": "```mermaid\ngraph TD\n  A-->B\n```"})

REALTIME_SESSION = {
    "id": "sess_123",
    "object": "realtime.session",
    "client_secret": {"value": "ek_test", "expires_at": 1700000000},
}


def default_responder(system_prompt: str, user_prompt: str, json_mode: bool) -> str:
    """Plausible canned output for every kind of call the app makes."""
    if json_mode:
        return MERMAID_JSON if "Mermaid" in system_prompt else BOOK_JSON
    return "```markdown\n## Generated chapter\nSome narrative.\n```"


class FakeProvider(LLMProvider):
    """In-process LLM provider that records calls."""

    def __init__(self, responder: Callable[[str, str, bool], str] = default_responder):
        self.responder = responder
        self.calls: list[dict[str, Any]] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    @property
    def model_name(self) -> str:
        return "fake-model"

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        json_schema: Optional[dict[str, Any]] = None,
    ) -> LLMResponse:
        json_mode = json_schema is not None
        self.calls.append(
            {"system": system_prompt, "user": user_prompt, "json_mode": json_mode}
        )
        content = self.responder(system_prompt, user_prompt, json_mode)
        return LLMResponse(
            content=content,
            prompt_tokens=10,
            completion_tokens=20,
            total_tokens=30,
            finish_reason="stop",
            model=self.model_name,
            duration_ms=1.0,
        )


class FakeUploader:
    """Stands in for the Cloudinary uploader."""

    def __init__(self):
        self.uploads: list[tuple[str, str]] = []

    def upload(self, source: str, public_id: str, folder: Optional[str] = None) -> str:
        self.uploads.append((source, public_id))
        return f"https://res.cloudinary.com/demo/image/upload/{folder or 'x'}/{public_id}.png"

    def sign_upload(self, folder: Optional[str] = None) -> dict[str, Any]:
        return {
            "timestamp": 1700000000,
            "folder": folder or "gitdoc_uploads",
            "signature": "abc123",
            "api_key": "key",
            "cloud_name": "demo",
        }


def github_handler(request: httpx.Request) -> httpx.Response:
    """Serve a tiny fake repository from the GitHub REST API."""
    path = request.url.path
    if path == "/repos/octo/demo":
        return httpx.Response(
            200,
            json={
                "full_name": "octo/demo",
                "name": "demo",
                "owner": {"login": "octo"},
                "description": "Demo repository",
                "default_branch": "main",
            },
        )
    if path == "/repos/octo/demo/git/trees/main":
        return httpx.Response(
            200,
            json={
                "tree": [
                    {"path": "src", "type": "tree"},
                    {"path": "src/app.py", "type": "blob", "size": 120},
                    {"path": "README.md", "type": "blob", "size": 40},
                    {"path": "package-lock.json", "type": "blob", "size": 9000},
                    {"path": "public/logo.png", "type": "blob", "size": 500},
                ]
            },
        )
    if path.startswith("/repos/octo/demo/contents/"):
        content = base64.b64encode(b"print('hello')\n").decode()
        return httpx.Response(
            200, json={"type": "file", "encoding": "base64", "content": content}
        )
    return httpx.Response(404, json={"message": "Not Found"})


@pytest.fixture(scope="session")
def test_engine():
    """Create a test database engine using SQLite in-memory."""
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={
            "check_same_thread": False
        },  # Allow cross-thread access for TestClient
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """
    Create a new database session for a test.

    Each test gets a fresh session with a transaction that is rolled back
    after the test completes, ensuring test isolation.
    """
    connection = test_engine.connect()
    transaction = connection.begin()
    session = sessionmaker(bind=connection)()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def completions(fake_provider: FakeProvider) -> CompletionService:
    return CompletionService(fake_provider)


@pytest.fixture
def fake_uploader() -> FakeUploader:
    return FakeUploader()


@pytest.fixture
def github_transport() -> httpx.MockTransport:
    return httpx.MockTransport(github_handler)


@pytest.fixture
def render_transport() -> httpx.MockTransport:
    return httpx.MockTransport(lambda request: httpx.Response(200, content=b"PNG"))


@pytest.fixture
def realtime_transport() -> httpx.MockTransport:
    return httpx.MockTransport(lambda request: httpx.Response(200, json=REALTIME_SESSION))


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., tuple[User, str]]:
    """Factory creating users; returns the user and a working API key."""
    counter = {"n": 0}

    def _make(
        email: Optional[str] = None,
        password: str = "correct horse",
        is_admin: bool = False,
        **kwargs: Any,
    ) -> tuple[User, str]:
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            name=f"User {counter['n']}",
            password_hash=hash_password(password),
            is_admin=is_admin,
            **kwargs,
        )
        db_session.add(user)
        api_key = issue_api_key(user)
        db_session.flush()
        return user, api_key

    return _make


@pytest.fixture
def user(make_user) -> tuple[User, str]:
    return make_user()


@pytest.fixture
def auth_headers(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {user[1]}"}


@pytest.fixture
def api_client(
    db_session: Session,
    completions: CompletionService,
    fake_uploader: FakeUploader,
    github_transport: httpx.MockTransport,
    render_transport: httpx.MockTransport,
    realtime_transport: httpx.MockTransport,
):
    """Create a test client for FastAPI with every collaborator overridden."""
    from fastapi.testclient import TestClient

    from repobook.api import dependencies
    from repobook.api.app import app
    from repobook.db.connection import get_db
    from repobook.diagrams.renderer import MermaidRenderer
    from repobook.github.client import GitHubClient
    from repobook.llm.service import get_completion_service

    # Override the get_db dependency to use test database
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_completion_service] = lambda: completions
    app.dependency_overrides[dependencies.get_uploader] = lambda: fake_uploader
    app.dependency_overrides[dependencies.get_renderer] = lambda: MermaidRenderer(
        transport=render_transport
    )
    app.dependency_overrides[dependencies.get_github_client] = lambda: GitHubClient(
        token="", transport=github_transport
    )
    app.dependency_overrides[
        dependencies.get_realtime_transport
    ] = lambda: realtime_transport

    # Disable lifespan startup checks for testing
    with patch("repobook.api.app.run_all_startup_checks"):
        client = TestClient(app)
        yield client

    app.dependency_overrides.clear()
