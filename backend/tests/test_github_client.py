"""Tests for the GitHub REST client."""

import httpx
import pytest

from conftest import github_handler
from repobook.exceptions import GitHubError
from repobook.github.client import GitHubClient


def make_client(handler, token: str = "") -> GitHubClient:
    return GitHubClient(token=token, transport=httpx.MockTransport(handler))


class TestGetRepository:
    def test_lists_blobs_only(self, github_transport):
        with GitHubClient(token="", transport=github_transport) as client:
            listing = client.get_repository("octo", "demo")

        assert listing.full_name == "octo/demo"
        assert listing.default_branch == "main"
        assert listing.description == "Demo repository"
        assert [f.path for f in listing.files] == [
            "src/app.py",
            "README.md",
            "package-lock.json",
            "public/logo.png",
        ]
        assert listing.files[0].size == 120

    def test_requests_recursive_tree(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return github_handler(request)

        with make_client(handler) as client:
            client.get_repository("octo", "demo")

        assert seen[1].url.params["recursive"] == "1"

    def test_not_found_carries_status(self):
        with make_client(github_handler) as client:
            with pytest.raises(GitHubError) as exc_info:
                client.get_repository("octo", "missing")

        assert exc_info.value.status_code == 404
        assert "Not Found" in str(exc_info.value)

    def test_transport_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with make_client(handler) as client:
            with pytest.raises(GitHubError) as exc_info:
                client.get_repository("octo", "demo")

        assert exc_info.value.status_code is None


class TestGetFileContent:
    def test_decodes_base64(self, github_transport):
        with GitHubClient(token="", transport=github_transport) as client:
            content = client.get_file_content("octo", "demo", "src/app.py")

        assert content == "print('hello')\n"

    def test_directory_is_rejected(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"path": "src/app.py", "type": "file"}])

        with make_client(handler) as client:
            with pytest.raises(GitHubError) as exc_info:
                client.get_file_content("octo", "demo", "src")

        assert exc_info.value.status_code == 400


class TestAuthHeader:
    def test_token_is_sent(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers.get("Authorization"))
            return github_handler(request)

        with make_client(handler, token="ghp_secret") as client:
            client.get_file_content("octo", "demo", "README.md")

        assert seen == ["Bearer ghp_secret"]

    def test_anonymous_has_no_header(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers.get("Authorization"))
            return github_handler(request)

        with make_client(handler) as client:
            client.get_file_content("octo", "demo", "README.md")

        assert seen == [None]
