"""
GitHub REST API client.

Lists repository files (recursive tree of the default branch) and fetches
file contents. Works without a token at GitHub's anonymous rate limit.
"""

import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from repobook.config import settings
from repobook.exceptions import GitHubError

logger = logging.getLogger(__name__)


@dataclass
class RepoFile:
    """A blob in a repository tree."""

    path: str
    size: Optional[int] = None
    url: Optional[str] = None


@dataclass
class RepoListing:
    """Repository metadata plus every file on the default branch."""

    full_name: str
    owner: str
    name: str
    description: Optional[str]
    default_branch: str
    files: list[RepoFile] = field(default_factory=list)


class GitHubClient:
    """
    Thin synchronous wrapper over the GitHub REST API.

    Args:
        token: Personal access token (defaults to settings)
        base_url: API root (defaults to settings)
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (used by tests)
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        token = settings.github_token if token is None else token
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "repobook",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.Client(
            base_url=base_url or settings.github_api_url,
            headers=headers,
            timeout=timeout or settings.github_timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _get(self, path: str, **params: Any) -> Any:
        try:
            response = self._client.get(path, params=params or None)
        except httpx.RequestError as e:
            logger.error(f"GitHub request failed for {path}: {e}")
            raise GitHubError(f"GitHub request failed: {e}") from e

        if response.status_code >= 400:
            try:
                message = response.json().get("message", response.text)
            except ValueError:
                message = response.text
            logger.warning(f"GitHub returned {response.status_code} for {path}: {message}")
            raise GitHubError(message or "GitHub request failed", response.status_code)

        return response.json()

    def get_repository(self, owner: str, repo: str) -> RepoListing:
        """
        Fetch repository metadata and its recursive file tree.

        Only blobs (files) are returned; directories are skipped.

        Raises:
            GitHubError: On HTTP or transport failure
        """
        meta = self._get(f"/repos/{owner}/{repo}")
        default_branch = meta.get("default_branch") or "main"

        tree = self._get(
            f"/repos/{owner}/{repo}/git/trees/{default_branch}", recursive="1"
        )
        if tree.get("truncated"):
            logger.warning(f"Tree for {owner}/{repo} was truncated by GitHub")

        files = [
            RepoFile(path=item["path"], size=item.get("size"), url=item.get("url"))
            for item in tree.get("tree", [])
            if item.get("type") == "blob"
        ]
        logger.info(f"Listed {len(files)} files in {owner}/{repo}@{default_branch}")

        return RepoListing(
            full_name=meta.get("full_name", f"{owner}/{repo}"),
            owner=(meta.get("owner") or {}).get("login", owner),
            name=meta.get("name", repo),
            description=meta.get("description"),
            default_branch=default_branch,
            files=files,
        )

    def get_file_content(self, owner: str, repo: str, path: str) -> str:
        """
        Fetch and decode the contents of a single file.

        Raises:
            GitHubError: If the path is not a file or the request fails
        """
        data = self._get(f"/repos/{owner}/{repo}/contents/{path}")
        if isinstance(data, list) or data.get("type") != "file":
            raise GitHubError("Path is not a file", 400)

        raw = base64.b64decode(data.get("content", ""))
        return raw.decode("utf-8", errors="replace")
