"""GitHub integration: reference resolution, file listing and filtering."""

from repobook.github.client import GitHubClient, RepoFile, RepoListing
from repobook.github.resolver import RepositoryRef, resolve_repository

__all__ = [
    "GitHubClient",
    "RepoFile",
    "RepoListing",
    "RepositoryRef",
    "resolve_repository",
]
