"""
GitHub API routes.

- GET /github/repo - Repository metadata and its analyzable files
- GET /github/content - Raw content of one file
"""

import logging

from fastapi import APIRouter, Depends, Query

from repobook.api.dependencies import get_github_client
from repobook.api.schemas import (
    FileContentResponse,
    RepoFileSchema,
    RepoListingResponse,
)
from repobook.exceptions import InvalidInputError
from repobook.github.client import GitHubClient
from repobook.github.filters import is_source_file
from repobook.github.resolver import UNKNOWN, resolve_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/github", tags=["github"])


@router.get("/repo", response_model=RepoListingResponse)
def get_repo(
    url: str = Query(..., description="Repository URL or owner/name"),
    github: GitHubClient = Depends(get_github_client),
) -> RepoListingResponse:
    """
    List a repository's source files.

    Files that are not worth analyzing (lockfiles, binaries, build output)
    are filtered out.
    """
    ref = resolve_repository(url)
    if ref.owner == UNKNOWN:
        raise InvalidInputError("Invalid GitHub URL")

    listing = github.get_repository(ref.owner, ref.name)
    files = [
        RepoFileSchema(path=f.path, size=f.size, url=f.url)
        for f in listing.files
        if is_source_file(f.path)
    ]
    logger.info(
        f"Listed {len(files)}/{len(listing.files)} source files for {listing.full_name}"
    )
    return RepoListingResponse(
        repo=listing.full_name,
        owner=listing.owner,
        name=listing.name,
        description=listing.description,
        default_branch=listing.default_branch,
        files=files,
    )


@router.get("/content", response_model=FileContentResponse)
def get_content(
    owner: str,
    repo: str,
    path: str,
    github: GitHubClient = Depends(get_github_client),
) -> FileContentResponse:
    return FileContentResponse(content=github.get_file_content(owner, repo, path))
