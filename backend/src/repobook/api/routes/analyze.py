"""
File analysis API routes.

- POST /analyze/file - Analyze content the client already fetched
- POST /analyze/files - Fetch and analyze every source file of a repository
"""

import logging

from fastapi import APIRouter, Depends

from repobook.api.auth import AuthContext, get_current_user
from repobook.api.dependencies import get_github_client
from repobook.api.schemas import (
    AnalyzeFileRequest,
    AnalyzeFileResponse,
    AnalyzeFilesRequest,
    AnalyzeFilesResponse,
    FileAnalysisSchema,
)
from repobook.exceptions import InvalidInputError
from repobook.github.client import GitHubClient
from repobook.github.resolver import UNKNOWN, resolve_repository
from repobook.llm.service import CompletionService, get_completion_service
from repobook.pipeline.file_analysis import FileAnalyzer, analyze_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analyze", tags=["analyze"])


@router.post("/file", response_model=AnalyzeFileResponse)
def analyze_file(
    request: AnalyzeFileRequest,
    auth: AuthContext = Depends(get_current_user),
    completions: CompletionService = Depends(get_completion_service),
) -> AnalyzeFileResponse:
    if not request.path:
        raise InvalidInputError("Path is required")

    analyzer = FileAnalyzer(completions, github=None, owner="", repo="")
    analysis = analyzer.analyze_content(request.path, request.content, request.language)
    return AnalyzeFileResponse(analysis=analysis)


@router.post("/files", response_model=AnalyzeFilesResponse)
def analyze_files(
    request: AnalyzeFilesRequest,
    auth: AuthContext = Depends(get_current_user),
    github: GitHubClient = Depends(get_github_client),
    completions: CompletionService = Depends(get_completion_service),
) -> AnalyzeFilesResponse:
    """
    Run the file analysis step server-side.

    Files are analyzed one at a time; files that fail are left out.
    """
    ref = resolve_repository(request.repo_url)
    if ref.owner == UNKNOWN:
        raise InvalidInputError("Invalid GitHub URL")

    listing = github.get_repository(ref.owner, ref.name)
    analyzer = FileAnalyzer(completions, github, ref.owner, ref.name)
    analyses = analyze_repository(analyzer, [f.path for f in listing.files])

    logger.info(f"User {auth.user_id} analyzed {len(analyses)} files of {ref.full_name}")
    return AnalyzeFilesResponse(
        repo=listing.full_name,
        file_analyses=[
            FileAnalysisSchema(path=item.path, analysis=item.analysis)
            for item in analyses
        ],
    )
