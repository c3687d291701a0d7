"""
File Analysis Step.

Produces one short LLM analysis per source file. Files are processed
sequentially; a failure on one file is logged and that file is left out.
"""

import logging
from typing import Callable, Iterable, List, Optional

from repobook.config import settings
from repobook.github.client import GitHubClient
from repobook.github.filters import filter_source_files, is_asset_path
from repobook.llm.service import CompletionService
from repobook.models.pipeline import FileAnalysis

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, float], None]

FILE_ANALYSIS_SYSTEM_PROMPT = "You are an expert code reviewer and documentation writer."

SKIPPED_ASSET_TEMPLATE = (
    "**[Skipped Asset]**: This file is located in an asset directory ({path}) "
    "and was excluded from deep AI analysis to optimize processing."
)


def build_file_prompt(path: str, content: str, language: Optional[str]) -> str:
    """Build the per-file review prompt; content is cut to the character budget."""
    return f"""
You are an expert code reviewer and documentation writer.
Analyze the following code file from a GitHub repository.
File Path: {path}
Language: {language or "Unknown"}

Please provide a concise analysis in markdown format including:
1. **Purpose**: What does this file do?
2. **Key Components**: Important functions, classes, or logic.
3. **Observations**: Any notable patterns, best practices, or potential issues.

Code Content:
```{language or ""}
{content[: settings.file_content_char_budget]}
```
"""


def language_for(path: str) -> str:
    """Use the file extension as the language hint."""
    return path.rsplit(".", 1)[-1] if "." in path else ""


class FileAnalyzer:
    """
    Analyze single files of one repository.

    Args:
        completions: LLM completion service
        github: GitHub client used to fetch file contents
        owner: Repository owner
        repo: Repository name
    """

    def __init__(
        self,
        completions: CompletionService,
        github: Optional[GitHubClient],
        owner: str,
        repo: str,
    ):
        self.completions = completions
        self.github = github
        self.owner = owner
        self.repo = repo

    def analyze(self, path: str) -> str:
        """Fetch a file from GitHub and analyze it."""
        if is_asset_path(path):
            return SKIPPED_ASSET_TEMPLATE.format(path=path)
        if self.github is None:
            raise ValueError("A GitHub client is required to fetch file contents")

        content = self.github.get_file_content(self.owner, self.repo, path)
        return self.analyze_content(path, content, language_for(path))

    def analyze_content(
        self, path: str, content: str, language: Optional[str] = None
    ) -> str:
        """
        Analyze file content that is already in hand.

        Files in asset folders get a canned notice and no LLM call.
        """
        if is_asset_path(path):
            return SKIPPED_ASSET_TEMPLATE.format(path=path)

        return self.completions.complete(
            FILE_ANALYSIS_SYSTEM_PROMPT,
            build_file_prompt(path, content, language),
            purpose="file-analysis",
        )


def analyze_files(
    files: Iterable[str],
    analyze_one: Callable[[str], str],
    on_progress: Optional[ProgressCallback] = None,
) -> List[FileAnalysis]:
    """
    Analyze files one at a time.

    Args:
        files: Repository paths, already filtered
        analyze_one: Returns the analysis text for a path
        on_progress: Called with ``(path, percent)`` after each file

    Returns:
        Analyses for every file that succeeded, in input order
    """
    paths = list(files)
    total = len(paths)
    analyses: List[FileAnalysis] = []

    for index, path in enumerate(paths, start=1):
        try:
            analyses.append(FileAnalysis(path=path, analysis=analyze_one(path)))
        except Exception as e:
            logger.warning(f"Error analyzing file {path}: {e}")

        if on_progress is not None:
            on_progress(path, index / total * 100)

    logger.info(f"Analyzed {len(analyses)}/{total} files")
    return analyses


def analyze_repository(
    analyzer: FileAnalyzer,
    paths: Iterable[str],
    on_progress: Optional[ProgressCallback] = None,
) -> List[FileAnalysis]:
    """Filter a repository's paths to source files and analyze them."""
    return analyze_files(filter_source_files(paths), analyzer.analyze, on_progress)


def aggregate_context(analyses: Iterable[FileAnalysis]) -> str:
    """Render file analyses as one prompt context block."""
    return "\n\n".join(
        f"### File: {item.path}\n{item.analysis}" for item in analyses
    )
