"""
Source file selection for repository analysis.

Keeps files worth reading (source, config, docs) and drops dependency
directories, build output, lock files, editor metadata and static assets.
"""

from typing import Iterable, List

ALLOWED_EXTENSIONS = (
    ".ts",
    ".tsx",
    ".js",
    ".jsx",
    ".py",
    ".java",
    ".go",
    ".rs",
    ".md",
    ".json",
    ".css",
    ".html",
    ".prisma",
    ".sql",
    ".sh",
    ".yaml",
    ".yml",
)

IGNORED_PATTERNS = (
    "node_modules",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "dist/",
    "build/",
    ".git/",
    ".next/",
    "coverage/",
    "__pycache__",
    ".venv",
    "venv/",
    ".idea/",
    ".vscode/",
    ".DS_Store",
    "assets/",
    "public/",
    "components/ui/",
)

# Paths under these folders are never sent to the LLM
ASSET_DIRECTORIES = ("public/", "assets/", "images/", "static/", "locales/")


def is_source_file(path: str) -> bool:
    """Return True if the path should be analyzed."""
    if any(pattern in path for pattern in IGNORED_PATTERNS):
        return False
    return path.endswith(ALLOWED_EXTENSIONS)


def filter_source_files(paths: Iterable[str]) -> List[str]:
    """Filter a list of repository paths down to analyzable source files."""
    return [path for path in paths if is_source_file(path)]


def is_asset_path(path: str) -> bool:
    """Return True if the path lives in a static asset folder (case-insensitive)."""
    lowered = path.lower()
    return any(folder in lowered for folder in ASSET_DIRECTORIES)
