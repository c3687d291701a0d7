"""
Repository layer for database operations.

Provides a clean API for CRUD operations on database models.
"""

from repobook.db.repositories.analysis import AnalysisRepository
from repobook.db.repositories.base import BaseRepository
from repobook.db.repositories.diagram import DiagramRepository
from repobook.db.repositories.interview import InterviewRepository
from repobook.db.repositories.rate_limit import RateLimitRepository
from repobook.db.repositories.repo import RepoRepository
from repobook.db.repositories.report import ReportRepository
from repobook.db.repositories.user import UserRepository

__all__ = [
    "AnalysisRepository",
    "BaseRepository",
    "DiagramRepository",
    "InterviewRepository",
    "RateLimitRepository",
    "RepoRepository",
    "ReportRepository",
    "UserRepository",
]
