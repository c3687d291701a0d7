"""
Analysis repository.
"""

import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from repobook.db.repositories.base import BaseRepository
from repobook.models.db import ACTIVE_ANALYSIS_STATUSES, Analysis, AnalysisStatus


class AnalysisRepository(BaseRepository[Analysis]):
    """Repository for Analysis model."""

    def __init__(self, session: Session):
        super().__init__(Analysis, session)

    def get_for_user(self, id: uuid.UUID, user_id: uuid.UUID) -> Optional[Analysis]:
        """Get an analysis only if it belongs to the given user."""
        return (
            self.session.query(Analysis)
            .filter(Analysis.id == id, Analysis.user_id == user_id)
            .populate_existing()
            .first()
        )

    def find_active(
        self, user_id: uuid.UUID, repository_id: Optional[uuid.UUID] = None
    ) -> Optional[Analysis]:
        """
        Find the most recently updated pending/processing analysis of a user.

        Args:
            user_id: Owner UUID
            repository_id: Restrict the search to one repository

        Returns:
            Analysis or None
        """
        query = self.session.query(Analysis).filter(
            Analysis.user_id == user_id,
            Analysis.status.in_(ACTIVE_ANALYSIS_STATUSES),
        )
        if repository_id is not None:
            query = query.filter(Analysis.repository_id == repository_id)
        return (
            query.order_by(Analysis.updated_at.desc(), Analysis.created_at.desc())
            .populate_existing()
            .first()
        )

    def list_by_user(
        self, user_id: uuid.UUID, limit: Optional[int] = None, offset: int = 0
    ) -> List[Analysis]:
        """List a user's analyses, newest first."""
        query = (
            self.session.query(Analysis)
            .filter(Analysis.user_id == user_id)
            .order_by(Analysis.created_at.desc())
            .offset(offset)
        )
        if limit:
            query = query.limit(limit)
        return query.all()

    def get_recent(self, limit: int = 10) -> List[Analysis]:
        """Get the most recently created analyses across all users."""
        return (
            self.session.query(Analysis)
            .order_by(Analysis.created_at.desc())
            .limit(limit)
            .all()
        )

    def count_by_status(self, status: AnalysisStatus) -> int:
        """Count analyses in a given status."""
        return self.session.query(Analysis).filter(Analysis.status == status).count()
