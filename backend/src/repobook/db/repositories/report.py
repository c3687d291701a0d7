"""
Report repository.
"""

import uuid
from typing import Optional

from sqlalchemy.orm import Session

from repobook.db.repositories.base import BaseRepository
from repobook.models.db import Report


class ReportRepository(BaseRepository[Report]):
    """Repository for Report model."""

    def __init__(self, session: Session):
        super().__init__(Report, session)

    def latest_for_analysis(self, analysis_id: uuid.UUID) -> Optional[Report]:
        """Get the most recent book compiled for an analysis."""
        return (
            self.session.query(Report)
            .filter(Report.analysis_id == analysis_id)
            .order_by(Report.created_at.desc())
            .first()
        )
