"""
Diagram repository.
"""

import uuid
from typing import List, Set

from sqlalchemy.orm import Session

from repobook.db.repositories.base import BaseRepository
from repobook.models.db import Diagram


class DiagramRepository(BaseRepository[Diagram]):
    """Repository for Diagram model."""

    def __init__(self, session: Session):
        super().__init__(Diagram, session)

    def list_by_analysis(self, analysis_id: uuid.UUID) -> List[Diagram]:
        """List diagrams recorded for an analysis in creation order."""
        return (
            self.session.query(Diagram)
            .filter(Diagram.analysis_id == analysis_id)
            .order_by(Diagram.created_at)
            .all()
        )

    def image_urls(self, analysis_id: uuid.UUID) -> Set[str]:
        """Image URLs already recorded for an analysis."""
        rows = (
            self.session.query(Diagram.image_url)
            .filter(Diagram.analysis_id == analysis_id)
            .all()
        )
        return {row[0] for row in rows}
