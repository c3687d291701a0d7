"""
Interview repository.
"""

import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from repobook.db.repositories.base import BaseRepository
from repobook.models.db import Interview, InterviewFeedback, InterviewStatus


class InterviewRepository(BaseRepository[Interview]):
    """Repository for Interview model."""

    def __init__(self, session: Session):
        super().__init__(Interview, session)

    def get_for_user(self, id: uuid.UUID, user_id: uuid.UUID) -> Optional[Interview]:
        """Get an interview only if it belongs to the given user."""
        return (
            self.session.query(Interview)
            .filter(Interview.id == id, Interview.user_id == user_id)
            .first()
        )

    def list_by_user(
        self, user_id: uuid.UUID, limit: Optional[int] = None, offset: int = 0
    ) -> List[Interview]:
        """List a user's interviews, newest first."""
        query = (
            self.session.query(Interview)
            .filter(Interview.user_id == user_id)
            .order_by(Interview.created_at.desc())
            .offset(offset)
        )
        if limit:
            query = query.limit(limit)
        return query.all()

    def get_recent(self, limit: int = 10) -> List[Interview]:
        """Get the most recently created interviews across all users."""
        return (
            self.session.query(Interview)
            .order_by(Interview.created_at.desc())
            .limit(limit)
            .all()
        )

    def save_feedback(self, interview: Interview, feedback: str) -> InterviewFeedback:
        """Store (or replace) the feedback text for an interview."""
        record = (
            self.session.query(InterviewFeedback)
            .filter(InterviewFeedback.interview_id == interview.id)
            .first()
        )
        if record is None:
            record = InterviewFeedback(interview_id=interview.id, feedback=feedback)
            self.session.add(record)
        else:
            record.feedback = feedback
        self.session.flush()
        return record

    def count_by_status(self, status: InterviewStatus) -> int:
        """Count interviews in a given status."""
        return (
            self.session.query(Interview).filter(Interview.status == status).count()
        )
