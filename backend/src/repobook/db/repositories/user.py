"""
User repository.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, func, literal, update
from sqlalchemy.orm import Session

from repobook.db.repositories.base import BaseRepository
from repobook.models.db import User


class UserRepository(BaseRepository[User]):
    """Repository for User model."""

    def __init__(self, session: Session):
        super().__init__(User, session)

    def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email (case-insensitive)."""
        return (
            self.session.query(User)
            .filter(User.email == email.strip().lower())
            .first()
        )

    def get_by_api_key_hash(self, api_key_hash: str) -> Optional[User]:
        """
        Get user by the SHA-256 hash of their API key.

        Used during authentication after hashing the presented bearer token.
        """
        return (
            self.session.query(User).filter(User.api_key_hash == api_key_hash).first()
        )

    def get_fresh(self, id: uuid.UUID) -> Optional[User]:
        """
        Get a user, overwriting any state already loaded in the session.

        Credit counters are changed by bulk UPDATE statements, so callers that
        read them must not trust the identity map.
        """
        return self.session.get(User, id, populate_existing=True)

    def get_recent(self, limit: int = 10) -> List[User]:
        """Get the most recently created users."""
        return (
            self.session.query(User)
            .order_by(User.created_at.desc())
            .limit(limit)
            .all()
        )

    def decrement_credit(
        self,
        id: uuid.UUID,
        credits_column: str,
        reset_column: str,
        new_reset_at: datetime,
    ) -> int:
        """
        Atomically take one credit if any is left.

        The reset timer is only started when it is not already running.

        Args:
            id: User UUID
            credits_column: Name of the counter column
            reset_column: Name of the matching reset timestamp column
            new_reset_at: Reset time to store when no timer is running

        Returns:
            Number of rows updated (0 when the counter was already zero)
        """
        credits = getattr(User, credits_column)
        reset_at = getattr(User, reset_column)
        stmt = (
            update(User)
            .where(User.id == id, credits > 0)
            .values(
                {
                    credits_column: credits - 1,
                    reset_column: func.coalesce(
                        reset_at, literal(new_reset_at, DateTime(timezone=True))
                    ),
                }
            )
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount

    def restore_credits(
        self,
        id: uuid.UUID,
        credits_column: str,
        reset_column: str,
        ceiling: int,
        now: datetime,
    ) -> int:
        """
        Restore a counter to the ceiling when its reset time has passed.

        Returns:
            Number of rows updated
        """
        reset_at = getattr(User, reset_column)
        stmt = (
            update(User)
            .where(User.id == id, reset_at.is_not(None), reset_at <= now)
            .values({credits_column: ceiling, reset_column: None})
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount
