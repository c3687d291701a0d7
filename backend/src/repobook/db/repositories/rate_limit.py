"""
Keyed rate-limit repository.

Replaces a per-process counter map so limits hold across server instances.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from repobook.db.repositories.base import BaseRepository
from repobook.models.db import RateLimit
from repobook.utils.clock import as_utc, utcnow


class RateLimitRepository(BaseRepository[RateLimit]):
    """Repository for RateLimit model."""

    def __init__(self, session: Session):
        super().__init__(RateLimit, session)

    def hit(
        self,
        key: str,
        limit: int,
        window_seconds: int,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Record one request against a fixed window counter.

        Args:
            key: Rate limit key (e.g. ``token:user@example.com``)
            limit: Allowed requests per window
            window_seconds: Window length
            now: Current time (defaults to UTC now)

        Returns:
            True if the request is allowed, False if the limit is reached
        """
        now = now or utcnow()
        record = (
            self.session.query(RateLimit)
            .filter(RateLimit.key == key)
            .with_for_update()
            .first()
        )

        if record is None or now > as_utc(record.reset_at):
            reset_at = now + timedelta(seconds=window_seconds)
            if record is None:
                record = RateLimit(key=key, count=1, reset_at=reset_at)
                self.session.add(record)
            else:
                record.count = 1
                record.reset_at = reset_at
            self.session.flush()
            return True

        if record.count >= limit:
            return False

        record.count += 1
        self.session.flush()
        return True
