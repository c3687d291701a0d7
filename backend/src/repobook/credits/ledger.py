"""
Credit ledger.

Every user holds two independent counters (document and interview). A counter
starts at the configured ceiling, the reset timer starts on the first
consumption, and once the timer has passed the next read restores the counter
to the ceiling. Resets are lazy: nothing runs in the background.

Admins bypass the ledger entirely: they always have credits and are never
written to.
"""

import enum
import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from repobook.config import settings
from repobook.db.repositories.user import UserRepository
from repobook.exceptions import InsufficientCreditsError, UserNotFoundError
from repobook.models.db import User
from repobook.utils.clock import as_utc, utcnow

logger = logging.getLogger(__name__)

UNLIMITED = math.inf


class CreditType(str, enum.Enum):
    """Kinds of credit tracked per user."""

    DOCUMENT = "document"
    INTERVIEW = "interview"

    @property
    def credits_column(self) -> str:
        return f"{self.value}_credits"

    @property
    def reset_column(self) -> str:
        return f"{self.value}_credits_reset_at"


@dataclass(frozen=True)
class CreditCheck:
    """Result of a credit check."""

    has_credits: bool
    remaining: float  # math.inf for admins
    reset_at: Optional[datetime]


@dataclass(frozen=True)
class CreditStatus:
    """Snapshot of both counters for display."""

    is_admin: bool
    document_credits: float
    interview_credits: float
    document_credits_reset_at: Optional[datetime]
    interview_credits_reset_at: Optional[datetime]
    document_time_until_reset: Optional[int]  # milliseconds
    interview_time_until_reset: Optional[int]  # milliseconds


def _millis_until(reset_at: Optional[datetime], now: datetime) -> Optional[int]:
    reset_at = as_utc(reset_at)
    if reset_at is None:
        return None
    return max(0, int((reset_at - now).total_seconds() * 1000))


class CreditLedger:
    """
    Reads and mutates credit counters for users.

    Every call re-reads the persisted counters; the ledger holds no state of
    its own beyond configuration.

    Args:
        session: Database session
        ceiling: Credits restored on reset (defaults to settings)
        reset_hours: Length of the reset window (defaults to settings)
        clock: Callable returning the current UTC time
    """

    def __init__(
        self,
        session: Session,
        ceiling: Optional[int] = None,
        reset_hours: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.users = UserRepository(session)
        self.ceiling = settings.credit_ceiling if ceiling is None else ceiling
        self.reset_hours = (
            settings.credit_reset_hours if reset_hours is None else reset_hours
        )
        self.clock = clock

    def _load(self, user_id: uuid.UUID) -> User:
        user = self.users.get_fresh(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def _reset_if_due(self, user: User, credit_type: CreditType) -> bool:
        reset_at = as_utc(getattr(user, credit_type.reset_column))
        if reset_at is None or self.clock() < reset_at:
            return False

        updated = self.users.restore_credits(
            user.id,
            credit_type.credits_column,
            credit_type.reset_column,
            self.ceiling,
            self.clock(),
        )
        if updated:
            logger.info(
                f"Reset {credit_type.value} credits for user {user.id} "
                f"to {self.ceiling}"
            )
        self.session.refresh(user)
        return bool(updated)

    def check_credits(self, user_id: uuid.UUID, credit_type: CreditType) -> CreditCheck:
        """
        Report whether a user may perform an action of the given type.

        Applies a due reset before answering.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        user = self._load(user_id)
        if user.is_admin:
            return CreditCheck(has_credits=True, remaining=UNLIMITED, reset_at=None)

        self._reset_if_due(user, credit_type)
        remaining = getattr(user, credit_type.credits_column)
        return CreditCheck(
            has_credits=remaining > 0,
            remaining=remaining,
            reset_at=as_utc(getattr(user, credit_type.reset_column)),
        )

    def consume_credit(self, user_id: uuid.UUID, credit_type: CreditType) -> None:
        """
        Take one credit of the given type.

        The decrement is a single conditional UPDATE, so two concurrent
        consumers can never drive the counter below zero. A due reset is
        applied first; the reset timer is started only if it is not already
        running.

        Raises:
            UserNotFoundError: If the user does not exist
            InsufficientCreditsError: If no credit is left
        """
        user = self._load(user_id)
        if user.is_admin:
            return

        self._reset_if_due(user, credit_type)
        new_reset_at = self.clock() + timedelta(hours=self.reset_hours)
        updated = self.users.decrement_credit(
            user_id,
            credit_type.credits_column,
            credit_type.reset_column,
            new_reset_at,
        )
        if not updated:
            raise InsufficientCreditsError(credit_type.value)

        self.session.refresh(user)
        logger.info(
            f"Consumed {credit_type.value} credit for user {user_id} "
            f"({getattr(user, credit_type.credits_column)} left)"
        )

    def reset_credits_if_needed(
        self, user_id: uuid.UUID, credit_type: CreditType
    ) -> bool:
        """
        Restore the counter to the ceiling if its reset time has passed.

        Returns:
            True if a reset happened

        Raises:
            UserNotFoundError: If the user does not exist
        """
        user = self._load(user_id)
        if user.is_admin:
            return False
        return self._reset_if_due(user, credit_type)

    def get_credit_status(self, user_id: uuid.UUID) -> CreditStatus:
        """
        Snapshot both counters, applying due resets first.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        user = self._load(user_id)
        if user.is_admin:
            return CreditStatus(
                is_admin=True,
                document_credits=UNLIMITED,
                interview_credits=UNLIMITED,
                document_credits_reset_at=None,
                interview_credits_reset_at=None,
                document_time_until_reset=None,
                interview_time_until_reset=None,
            )

        for credit_type in CreditType:
            self._reset_if_due(user, credit_type)

        now = self.clock()
        return CreditStatus(
            is_admin=False,
            document_credits=user.document_credits,
            interview_credits=user.interview_credits,
            document_credits_reset_at=as_utc(user.document_credits_reset_at),
            interview_credits_reset_at=as_utc(user.interview_credits_reset_at),
            document_time_until_reset=_millis_until(
                user.document_credits_reset_at, now
            ),
            interview_time_until_reset=_millis_until(
                user.interview_credits_reset_at, now
            ),
        )
