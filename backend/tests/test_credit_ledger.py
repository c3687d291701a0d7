"""Tests for the credit ledger."""

import math
from datetime import datetime, timedelta, timezone

import pytest

from repobook.credits.ledger import CreditLedger, CreditType
from repobook.exceptions import (
    CreditsExhaustedError,
    InsufficientCreditsError,
    UserNotFoundError,
)
from repobook.utils.clock import as_utc, hours_until_reset

NOW = datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock(NOW)


@pytest.fixture
def ledger(db_session, clock) -> CreditLedger:
    return CreditLedger(db_session, ceiling=2, reset_hours=48, clock=clock)


class TestCheckCredits:
    def test_new_user_starts_at_ceiling(self, ledger, user):
        check = ledger.check_credits(user[0].id, CreditType.DOCUMENT)

        assert check.has_credits is True
        assert check.remaining == 2
        assert check.reset_at is None

    def test_unknown_user(self, ledger):
        import uuid

        with pytest.raises(UserNotFoundError):
            ledger.check_credits(uuid.uuid4(), CreditType.DOCUMENT)

    def test_admin_always_has_credits(self, ledger, make_user):
        admin, _ = make_user(is_admin=True, document_credits=0)

        check = ledger.check_credits(admin.id, CreditType.DOCUMENT)

        assert check.has_credits is True
        assert math.isinf(check.remaining)


class TestConsumeCredit:
    def test_decrements_and_starts_timer(self, ledger, user, db_session):
        ledger.consume_credit(user[0].id, CreditType.DOCUMENT)

        db_session.refresh(user[0])
        assert user[0].document_credits == 1
        assert user[0].interview_credits == 2
        assert as_utc(user[0].document_credits_reset_at) == NOW + timedelta(hours=48)
        assert user[0].interview_credits_reset_at is None

    def test_second_consumption_keeps_timer(self, ledger, user, db_session, clock):
        ledger.consume_credit(user[0].id, CreditType.DOCUMENT)
        clock.now = NOW + timedelta(hours=5)
        ledger.consume_credit(user[0].id, CreditType.DOCUMENT)

        db_session.refresh(user[0])
        assert user[0].document_credits == 0
        assert as_utc(user[0].document_credits_reset_at) == NOW + timedelta(hours=48)

    def test_exhausted_counter_raises(self, ledger, user):
        ledger.consume_credit(user[0].id, CreditType.INTERVIEW)
        ledger.consume_credit(user[0].id, CreditType.INTERVIEW)

        with pytest.raises(InsufficientCreditsError):
            ledger.consume_credit(user[0].id, CreditType.INTERVIEW)

        check = ledger.check_credits(user[0].id, CreditType.INTERVIEW)
        assert check.has_credits is False
        assert check.remaining == 0

    def test_admin_is_never_written(self, ledger, make_user, db_session):
        admin, _ = make_user(is_admin=True)

        for _ in range(5):
            ledger.consume_credit(admin.id, CreditType.DOCUMENT)

        db_session.refresh(admin)
        assert admin.document_credits == 2
        assert admin.document_credits_reset_at is None


class TestLazyReset:
    def test_no_reset_before_deadline(self, ledger, user, clock):
        ledger.consume_credit(user[0].id, CreditType.DOCUMENT)
        clock.now = NOW + timedelta(hours=47)

        assert ledger.reset_credits_if_needed(user[0].id, CreditType.DOCUMENT) is False
        assert ledger.check_credits(user[0].id, CreditType.DOCUMENT).remaining == 1

    def test_reset_after_deadline_on_read(self, ledger, user, clock, db_session):
        ledger.consume_credit(user[0].id, CreditType.DOCUMENT)
        ledger.consume_credit(user[0].id, CreditType.DOCUMENT)
        clock.now = NOW + timedelta(hours=48, seconds=1)

        check = ledger.check_credits(user[0].id, CreditType.DOCUMENT)

        assert check.has_credits is True
        assert check.remaining == 2
        assert check.reset_at is None
        db_session.refresh(user[0])
        assert user[0].document_credits_reset_at is None

    def test_reset_only_touches_its_own_counter(self, ledger, user, clock):
        ledger.consume_credit(user[0].id, CreditType.DOCUMENT)
        clock.now = NOW + timedelta(hours=1)
        ledger.consume_credit(user[0].id, CreditType.INTERVIEW)
        clock.now = NOW + timedelta(hours=48, minutes=30)

        status = ledger.get_credit_status(user[0].id)

        assert status.document_credits == 2
        assert status.interview_credits == 1
        assert status.interview_time_until_reset == 30 * 60 * 1000

    def test_new_timer_after_reset(self, ledger, user, clock, db_session):
        ledger.consume_credit(user[0].id, CreditType.DOCUMENT)
        later = NOW + timedelta(hours=50)
        clock.now = later

        ledger.consume_credit(user[0].id, CreditType.DOCUMENT)

        db_session.refresh(user[0])
        assert user[0].document_credits == 1
        assert as_utc(user[0].document_credits_reset_at) == later + timedelta(hours=48)


class TestCreditStatus:
    def test_regular_user(self, ledger, user, clock):
        ledger.consume_credit(user[0].id, CreditType.DOCUMENT)
        clock.now = NOW + timedelta(hours=1)

        status = ledger.get_credit_status(user[0].id)

        assert status.is_admin is False
        assert status.document_credits == 1
        assert status.interview_credits == 2
        assert status.document_time_until_reset == 47 * 3600 * 1000
        assert status.interview_time_until_reset is None

    def test_admin_is_unlimited(self, ledger, make_user):
        admin, _ = make_user(is_admin=True)

        status = ledger.get_credit_status(admin.id)

        assert status.is_admin is True
        assert math.isinf(status.document_credits)
        assert math.isinf(status.interview_credits)
        assert status.document_credits_reset_at is None


class TestHoursUntilReset:
    def test_rounds_up(self):
        assert hours_until_reset(NOW + timedelta(hours=3, minutes=1), NOW) == 4

    def test_past_deadline_is_zero(self):
        assert hours_until_reset(NOW - timedelta(hours=1), NOW) == 0

    def test_no_timer(self):
        assert hours_until_reset(None, NOW) is None

    def test_naive_datetimes_are_utc(self):
        naive = (NOW + timedelta(hours=2)).replace(tzinfo=None)
        assert hours_until_reset(naive, NOW) == 2

    def test_exhausted_error_uses_same_countdown(self):
        reset_at = NOW + timedelta(hours=10, minutes=30)
        error = CreditsExhaustedError(CreditType.DOCUMENT.value, reset_at)

        assert error.hours_until_reset(NOW) == hours_until_reset(reset_at, NOW) == 11
        assert CreditsExhaustedError("interview", None).hours_until_reset(NOW) is None
