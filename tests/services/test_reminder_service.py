"""
Tests for the payment reminder sweep and its daily schedule.
"""

from datetime import date, datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from branch_finance.models.enums import ReminderMethod, ReminderStatus
from branch_finance.models.member import PaymentReminder
from branch_finance.scheduler import seconds_until
from branch_finance.services.mailer import MailError
from branch_finance.services.reminder_service import ReminderService

from tests.conftest import make_member

TODAY = date(2025, 3, 1)


class FakeMailer:
    """Records messages; raises for addresses in fail_for."""

    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def send(self, to, subject, body, html_body=None):
        if to in self.fail_for:
            raise MailError(f"Failed to send email to {to}")
        self.sent.append((to, subject, body))


def add_reminder(db, member, due_date=TODAY, **extra):
    reminder = PaymentReminder(
        member_id=member.id,
        currency_code="USD",
        amount=Decimal("25.00"),
        due_date=due_date,
        reminder_type="PAYMENT_DUE",
        **extra,
    )
    db.add(reminder)
    db.flush()
    return reminder


def test_sends_due_reminders(world, db_session):
    member = make_member(db_session, email="tendai@example.com")
    reminder = add_reminder(db_session, member, message="Building fund pledge")
    db_session.commit()
    mailer = FakeMailer()

    result = ReminderService(db_session, mailer).sweep(TODAY)

    assert (result.sent, result.failed, result.skipped) == (1, 0, 0)
    assert reminder.status == ReminderStatus.SENT
    assert reminder.sent_at is not None
    to, subject, body = mailer.sent[0]
    assert to == "tendai@example.com"
    assert subject == "PAYMENT_DUE Reminder"
    assert "$25.00" in body
    assert "Building fund pledge" in body


def test_future_and_non_email_reminders_ignored(world, db_session):
    member = make_member(db_session, email="tendai@example.com")
    later = add_reminder(db_session, member, due_date=date(2025, 3, 2))
    by_sms = add_reminder(db_session, member, method=ReminderMethod.SMS)
    db_session.commit()

    result = ReminderService(db_session, FakeMailer()).sweep(TODAY)

    assert result.sent == 0
    assert later.status == ReminderStatus.PENDING
    assert by_sms.status == ReminderStatus.PENDING


def test_failure_does_not_stop_batch(world, db_session):
    bad = make_member(db_session, number="M0001", email="bad@example.com")
    good = make_member(db_session, number="M0002", email="good@example.com")
    failing = add_reminder(db_session, bad)
    passing = add_reminder(db_session, good)
    db_session.commit()

    result = ReminderService(
        db_session, FakeMailer(fail_for={"bad@example.com"})
    ).sweep(TODAY)

    assert (result.sent, result.failed) == (1, 1)
    assert failing.status == ReminderStatus.FAILED
    assert passing.status == ReminderStatus.SENT


class BrokenMailer(FakeMailer):
    """Raises an unexpected error for addresses in fail_for."""

    def send(self, to, subject, body, html_body=None):
        if to in self.fail_for:
            raise RuntimeError("SMTP connection reset")
        self.sent.append((to, subject, body))


def test_unexpected_error_does_not_stop_batch(world, db_session):
    bad = make_member(db_session, number="M0001", email="bad@example.com")
    good = make_member(db_session, number="M0002", email="good@example.com")
    failing = add_reminder(db_session, bad)
    passing = add_reminder(db_session, good)
    db_session.commit()
    mailer = BrokenMailer(fail_for={"bad@example.com"})

    result = ReminderService(db_session, mailer).sweep(TODAY)

    assert (result.sent, result.failed) == (1, 1)
    db_session.refresh(failing)
    db_session.refresh(passing)
    assert failing.status == ReminderStatus.FAILED
    assert failing.sent_at is None
    assert passing.status == ReminderStatus.SENT
    assert [to for to, _, _ in mailer.sent] == ["good@example.com"]


def test_member_without_email_is_skipped(world, db_session):
    member = make_member(db_session)
    reminder = add_reminder(db_session, member)
    db_session.commit()

    result = ReminderService(db_session, FakeMailer()).sweep(TODAY)

    assert result.skipped == 1
    assert reminder.status == ReminderStatus.PENDING


def test_sent_reminders_are_not_resent(world, db_session):
    member = make_member(db_session, email="tendai@example.com")
    add_reminder(db_session, member)
    db_session.commit()
    mailer = FakeMailer()
    service = ReminderService(db_session, mailer)

    service.sweep(TODAY)
    service.sweep(TODAY)

    assert len(mailer.sent) == 1


def test_seconds_until_later_today():
    now = datetime(2025, 3, 1, 7, 30, tzinfo=ZoneInfo("Africa/Harare"))
    assert seconds_until(9, now) == 90 * 60


def test_seconds_until_rolls_to_tomorrow():
    now = datetime(2025, 3, 1, 9, 0, tzinfo=ZoneInfo("Africa/Harare"))
    assert seconds_until(9, now) == 24 * 3600
