"""
Payment reminder sweep.

Sends every PENDING email reminder that is due and marks it SENT or
FAILED. Each reminder is committed on its own, so one failure never
undoes or aborts the rest of the batch. Reminders for members
without an email address are skipped and stay PENDING.
"""

import logging
from dataclasses import dataclass
from datetime import date
from html import escape

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from branch_finance.models.base import utcnow
from branch_finance.models.enums import ReminderMethod, ReminderStatus
from branch_finance.models.member import PaymentReminder
from branch_finance.services.mailer import Mailer, MailError

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    sent: int = 0
    failed: int = 0
    skipped: int = 0


def reminder_email(reminder: PaymentReminder) -> tuple[str, str, str]:
    """Subject, plain text body and HTML body for a reminder."""
    member = reminder.member
    symbol = reminder.currency.symbol or f"{reminder.currency_code} "
    due = reminder.due_date.isoformat()
    subject = f"{reminder.reminder_type} Reminder"
    text = (
        f"Hello {member.first_name},\n\n"
        f"This is a reminder that your payment of {symbol}{reminder.amount} "
        f"is due on {due}.\n"
    )
    if reminder.message:
        text += f"\n{reminder.message}\n"
    html = (
        f"<p>Hello {escape(member.first_name)},</p>"
        f"<p>This is a reminder that your payment of "
        f"{escape(symbol)}{reminder.amount} is due on {due}.</p>"
        f"<p>{escape(reminder.message or '')}</p>"
    )
    return subject, text, html


class ReminderService:

    def __init__(self, db: Session, mailer: Mailer):
        self.db = db
        self.mailer = mailer

    def due_reminders(self, today: date) -> list[PaymentReminder]:
        return list(self.db.execute(
            select(PaymentReminder)
            .options(
                joinedload(PaymentReminder.member),
                joinedload(PaymentReminder.currency),
            )
            .where(
                PaymentReminder.status == ReminderStatus.PENDING,
                PaymentReminder.method == ReminderMethod.EMAIL,
                PaymentReminder.due_date <= today,
            )
            .order_by(PaymentReminder.due_date, PaymentReminder.id)
        ).scalars())

    def sweep(self, today: date | None = None) -> SweepResult:
        today = today or date.today()
        result = SweepResult()
        reminders = self.due_reminders(today)
        logger.info("Processing %d due payment reminders", len(reminders))

        for reminder in reminders:
            reminder_id = reminder.id
            try:
                outcome = self._process(reminder)
                self.db.commit()
            except Exception:
                self.db.rollback()
                logger.exception("Reminder %s could not be processed", reminder_id)
                self._mark_failed(reminder_id)
                result.failed += 1
            else:
                setattr(result, outcome, getattr(result, outcome) + 1)

        return result

    def _process(self, reminder: PaymentReminder) -> str:
        """Send one reminder; returns the SweepResult field to count it under."""
        email = reminder.member.email
        if not email:
            logger.warning(
                "Skipping reminder %s for member %s: no email address",
                reminder.id, reminder.member_id,
            )
            return "skipped"

        subject, text, html = reminder_email(reminder)
        try:
            self.mailer.send(email, subject, text, html)
        except MailError as e:
            reminder.status = ReminderStatus.FAILED
            logger.error("Reminder %s failed: %s", reminder.id, e)
            return "failed"
        reminder.status = ReminderStatus.SENT
        reminder.sent_at = utcnow()
        logger.info("Reminder %s sent to %s", reminder.id, email)
        return "sent"

    def _mark_failed(self, reminder_id: int):
        try:
            self.db.execute(
                update(PaymentReminder)
                .where(PaymentReminder.id == reminder_id)
                .values(status=ReminderStatus.FAILED)
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Could not mark reminder %s as failed", reminder_id)
