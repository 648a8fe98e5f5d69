"""
Daily payment reminder job.

Runs the reminder sweep once a day at REMINDER_HOUR in the configured
local timezone. The sweep itself is synchronous database and SMTP
work, so it runs in a worker thread to keep the event loop free for
requests.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from branch_finance.config import Settings
from branch_finance.models.base import SessionLocal
from branch_finance.services.mailer import Mailer
from branch_finance.services.reminder_service import ReminderService, SweepResult

logger = logging.getLogger(__name__)


def seconds_until(hour: int, now: datetime) -> float:
    """Seconds from now until the next occurrence of hour:00 in now's timezone."""
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


def run_reminder_sweep(settings: Settings, session_factory=SessionLocal) -> SweepResult:
    db = session_factory()
    try:
        today = datetime.now(ZoneInfo(settings.TIMEZONE)).date()
        return ReminderService(db, Mailer(settings)).sweep(today)
    finally:
        db.close()


class ReminderScheduler:

    def __init__(self, settings: Settings, session_factory=SessionLocal):
        self.settings = settings
        self.session_factory = session_factory
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        self._task = asyncio.create_task(self._run())
        logger.info(
            "Payment reminder job scheduled daily at %02d:00 %s",
            self.settings.REMINDER_HOUR, self.settings.TIMEZONE,
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        tz = ZoneInfo(self.settings.TIMEZONE)
        while True:
            delay = seconds_until(self.settings.REMINDER_HOUR, datetime.now(tz))
            await asyncio.sleep(delay)
            try:
                result = await asyncio.to_thread(
                    run_reminder_sweep, self.settings, self.session_factory
                )
                logger.info(
                    "Reminder sweep finished: %d sent, %d failed, %d skipped",
                    result.sent, result.failed, result.skipped,
                )
            except Exception:
                # The job must survive a bad night; tomorrow's run retries.
                logger.exception("Reminder sweep failed")
