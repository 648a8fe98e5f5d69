"""
Payment reminder API endpoints.

The sweep normally runs from the daily scheduler; POST
/api/reminders/sweep runs it on demand for administrators.
"""

from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from branch_finance.config import Settings
from branch_finance.exceptions import AppError
from branch_finance.models.base import get_db
from branch_finance.models.enums import ReminderStatus
from branch_finance.api.deps import require, request_meta, settings_dependency
from branch_finance.services.audit_service import RequestMeta
from branch_finance.services.mailer import Mailer
from branch_finance.services.member_service import MemberService
from branch_finance.services.permissions import Actor
from branch_finance.services.reminder_service import ReminderService
from branch_finance.schemas.member import (
    ReminderCreate,
    ReminderResponse,
    SweepResponse,
)

router = APIRouter(prefix="/api", tags=["Reminders"])


@router.post("/reminders", response_model=ReminderResponse, status_code=201)
def create_reminder(
    request: ReminderCreate,
    actor: Actor = Depends(require("members", "update")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    """Schedule a payment reminder for a member."""
    service = MemberService(db)
    try:
        reminder = service.create_reminder(actor, request, meta)
        db.commit()
        return reminder
    except AppError:
        db.rollback()
        raise


@router.get("/reminders", response_model=list[ReminderResponse])
def list_reminders(
    status: ReminderStatus | None = None,
    member_id: int | None = None,
    actor: Actor = Depends(require("members", "read")),
    db: Session = Depends(get_db),
):
    return MemberService(db).list_reminders(actor, status, member_id)


@router.post("/reminders/sweep", response_model=SweepResponse)
def run_sweep(
    actor: Actor = Depends(require("settings", "system_config")),
    db: Session = Depends(get_db),
    settings: Settings = Depends(settings_dependency),
):
    """Send every due reminder now. Each reminder commits on its own."""
    today = datetime.now(ZoneInfo(settings.TIMEZONE)).date()
    result = ReminderService(db, Mailer(settings)).sweep(today)
    return SweepResponse(sent=result.sent, failed=result.failed, skipped=result.skipped)
