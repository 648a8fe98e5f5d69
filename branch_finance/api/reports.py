"""
Dashboard and report export endpoints.
"""

import logging
from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from branch_finance.exceptions import ValidationError
from branch_finance.models.base import get_db
from branch_finance.api.deps import get_actor, require
from branch_finance.services.permissions import Actor
from branch_finance.services.report_service import (
    ReportService,
    export_filename,
    render_csv,
    render_xlsx,
)
from branch_finance.schemas.report import DashboardStats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Reports"])

XLSX_MEDIA_TYPE = (
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
)


@router.get("/dashboard/stats", response_model=DashboardStats)
def dashboard_stats(
    branch_code: str | None = None,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """
    Headline figures for the dashboard.

    Callers without reports:read_all always see their own branch.
    """
    return ReportService(db).dashboard(actor, branch_code)


@router.get("/reports/transactions-export")
def export_transactions(
    format: Literal["excel", "csv"] = "excel",
    type: str = Query("all"),
    branch_code: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    actor: Actor = Depends(require("reports", "export")),
    db: Session = Depends(get_db),
):
    """
    Download contributions, transactions and expenditures as one table.

    type narrows the export to contribution, transaction or
    expenditure rows.
    """
    try:
        rows = ReportService(db).export_rows(
            actor, branch_code, start_date, end_date, type
        )
    except ValueError as e:
        raise ValidationError(str(e))

    if format == "csv":
        content, media_type, extension = render_csv(rows), "text/csv", "csv"
    else:
        content, media_type, extension = render_xlsx(rows), XLSX_MEDIA_TYPE, "xlsx"

    logger.info(
        "User %s exported %d rows as %s", actor.username, len(rows), extension
    )
    return Response(
        content=content,
        media_type=media_type,
        headers={
            "Content-Disposition": (
                f'attachment; filename="{export_filename(extension)}"'
            )
        },
    )
