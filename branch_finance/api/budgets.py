"""
Budget period and budget line API endpoints.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from branch_finance.exceptions import AppError
from branch_finance.models.base import get_db
from branch_finance.models.enums import BudgetStatus, BudgetType
from branch_finance.api.deps import require, request_meta
from branch_finance.services.audit_service import RequestMeta
from branch_finance.services.budget_service import BudgetService
from branch_finance.services.permissions import Actor
from branch_finance.schemas.budget import (
    BudgetPeriodCreate,
    BudgetPeriodUpdate,
    BudgetPeriodResponse,
    BudgetLineUpsert,
    BudgetLineResponse,
)

router = APIRouter(prefix="/api", tags=["Budgets"])


@router.post("/budget-periods", response_model=BudgetPeriodResponse, status_code=201)
def create_budget_period(
    request: BudgetPeriodCreate,
    actor: Actor = Depends(require("budgets", "create")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    """Open a budget period in DRAFT status."""
    service = BudgetService(db)
    try:
        period = service.create_period(actor, request, meta)
        db.commit()
        return period
    except AppError:
        db.rollback()
        raise


@router.get("/budget-periods", response_model=list[BudgetPeriodResponse])
def list_budget_periods(
    budget_type: BudgetType | None = None,
    status: BudgetStatus | None = None,
    actor: Actor = Depends(require("budgets", "read")),
    db: Session = Depends(get_db),
):
    return [
        BudgetPeriodResponse.model_validate(period).model_copy(
            update={"line_count": line_count}
        )
        for period, line_count in BudgetService(db).list_periods(budget_type, status)
    ]


@router.patch("/budget-periods/{period_id}", response_model=BudgetPeriodResponse)
def update_budget_period(
    period_id: int,
    request: BudgetPeriodUpdate,
    actor: Actor = Depends(require("budgets", "update")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = BudgetService(db)
    try:
        period = service.update_period(actor, period_id, request, meta)
        db.commit()
        return period
    except AppError:
        db.rollback()
        raise


@router.delete("/budget-periods/{period_id}", status_code=204)
def delete_budget_period(
    period_id: int,
    actor: Actor = Depends(require("budgets", "delete")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    """Delete a budget period that has no lines."""
    service = BudgetService(db)
    try:
        service.delete_period(actor, period_id, meta)
        db.commit()
    except AppError:
        db.rollback()
        raise
    return Response(status_code=204)


@router.post(
    "/budget-periods/{period_id}/lines",
    response_model=BudgetLineResponse,
    status_code=201,
)
def upsert_budget_line(
    period_id: int,
    request: BudgetLineUpsert,
    response: Response,
    actor: Actor = Depends(require("budgets", "create")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    """
    Set the budgeted amount for a head (and optional project).

    Answers 201 when the line is new and 200 when an existing line
    for the same head and project was updated.
    """
    service = BudgetService(db)
    try:
        line, created = service.upsert_line(actor, period_id, request, meta)
        db.commit()
    except AppError:
        db.rollback()
        raise
    if not created:
        response.status_code = 200
    return line


@router.get(
    "/budget-periods/{period_id}/lines",
    response_model=list[BudgetLineResponse],
)
def list_budget_lines(
    period_id: int,
    actor: Actor = Depends(require("budgets", "read")),
    db: Session = Depends(get_db),
):
    return BudgetService(db).list_lines(period_id)
