"""
Contribution, transaction and expenditure API endpoints.

Every recorded payment gets a receipt number allocated in the same
database transaction as the record itself, so a rolled back request
leaves no gap-free number behind.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from branch_finance.config import Settings
from branch_finance.exceptions import AppError
from branch_finance.models.base import get_db
from branch_finance.models.enums import ApprovalStatus, RecordStatus
from branch_finance.api.deps import require, request_meta, settings_dependency
from branch_finance.services.audit_service import RequestMeta
from branch_finance.services.finance_service import FinanceService
from branch_finance.services.permissions import Actor
from branch_finance.schemas.finance import (
    ContributionCreate,
    ContributionResponse,
    ContributionList,
    TransactionCreate,
    TransactionResponse,
    TransactionList,
    ExpenditureCreate,
    ExpenditureUpdate,
    ExpenditureDecision,
    ExpenditureResponse,
    ExpenditureList,
)

router = APIRouter(prefix="/api", tags=["Finance"])


def get_finance_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(settings_dependency),
) -> FinanceService:
    return FinanceService(db, settings.TIMEZONE)


# --- Contribution Endpoints ---

@router.post("/contributions", response_model=ContributionResponse, status_code=201)
def record_contribution(
    request: ContributionCreate,
    actor: Actor = Depends(require("transactions", "create")),
    service: FinanceService = Depends(get_finance_service),
    meta: RequestMeta = Depends(request_meta),
):
    """
    Record a member's contribution to a project.

    The member must be enrolled in the project and the project must
    be active. The receipt number is drawn from the project's branch.
    """
    try:
        contribution = service.record_contribution(actor, request, meta)
        service.db.commit()
        return contribution
    except AppError:
        service.db.rollback()
        raise


@router.get("/contributions", response_model=ContributionList)
def list_contributions(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    branch_code: str | None = None,
    member_id: int | None = None,
    project_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    actor: Actor = Depends(require("transactions", "read")),
    service: FinanceService = Depends(get_finance_service),
):
    contributions, total = service.list_contributions(
        actor, limit, offset, branch_code, member_id, project_id,
        start_date, end_date,
    )
    return ContributionList(
        total=total, limit=limit, offset=offset, contributions=contributions
    )


# --- Transaction Endpoints ---

@router.post("/transactions", response_model=TransactionResponse, status_code=201)
def record_transaction(
    request: TransactionCreate,
    actor: Actor = Depends(require("transactions", "create")),
    service: FinanceService = Depends(get_finance_service),
    meta: RequestMeta = Depends(request_meta),
):
    """Record a general income transaction against a revenue head."""
    try:
        transaction = service.record_transaction(actor, request, meta)
        service.db.commit()
        return transaction
    except AppError:
        service.db.rollback()
        raise


@router.get("/transactions", response_model=TransactionList)
def list_transactions(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    branch_code: str | None = None,
    status: RecordStatus | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    actor: Actor = Depends(require("transactions", "read")),
    service: FinanceService = Depends(get_finance_service),
):
    """
    List transactions, newest first.

    Without transactions:read_all the list covers the caller's own
    branch whatever branch_code asks for.
    """
    transactions, total = service.list_transactions(
        actor, limit, offset, branch_code, status, start_date, end_date
    )
    return TransactionList(
        total=total, limit=limit, offset=offset, transactions=transactions
    )


# --- Expenditure Endpoints ---

@router.post("/expenditures", response_model=ExpenditureResponse, status_code=201)
def create_expenditure(
    request: ExpenditureCreate,
    actor: Actor = Depends(require("expenditures", "create")),
    service: FinanceService = Depends(get_finance_service),
    meta: RequestMeta = Depends(request_meta),
):
    """Raise an expenditure request. It starts PENDING approval."""
    try:
        expenditure = service.create_expenditure(actor, request, meta)
        service.db.commit()
        return expenditure
    except AppError:
        service.db.rollback()
        raise


@router.get("/expenditures", response_model=ExpenditureList)
def list_expenditures(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    branch_code: str | None = None,
    approval_status: ApprovalStatus | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    actor: Actor = Depends(require("expenditures", "read")),
    service: FinanceService = Depends(get_finance_service),
):
    expenditures, total = service.list_expenditures(
        actor, limit, offset, branch_code, approval_status, start_date, end_date
    )
    return ExpenditureList(
        total=total, limit=limit, offset=offset, expenditures=expenditures
    )


@router.get("/expenditures/{expenditure_id}", response_model=ExpenditureResponse)
def get_expenditure(
    expenditure_id: int,
    actor: Actor = Depends(require("expenditures", "read")),
    service: FinanceService = Depends(get_finance_service),
):
    return service.get_expenditure(actor, expenditure_id)


@router.patch("/expenditures/{expenditure_id}", response_model=ExpenditureResponse)
def update_expenditure(
    expenditure_id: int,
    request: ExpenditureUpdate,
    actor: Actor = Depends(require("expenditures", "update")),
    service: FinanceService = Depends(get_finance_service),
    meta: RequestMeta = Depends(request_meta),
):
    """
    Update an expenditure.

    Once approved or rejected, only holders of expenditures:approve
    may change it. The total is recomputed from amount and tax.
    """
    try:
        expenditure = service.update_expenditure(actor, expenditure_id, request, meta)
        service.db.commit()
        return expenditure
    except AppError:
        service.db.rollback()
        raise


@router.post(
    "/expenditures/{expenditure_id}/approval",
    response_model=ExpenditureResponse,
)
def decide_expenditure(
    expenditure_id: int,
    request: ExpenditureDecision,
    actor: Actor = Depends(require("expenditures", "approve")),
    service: FinanceService = Depends(get_finance_service),
    meta: RequestMeta = Depends(request_meta),
):
    """Approve or reject a pending expenditure."""
    try:
        expenditure = service.decide_expenditure(actor, expenditure_id, request, meta)
        service.db.commit()
        return expenditure
    except AppError:
        service.db.rollback()
        raise


@router.delete("/expenditures/{expenditure_id}", status_code=204)
def delete_expenditure(
    expenditure_id: int,
    actor: Actor = Depends(require("expenditures", "delete")),
    service: FinanceService = Depends(get_finance_service),
    meta: RequestMeta = Depends(request_meta),
):
    try:
        service.delete_expenditure(actor, expenditure_id, meta)
        service.db.commit()
    except AppError:
        service.db.rollback()
        raise
    return Response(status_code=204)
