"""
Reference data API endpoints: branches, currencies, payment methods,
revenue heads and expenditure heads.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from branch_finance.exceptions import AppError
from branch_finance.models.base import get_db
from branch_finance.models.enums import ExpenditureCategory
from branch_finance.api.deps import require, request_meta
from branch_finance.services.audit_service import RequestMeta
from branch_finance.services.permissions import Actor
from branch_finance.services.reference_service import ReferenceService
from branch_finance.schemas.reference import (
    BranchCreate,
    BranchUpdate,
    BranchResponse,
    CurrencyCreate,
    CurrencyUpdate,
    CurrencyResponse,
    PaymentMethodCreate,
    PaymentMethodUpdate,
    PaymentMethodResponse,
    RevenueHeadCreate,
    RevenueHeadUpdate,
    RevenueHeadResponse,
    ExpenditureHeadCreate,
    ExpenditureHeadUpdate,
    ExpenditureHeadResponse,
)

router = APIRouter(prefix="/api", tags=["Reference Data"])


# --- Branch Endpoints ---

@router.post("/branches", response_model=BranchResponse, status_code=201)
def create_branch(
    request: BranchCreate,
    actor: Actor = Depends(require("branches", "create")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    """Create a branch. Code and name must both be unique."""
    service = ReferenceService(db)
    try:
        branch = service.create_branch(actor, request, meta)
        db.commit()
        return branch
    except AppError:
        db.rollback()
        raise


@router.get("/branches", response_model=list[BranchResponse])
def list_branches(
    actor: Actor = Depends(require("branches", "read")),
    db: Session = Depends(get_db),
):
    return ReferenceService(db).list_branches()


@router.patch("/branches/{code}", response_model=BranchResponse)
def update_branch(
    code: str,
    request: BranchUpdate,
    actor: Actor = Depends(require("branches", "update")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = ReferenceService(db)
    try:
        branch = service.update_branch(actor, code, request, meta)
        db.commit()
        return branch
    except AppError:
        db.rollback()
        raise


@router.delete("/branches/{code}", status_code=204)
def delete_branch(
    code: str,
    actor: Actor = Depends(require("branches", "delete")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    """
    Delete a branch.

    Refused with 409 while any user, member, project, financial
    record, head or asset still belongs to it.
    """
    service = ReferenceService(db)
    try:
        service.delete_branch(actor, code, meta)
        db.commit()
    except AppError:
        db.rollback()
        raise
    return Response(status_code=204)


# --- Currency Endpoints ---

@router.post("/currencies", response_model=CurrencyResponse, status_code=201)
def create_currency(
    request: CurrencyCreate,
    actor: Actor = Depends(require("currencies", "manage")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = ReferenceService(db)
    try:
        currency = service.create_currency(actor, request, meta)
        db.commit()
        return currency
    except AppError:
        db.rollback()
        raise


@router.get("/currencies", response_model=list[CurrencyResponse])
def list_currencies(
    actor: Actor = Depends(require("currencies", "read")),
    db: Session = Depends(get_db),
):
    return ReferenceService(db).list_currencies()


@router.patch("/currencies/{code}", response_model=CurrencyResponse)
def update_currency(
    code: str,
    request: CurrencyUpdate,
    actor: Actor = Depends(require("currencies", "manage")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = ReferenceService(db)
    try:
        currency = service.update_currency(actor, code.upper(), request, meta)
        db.commit()
        return currency
    except AppError:
        db.rollback()
        raise


@router.delete("/currencies/{code}", status_code=204)
def delete_currency(
    code: str,
    actor: Actor = Depends(require("currencies", "manage")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = ReferenceService(db)
    try:
        service.delete_currency(actor, code.upper(), meta)
        db.commit()
    except AppError:
        db.rollback()
        raise
    return Response(status_code=204)


# --- Payment Method Endpoints ---

@router.post(
    "/payment-methods", response_model=PaymentMethodResponse, status_code=201
)
def create_payment_method(
    request: PaymentMethodCreate,
    actor: Actor = Depends(require("payment_methods", "manage")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = ReferenceService(db)
    try:
        method = service.create_payment_method(actor, request, meta)
        db.commit()
        return method
    except AppError:
        db.rollback()
        raise


@router.get("/payment-methods", response_model=list[PaymentMethodResponse])
def list_payment_methods(
    actor: Actor = Depends(require("payment_methods", "read")),
    db: Session = Depends(get_db),
):
    return ReferenceService(db).list_payment_methods()


@router.patch("/payment-methods/{method_id}", response_model=PaymentMethodResponse)
def update_payment_method(
    method_id: int,
    request: PaymentMethodUpdate,
    actor: Actor = Depends(require("payment_methods", "manage")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = ReferenceService(db)
    try:
        method = service.update_payment_method(actor, method_id, request, meta)
        db.commit()
        return method
    except AppError:
        db.rollback()
        raise


@router.delete("/payment-methods/{method_id}", status_code=204)
def delete_payment_method(
    method_id: int,
    actor: Actor = Depends(require("payment_methods", "manage")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = ReferenceService(db)
    try:
        service.delete_payment_method(actor, method_id, meta)
        db.commit()
    except AppError:
        db.rollback()
        raise
    return Response(status_code=204)


# --- Revenue Head Endpoints ---

@router.post("/revenue-heads", response_model=RevenueHeadResponse, status_code=201)
def create_revenue_head(
    request: RevenueHeadCreate,
    actor: Actor = Depends(require("revenue_heads", "create")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    """Create a revenue head. Its code is allocated within the branch."""
    service = ReferenceService(db)
    try:
        head = service.create_revenue_head(actor, request, meta)
        db.commit()
        return head
    except AppError:
        db.rollback()
        raise


@router.get("/revenue-heads", response_model=list[RevenueHeadResponse])
def list_revenue_heads(
    branch_code: str | None = None,
    actor: Actor = Depends(require("revenue_heads", "read")),
    db: Session = Depends(get_db),
):
    return ReferenceService(db).list_revenue_heads(branch_code)


@router.patch("/revenue-heads/{code}", response_model=RevenueHeadResponse)
def update_revenue_head(
    code: str,
    request: RevenueHeadUpdate,
    actor: Actor = Depends(require("revenue_heads", "update")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = ReferenceService(db)
    try:
        head = service.update_revenue_head(actor, code, request, meta)
        db.commit()
        return head
    except AppError:
        db.rollback()
        raise


@router.delete("/revenue-heads/{code}", status_code=204)
def delete_revenue_head(
    code: str,
    actor: Actor = Depends(require("revenue_heads", "delete")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = ReferenceService(db)
    try:
        service.delete_revenue_head(actor, code, meta)
        db.commit()
    except AppError:
        db.rollback()
        raise
    return Response(status_code=204)


# --- Expenditure Head Endpoints ---

@router.post(
    "/expenditure-heads", response_model=ExpenditureHeadResponse, status_code=201
)
def create_expenditure_head(
    request: ExpenditureHeadCreate,
    actor: Actor = Depends(require("expenditure_heads", "create")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = ReferenceService(db)
    try:
        head = service.create_expenditure_head(actor, request, meta)
        db.commit()
        return head
    except AppError:
        db.rollback()
        raise


@router.get("/expenditure-heads", response_model=list[ExpenditureHeadResponse])
def list_expenditure_heads(
    branch_code: str | None = None,
    category: ExpenditureCategory | None = None,
    actor: Actor = Depends(require("expenditure_heads", "read")),
    db: Session = Depends(get_db),
):
    return ReferenceService(db).list_expenditure_heads(branch_code, category)


@router.patch("/expenditure-heads/{code}", response_model=ExpenditureHeadResponse)
def update_expenditure_head(
    code: str,
    request: ExpenditureHeadUpdate,
    actor: Actor = Depends(require("expenditure_heads", "update")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = ReferenceService(db)
    try:
        head = service.update_expenditure_head(actor, code, request, meta)
        db.commit()
        return head
    except AppError:
        db.rollback()
        raise


@router.delete("/expenditure-heads/{code}", status_code=204)
def delete_expenditure_head(
    code: str,
    actor: Actor = Depends(require("expenditure_heads", "delete")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = ReferenceService(db)
    try:
        service.delete_expenditure_head(actor, code, meta)
        db.commit()
    except AppError:
        db.rollback()
        raise
    return Response(status_code=204)
