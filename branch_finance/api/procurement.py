"""
Supplier, asset and contract API endpoints.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from branch_finance.exceptions import AppError
from branch_finance.models.base import get_db
from branch_finance.models.enums import (
    AssetCategory,
    AssetCondition,
    ContractStatus,
    ContractType,
    SupplierStatus,
    SupplierType,
)
from branch_finance.api.deps import require, request_meta
from branch_finance.services.audit_service import RequestMeta
from branch_finance.services.permissions import Actor
from branch_finance.services.procurement_service import ProcurementService
from branch_finance.schemas.procurement import (
    SupplierCreate,
    SupplierUpdate,
    SupplierResponse,
    AssetCreate,
    AssetUpdate,
    AssetResponse,
    ContractCreate,
    ContractUpdate,
    ContractResponse,
)

router = APIRouter(prefix="/api", tags=["Procurement"])


# --- Supplier Endpoints ---

@router.post("/suppliers", response_model=SupplierResponse, status_code=201)
def create_supplier(
    request: SupplierCreate,
    actor: Actor = Depends(require("suppliers", "create")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    """Register a supplier. It starts ACTIVE with a 5 rating and LOW risk."""
    service = ProcurementService(db)
    try:
        supplier = service.create_supplier(actor, request, meta)
        db.commit()
        return supplier
    except AppError:
        db.rollback()
        raise


@router.get("/suppliers", response_model=list[SupplierResponse])
def list_suppliers(
    status: SupplierStatus | None = None,
    supplier_type: SupplierType | None = None,
    actor: Actor = Depends(require("suppliers", "read")),
    db: Session = Depends(get_db),
):
    return ProcurementService(db).list_suppliers(status, supplier_type)


@router.patch("/suppliers/{supplier_id}", response_model=SupplierResponse)
def update_supplier(
    supplier_id: int,
    request: SupplierUpdate,
    actor: Actor = Depends(require("suppliers", "update")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = ProcurementService(db)
    try:
        supplier = service.update_supplier(actor, supplier_id, request, meta)
        db.commit()
        return supplier
    except AppError:
        db.rollback()
        raise


@router.delete("/suppliers/{supplier_id}", status_code=204)
def delete_supplier(
    supplier_id: int,
    actor: Actor = Depends(require("suppliers", "delete")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = ProcurementService(db)
    try:
        service.delete_supplier(actor, supplier_id, meta)
        db.commit()
    except AppError:
        db.rollback()
        raise
    return Response(status_code=204)


# --- Asset Endpoints ---

@router.post("/assets", response_model=AssetResponse, status_code=201)
def create_asset(
    request: AssetCreate,
    actor: Actor = Depends(require("assets", "create")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = ProcurementService(db)
    try:
        asset = service.create_asset(actor, request, meta)
        db.commit()
        return asset
    except AppError:
        db.rollback()
        raise


@router.get("/assets", response_model=list[AssetResponse])
def list_assets(
    branch_code: str | None = None,
    category: AssetCategory | None = None,
    condition: AssetCondition | None = None,
    is_active: bool | None = None,
    actor: Actor = Depends(require("assets", "read")),
    db: Session = Depends(get_db),
):
    return ProcurementService(db).list_assets(
        branch_code, category, condition, is_active
    )


@router.patch("/assets/{asset_id}", response_model=AssetResponse)
def update_asset(
    asset_id: int,
    request: AssetUpdate,
    actor: Actor = Depends(require("assets", "update")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    """Update an asset. A new purchase price also resets its current value."""
    service = ProcurementService(db)
    try:
        asset = service.update_asset(actor, asset_id, request, meta)
        db.commit()
        return asset
    except AppError:
        db.rollback()
        raise


@router.delete("/assets/{asset_id}", status_code=204)
def delete_asset(
    asset_id: int,
    actor: Actor = Depends(require("assets", "delete")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = ProcurementService(db)
    try:
        service.delete_asset(actor, asset_id, meta)
        db.commit()
    except AppError:
        db.rollback()
        raise
    return Response(status_code=204)


# --- Contract Endpoints ---

@router.post("/contracts", response_model=ContractResponse, status_code=201)
def create_contract(
    request: ContractCreate,
    actor: Actor = Depends(require("contracts", "create")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = ProcurementService(db)
    try:
        contract = service.create_contract(actor, request, meta)
        db.commit()
        return contract
    except AppError:
        db.rollback()
        raise


@router.get("/contracts", response_model=list[ContractResponse])
def list_contracts(
    status: ContractStatus | None = None,
    contract_type: ContractType | None = None,
    supplier_id: int | None = None,
    actor: Actor = Depends(require("contracts", "read")),
    db: Session = Depends(get_db),
):
    return ProcurementService(db).list_contracts(status, contract_type, supplier_id)


@router.patch("/contracts/{contract_id}", response_model=ContractResponse)
def update_contract(
    contract_id: int,
    request: ContractUpdate,
    actor: Actor = Depends(require("contracts", "update")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = ProcurementService(db)
    try:
        contract = service.update_contract(actor, contract_id, request, meta)
        db.commit()
        return contract
    except AppError:
        db.rollback()
        raise


@router.delete("/contracts/{contract_id}", status_code=204)
def delete_contract(
    contract_id: int,
    actor: Actor = Depends(require("contracts", "delete")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = ProcurementService(db)
    try:
        service.delete_contract(actor, contract_id, meta)
        db.commit()
    except AppError:
        db.rollback()
        raise
    return Response(status_code=204)
