"""
Procurement service: suppliers, assets and contracts.

Codes (SUP001, AST0001, CON001) come from the IdentifierService and
are never reused after a delete.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from branch_finance.exceptions import ConflictError
from branch_finance.models.enums import (
    ContractStatus,
    RiskLevel,
    SupplierStatus,
)
from branch_finance.models.finance import Expenditure
from branch_finance.models.member import Project
from branch_finance.models.procurement import Supplier, Asset, Contract
from branch_finance.models.reference import Branch, Currency
from branch_finance.models.user import User
from branch_finance.schemas.procurement import (
    SupplierCreate,
    SupplierUpdate,
    AssetCreate,
    AssetUpdate,
    ContractCreate,
    ContractUpdate,
)
from branch_finance.services.audit_service import (
    AuditService,
    RequestMeta,
    snapshot,
)
from branch_finance.services.identifier_service import IdentifierService
from branch_finance.services.lookups import get_or_404, dependents
from branch_finance.services.permissions import Actor


class ProcurementService:

    def __init__(self, db: Session):
        self.db = db
        self.identifiers = IdentifierService(db)
        self.audit = AuditService(db)

    def _update(self, actor, instance, table, changes, meta):
        old_values = snapshot(instance)
        for field, value in changes.items():
            setattr(instance, field, value)
        self.db.flush()
        self.audit.record(
            actor, "UPDATE", table, instance.id, old_values, snapshot(instance), meta
        )
        return instance

    def _delete(self, actor, instance, table, meta):
        old_values = snapshot(instance)
        record_id = instance.id
        self.db.delete(instance)
        self.db.flush()
        self.audit.record(actor, "DELETE", table, record_id, old_values, None, meta)

    # --- Suppliers ---

    def create_supplier(
        self, actor: Actor, request: SupplierCreate, meta: RequestMeta | None = None
    ) -> Supplier:
        if self._supplier_by_name(request.name):
            raise ConflictError("Supplier with this name already exists.")

        supplier = Supplier(
            **request.model_dump(),
            code=self.identifiers.allocate_code("supplier"),
            status=SupplierStatus.ACTIVE,
            rating=5,
            risk_level=RiskLevel.LOW,
        )
        self.db.add(supplier)
        self.db.flush()
        self.audit.record(
            actor, "CREATE", "suppliers", supplier.id, None, snapshot(supplier), meta
        )
        return supplier

    def list_suppliers(self, status=None, supplier_type=None) -> list[Supplier]:
        stmt = select(Supplier).order_by(Supplier.name)
        if status:
            stmt = stmt.where(Supplier.status == status)
        if supplier_type:
            stmt = stmt.where(Supplier.supplier_type == supplier_type)
        return list(self.db.execute(stmt).scalars())

    def update_supplier(
        self,
        actor: Actor,
        supplier_id: int,
        request: SupplierUpdate,
        meta: RequestMeta | None = None,
    ) -> Supplier:
        supplier = get_or_404(self.db, Supplier, supplier_id, "Supplier")
        changes = request.model_dump(exclude_unset=True)
        if "name" in changes and changes["name"] != supplier.name:
            if self._supplier_by_name(changes["name"]):
                raise ConflictError("Supplier with this name already exists.")
        return self._update(actor, supplier, "suppliers", changes, meta)

    def delete_supplier(
        self, actor: Actor, supplier_id: int, meta: RequestMeta | None = None
    ) -> None:
        supplier = get_or_404(self.db, Supplier, supplier_id, "Supplier")
        if dependents(self.db, [
            ("expenditures", Expenditure.supplier_id, supplier_id),
            ("contracts", Contract.supplier_id, supplier_id),
        ]):
            raise ConflictError(
                "Cannot delete supplier with associated expenditures or contracts."
            )
        self._delete(actor, supplier, "suppliers", meta)

    def _supplier_by_name(self, name: str) -> Supplier | None:
        return self.db.execute(
            select(Supplier).where(Supplier.name == name)
        ).scalar_one_or_none()

    # --- Assets ---

    def create_asset(
        self, actor: Actor, request: AssetCreate, meta: RequestMeta | None = None
    ) -> Asset:
        get_or_404(self.db, Branch, request.branch_code, "Branch")
        get_or_404(self.db, Currency, request.currency_code, "Currency")
        if request.expenditure_id:
            get_or_404(self.db, Expenditure, request.expenditure_id, "Expenditure")
        if request.assigned_to:
            get_or_404(self.db, User, request.assigned_to, "Assigned user")

        asset = Asset(
            **request.model_dump(),
            asset_number=self.identifiers.allocate_code("asset"),
            current_value=request.purchase_price,
        )
        self.db.add(asset)
        self.db.flush()
        self.audit.record(
            actor, "CREATE", "assets", asset.id, None, snapshot(asset), meta
        )
        return asset

    def list_assets(
        self,
        branch_code: str | None = None,
        category=None,
        condition=None,
        is_active: bool | None = None,
    ) -> list[Asset]:
        stmt = select(Asset).order_by(Asset.name)
        if branch_code:
            stmt = stmt.where(Asset.branch_code == branch_code)
        if category:
            stmt = stmt.where(Asset.category == category)
        if condition:
            stmt = stmt.where(Asset.condition == condition)
        if is_active is not None:
            stmt = stmt.where(Asset.is_active == is_active)
        return list(self.db.execute(stmt).scalars())

    def update_asset(
        self,
        actor: Actor,
        asset_id: int,
        request: AssetUpdate,
        meta: RequestMeta | None = None,
    ) -> Asset:
        asset = get_or_404(self.db, Asset, asset_id, "Asset")
        changes = request.model_dump(exclude_unset=True)
        if changes.get("expenditure_id"):
            get_or_404(self.db, Expenditure, changes["expenditure_id"], "Expenditure")
        if changes.get("assigned_to"):
            get_or_404(self.db, User, changes["assigned_to"], "Assigned user")
        # A new purchase price resets the book value unless one is given.
        if changes.get("purchase_price") and "current_value" not in changes:
            changes["current_value"] = changes["purchase_price"]
        return self._update(actor, asset, "assets", changes, meta)

    def delete_asset(
        self, actor: Actor, asset_id: int, meta: RequestMeta | None = None
    ) -> None:
        asset = get_or_404(self.db, Asset, asset_id, "Asset")
        self._delete(actor, asset, "assets", meta)

    # --- Contracts ---

    def create_contract(
        self, actor: Actor, request: ContractCreate, meta: RequestMeta | None = None
    ) -> Contract:
        get_or_404(self.db, Supplier, request.supplier_id, "Supplier")
        get_or_404(self.db, Currency, request.currency_code, "Currency")
        if request.project_id:
            get_or_404(self.db, Project, request.project_id, "Project")

        contract = Contract(
            **request.model_dump(),
            contract_number=self.identifiers.allocate_code("contract"),
            status=ContractStatus.DRAFT,
            created_by=actor.id,
        )
        self.db.add(contract)
        self.db.flush()
        self.audit.record(
            actor, "CREATE", "contracts", contract.id, None, snapshot(contract), meta
        )
        return contract

    def list_contracts(
        self, status=None, contract_type=None, supplier_id: int | None = None
    ) -> list[Contract]:
        stmt = select(Contract).order_by(Contract.created_at.desc(), Contract.id.desc())
        if status:
            stmt = stmt.where(Contract.status == status)
        if contract_type:
            stmt = stmt.where(Contract.contract_type == contract_type)
        if supplier_id:
            stmt = stmt.where(Contract.supplier_id == supplier_id)
        return list(self.db.execute(stmt).scalars())

    def update_contract(
        self,
        actor: Actor,
        contract_id: int,
        request: ContractUpdate,
        meta: RequestMeta | None = None,
    ) -> Contract:
        contract = get_or_404(self.db, Contract, contract_id, "Contract")
        changes = request.model_dump(exclude_unset=True)
        if changes.get("supplier_id"):
            get_or_404(self.db, Supplier, changes["supplier_id"], "Supplier")
        if changes.get("project_id"):
            get_or_404(self.db, Project, changes["project_id"], "Project")
        if changes.get("currency_code"):
            get_or_404(self.db, Currency, changes["currency_code"], "Currency")
        return self._update(actor, contract, "contracts", changes, meta)

    def delete_contract(
        self, actor: Actor, contract_id: int, meta: RequestMeta | None = None
    ) -> None:
        contract = get_or_404(self.db, Contract, contract_id, "Contract")
        self._delete(actor, contract, "contracts", meta)
