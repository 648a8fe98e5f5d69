"""
Tests for suppliers, assets and contracts.
"""

from datetime import date
from decimal import Decimal

import pytest

from branch_finance.exceptions import ConflictError, NotFoundError
from branch_finance.models.enums import (
    AssetCategory,
    ContractStatus,
    ContractType,
    SupplierStatus,
)
from branch_finance.schemas.procurement import (
    SupplierCreate,
    SupplierUpdate,
    AssetCreate,
    AssetUpdate,
    ContractCreate,
)
from branch_finance.services.procurement_service import ProcurementService

from tests.conftest import actor_for


@pytest.fixture
def admin(world):
    return actor_for(world["users"]["admin"])


def new_supplier(service, admin, name="Acme Hardware"):
    return service.create_supplier(admin, SupplierCreate(name=name))


def contract_request(supplier_id, **overrides):
    data = dict(
        supplier_id=supplier_id,
        title="Cleaning services",
        contract_value=Decimal("1200.00"),
        start_date=date(2025, 1, 1),
        end_date=date(2025, 12, 31),
        contract_type=ContractType.SERVICE,
    )
    data.update(overrides)
    return ContractCreate(**data)


class TestSuppliers:

    def test_codes_and_defaults(self, admin, db_session):
        service = ProcurementService(db_session)
        first = new_supplier(service, admin)
        second = new_supplier(service, admin, name="Bolt Traders")

        assert (first.code, second.code) == ("SUP001", "SUP002")
        assert first.status == SupplierStatus.ACTIVE
        assert first.rating == 5

    def test_duplicate_name(self, admin, db_session):
        service = ProcurementService(db_session)
        new_supplier(service, admin)
        with pytest.raises(ConflictError):
            new_supplier(service, admin)

    def test_rename_onto_existing_name(self, admin, db_session):
        service = ProcurementService(db_session)
        new_supplier(service, admin)
        other = new_supplier(service, admin, name="Bolt Traders")
        with pytest.raises(ConflictError):
            service.update_supplier(
                admin, other.id, SupplierUpdate(name="Acme Hardware")
            )

    def test_code_not_reused_after_delete(self, admin, db_session):
        service = ProcurementService(db_session)
        supplier = new_supplier(service, admin)
        service.delete_supplier(admin, supplier.id)
        assert new_supplier(service, admin, name="Bolt Traders").code == "SUP002"

    def test_delete_blocked_by_contract(self, admin, db_session):
        service = ProcurementService(db_session)
        supplier = new_supplier(service, admin)
        service.create_contract(admin, contract_request(supplier.id))
        with pytest.raises(ConflictError, match="contracts"):
            service.delete_supplier(admin, supplier.id)


class TestAssets:

    def asset_request(self, **overrides):
        data = dict(
            name="Projector",
            category=AssetCategory.ELECTRONICS,
            branch_code="01",
            purchase_price=Decimal("450.00"),
            purchase_date=date(2025, 2, 1),
        )
        data.update(overrides)
        return AssetCreate(**data)

    def test_create_sets_number_and_value(self, admin, db_session):
        asset = ProcurementService(db_session).create_asset(admin, self.asset_request())
        assert asset.asset_number == "AST0001"
        assert asset.current_value == Decimal("450.00")

    def test_unknown_branch(self, admin, db_session):
        with pytest.raises(NotFoundError, match="Branch"):
            ProcurementService(db_session).create_asset(
                admin, self.asset_request(branch_code="99")
            )

    def test_new_price_resets_current_value(self, admin, db_session):
        service = ProcurementService(db_session)
        asset = service.create_asset(admin, self.asset_request())
        updated = service.update_asset(
            admin, asset.id, AssetUpdate(purchase_price=Decimal("500.00"))
        )
        assert updated.current_value == Decimal("500.00")

    def test_filter_by_branch(self, admin, db_session):
        service = ProcurementService(db_session)
        service.create_asset(admin, self.asset_request())
        service.create_asset(admin, self.asset_request(name="Desk", branch_code="02"))
        assert [a.name for a in service.list_assets(branch_code="02")] == ["Desk"]


class TestContracts:

    def test_create_is_draft(self, admin, db_session):
        service = ProcurementService(db_session)
        supplier = new_supplier(service, admin)
        contract = service.create_contract(admin, contract_request(supplier.id))
        assert contract.contract_number == "CON001"
        assert contract.status == ContractStatus.DRAFT
        assert contract.created_by == admin.id

    def test_unknown_supplier(self, admin, db_session):
        with pytest.raises(NotFoundError, match="Supplier"):
            ProcurementService(db_session).create_contract(admin, contract_request(42))

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError):
            contract_request(1, end_date=date(2024, 12, 31))
