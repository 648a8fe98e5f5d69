"""
Tests for branches, currencies and revenue/expenditure heads.
"""

import pytest

from branch_finance.exceptions import ConflictError
from branch_finance.models.enums import ExpenditureCategory
from branch_finance.schemas.reference import (
    BranchCreate,
    CurrencyCreate,
    RevenueHeadCreate,
    ExpenditureHeadCreate,
)
from branch_finance.services.reference_service import ReferenceService

from tests.conftest import actor_for, make_member, make_project


@pytest.fixture
def admin(world):
    return actor_for(world["users"]["admin"])


class TestBranches:

    def test_create_branch(self, world, db_session, admin):
        branch = ReferenceService(db_session).create_branch(
            admin, BranchCreate(code="03", name="East")
        )
        assert branch.code == "03"
        assert branch.is_active

    def test_duplicate_code_or_name_rejected(self, world, db_session, admin):
        service = ReferenceService(db_session)
        with pytest.raises(ConflictError, match="code already exists"):
            service.create_branch(admin, BranchCreate(code="01", name="Elsewhere"))
        with pytest.raises(ConflictError, match="name already exists"):
            service.create_branch(admin, BranchCreate(code="09", name="North"))

    def test_list_is_ordered_by_name(self, world, db_session):
        names = [b.name for b in ReferenceService(db_session).list_branches()]
        assert names == ["Head Office", "North", "South"]

    def test_delete_blocked_then_allowed(self, world, db_session, admin):
        service = ReferenceService(db_session)
        service.create_branch(admin, BranchCreate(code="03", name="East"))
        member = make_member(db_session, branch_code="03")
        db_session.commit()

        with pytest.raises(ConflictError, match="members"):
            service.delete_branch(admin, "03")

        db_session.delete(member)
        db_session.commit()
        service.delete_branch(admin, "03")
        db_session.commit()
        assert all(b.code != "03" for b in service.list_branches())


class TestCurrencies:

    def test_code_is_uppercased(self, world, db_session, admin):
        currency = ReferenceService(db_session).create_currency(
            admin, CurrencyCreate(code="gbp", name="British Pound", symbol="£")
        )
        assert currency.code == "GBP"

    def test_currency_in_use_cannot_be_deleted(self, world, db_session, admin):
        make_project(db_session)
        db_session.commit()
        with pytest.raises(ConflictError, match="projects"):
            ReferenceService(db_session).delete_currency(admin, "USD")


class TestHeads:

    def test_revenue_head_code_allocated_per_branch(self, world, db_session, admin):
        service = ReferenceService(db_session)
        north = service.create_revenue_head(
            admin, RevenueHeadCreate(name="Offerings", branch_code="01")
        )
        head_office = service.create_revenue_head(
            admin, RevenueHeadCreate(name="Offerings", branch_code="00")
        )
        assert north.code == "01R002"
        assert head_office.code == "00R001"

    def test_revenue_head_name_unique_per_branch(self, world, db_session, admin):
        with pytest.raises(ConflictError, match="already exists for this branch"):
            ReferenceService(db_session).create_revenue_head(
                admin, RevenueHeadCreate(name="Tithes", branch_code="01")
            )

    def test_deleted_head_code_is_not_reused(self, world, db_session, admin):
        service = ReferenceService(db_session)
        head = service.create_expenditure_head(admin, ExpenditureHeadCreate(
            name="Travel", branch_code="01", category=ExpenditureCategory.OPERATIONAL,
        ))
        assert head.code == "01E002"
        service.delete_expenditure_head(admin, head.code)

        again = service.create_expenditure_head(admin, ExpenditureHeadCreate(
            name="Travel", branch_code="01", category=ExpenditureCategory.OPERATIONAL,
        ))
        assert again.code == "01E003"

    def test_filter_expenditure_heads_by_category(self, world, db_session, admin):
        service = ReferenceService(db_session)
        service.create_expenditure_head(admin, ExpenditureHeadCreate(
            name="Salaries", branch_code="01", category=ExpenditureCategory.PERSONNEL,
        ))
        heads = service.list_expenditure_heads(
            branch_code="01", category=ExpenditureCategory.PERSONNEL
        )
        assert [h.name for h in heads] == ["Salaries"]
