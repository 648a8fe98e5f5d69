"""
Tests for contributions, transactions and the expenditure workflow.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from branch_finance.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from branch_finance.models.enums import ApprovalStatus, RecordStatus
from branch_finance.schemas.finance import (
    ContributionCreate,
    TransactionCreate,
    ExpenditureCreate,
    ExpenditureUpdate,
    ExpenditureDecision,
)
from branch_finance.services.finance_service import FinanceService

from tests.conftest import actor_for, enroll, make_member, make_project

YEAR = datetime.now(timezone.utc).year


def contribution_request(world, member, project, amount="50.00"):
    return ContributionCreate(
        member_id=member.id,
        project_id=project.id,
        amount=Decimal(amount),
        currency_code="USD",
        payment_method_id=world["payment_method"].id,
    )


def transaction_request(world, member, head="01R001", amount="20.00"):
    return TransactionCreate(
        member_id=member.id,
        revenue_head_code=head,
        amount=Decimal(amount),
        currency_code="USD",
        payment_method_id=world["payment_method"].id,
    )


def expenditure_request(world, **overrides):
    data = dict(
        expenditure_head_code="01E001",
        description="Electricity bill",
        amount=Decimal("100.00"),
        tax_amount=Decimal("15.00"),
        currency_code="USD",
        payment_method_id=world["payment_method"].id,
        branch_code="01",
    )
    data.update(overrides)
    return ExpenditureCreate(**data)


@pytest.fixture
def enrolled(world, db_session):
    member = make_member(db_session)
    project = make_project(db_session)
    enroll(db_session, member, project)
    db_session.commit()
    return member, project


class TestContributions:

    def test_cashier_records_contribution(self, world, db_session, enrolled):
        member, project = enrolled
        cashier = actor_for(world["users"]["cashier"])
        service = FinanceService(db_session)

        contribution = service.record_contribution(
            cashier, contribution_request(world, member, project)
        )
        db_session.commit()

        assert contribution.receipt_number == f"01-MC-{YEAR}-000001"
        assert contribution.status == RecordStatus.COMPLETED
        assert contribution.branch_code == "01"
        assert contribution.processed_by == cashier.id

    def test_receipt_numbers_are_sequential(self, world, db_session, enrolled):
        member, project = enrolled
        cashier = actor_for(world["users"]["cashier"])
        service = FinanceService(db_session)

        numbers = [
            service.record_contribution(
                cashier, contribution_request(world, member, project)
            ).receipt_number
            for _ in range(3)
        ]
        assert numbers == [f"01-MC-{YEAR}-00000{i}" for i in (1, 2, 3)]

    def test_member_must_be_enrolled(self, world, db_session):
        member = make_member(db_session)
        project = make_project(db_session)
        db_session.commit()

        with pytest.raises(NotFoundError, match="not enrolled"):
            FinanceService(db_session).record_contribution(
                actor_for(world["users"]["cashier"]),
                contribution_request(world, member, project),
            )

    def test_inactive_project_rejected(self, world, db_session, enrolled):
        member, project = enrolled
        project.is_active = False
        db_session.commit()

        with pytest.raises(ValidationError, match="inactive"):
            FinanceService(db_session).record_contribution(
                actor_for(world["users"]["cashier"]),
                contribution_request(world, member, project),
            )

    def test_other_branch_project_forbidden(self, world, db_session, enrolled):
        member, project = enrolled
        with pytest.raises(ForbiddenError):
            FinanceService(db_session).record_contribution(
                actor_for(world["users"]["cashier2"]),
                contribution_request(world, member, project),
            )


class TestTransactions:

    def test_transaction_takes_member_branch(self, world, db_session):
        member = make_member(db_session, branch_code="02")
        db_session.commit()

        transaction = FinanceService(db_session).record_transaction(
            actor_for(world["users"]["admin"]),
            transaction_request(world, member, head="02R001"),
        )
        assert transaction.branch_code == "02"
        assert transaction.receipt_number == f"02-TR-{YEAR}-000001"

    def test_unknown_revenue_head(self, world, db_session):
        member = make_member(db_session)
        db_session.commit()
        with pytest.raises(NotFoundError, match="Revenue head"):
            FinanceService(db_session).record_transaction(
                actor_for(world["users"]["cashier"]),
                transaction_request(world, member, head="01R999"),
            )

    def test_list_is_scoped_to_own_branch(self, world, db_session):
        north = make_member(db_session, branch_code="01", number="M0001")
        south = make_member(db_session, branch_code="02", number="M0002")
        db_session.commit()
        admin = actor_for(world["users"]["admin"])
        service = FinanceService(db_session)
        service.record_transaction(admin, transaction_request(world, north))
        service.record_transaction(
            admin, transaction_request(world, south, head="02R001")
        )
        db_session.commit()

        cashier = actor_for(world["users"]["cashier"])
        rows, total = service.list_transactions(cashier, branch_code="02")
        assert total == 1
        assert rows[0].branch_code == "01"

        rows, total = service.list_transactions(admin)
        assert total == 2

    def test_date_filter_includes_whole_end_day(self, world, db_session):
        member = make_member(db_session)
        db_session.commit()
        admin = actor_for(world["users"]["admin"])
        service = FinanceService(db_session)
        request = transaction_request(world, member)
        request.transaction_date = datetime(2025, 3, 10, 18, 30)
        service.record_transaction(admin, request)
        db_session.commit()

        _, total = service.list_transactions(
            admin, start_date=date(2025, 3, 10), end_date=date(2025, 3, 10)
        )
        assert total == 1
        _, total = service.list_transactions(admin, start_date=date(2025, 3, 11))
        assert total == 0


class TestExpenditures:

    def test_create_computes_total_and_voucher(self, world, db_session):
        supervisor = actor_for(world["users"]["supervisor"])
        expenditure = FinanceService(db_session).create_expenditure(
            supervisor, expenditure_request(world)
        )
        assert expenditure.total_amount == Decimal("115.00")
        assert expenditure.voucher_number == f"01-EX-{YEAR}-000001"
        assert expenditure.approval_status == ApprovalStatus.PENDING
        assert expenditure.requested_by == supervisor.id
        assert expenditure.budget_year == YEAR

    def test_other_branch_needs_update_all(self, world, db_session):
        with pytest.raises(ForbiddenError):
            FinanceService(db_session).create_expenditure(
                actor_for(world["users"]["supervisor"]),
                expenditure_request(world, branch_code="02"),
            )

    def test_approve(self, world, db_session):
        service = FinanceService(db_session)
        expenditure = service.create_expenditure(
            actor_for(world["users"]["supervisor"]), expenditure_request(world)
        )
        admin = actor_for(world["users"]["admin"])

        approved = service.decide_expenditure(
            admin, expenditure.id,
            ExpenditureDecision(approval_status=ApprovalStatus.APPROVED),
        )
        assert approved.approval_status == ApprovalStatus.APPROVED
        assert approved.approved_by == admin.id
        assert approved.approved_at is not None

        with pytest.raises(ConflictError, match="already approved"):
            service.decide_expenditure(
                admin, expenditure.id,
                ExpenditureDecision(approval_status=ApprovalStatus.REJECTED),
            )

    def test_cannot_approve_own_request(self, world, db_session):
        admin = actor_for(world["users"]["admin"])
        service = FinanceService(db_session)
        expenditure = service.create_expenditure(admin, expenditure_request(world))
        with pytest.raises(ForbiddenError, match="your own"):
            service.decide_expenditure(
                admin, expenditure.id,
                ExpenditureDecision(approval_status=ApprovalStatus.APPROVED),
            )

    def test_pending_is_not_a_decision(self, world, db_session):
        with pytest.raises(ValidationError):
            FinanceService(db_session).decide_expenditure(
                actor_for(world["users"]["admin"]), 1,
                ExpenditureDecision(approval_status=ApprovalStatus.PENDING),
            )

    def test_only_approvers_modify_decided_expenditure(self, world, db_session):
        service = FinanceService(db_session)
        supervisor = actor_for(world["users"]["supervisor"])
        expenditure = service.create_expenditure(supervisor, expenditure_request(world))
        service.decide_expenditure(
            actor_for(world["users"]["admin"]), expenditure.id,
            ExpenditureDecision(approval_status=ApprovalStatus.APPROVED),
        )

        with pytest.raises(ForbiddenError, match="Only approvers"):
            service.update_expenditure(
                supervisor, expenditure.id, ExpenditureUpdate(description="Changed")
            )

    def test_update_recomputes_total(self, world, db_session):
        service = FinanceService(db_session)
        supervisor = actor_for(world["users"]["supervisor"])
        expenditure = service.create_expenditure(supervisor, expenditure_request(world))

        updated = service.update_expenditure(
            supervisor, expenditure.id, ExpenditureUpdate(tax_amount=Decimal("5.00"))
        )
        assert updated.total_amount == Decimal("105.00")
