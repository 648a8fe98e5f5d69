"""
Tests for dashboard figures and the financial export.
"""

import csv
import io
from datetime import date
from decimal import Decimal

import pytest
from openpyxl import load_workbook

from branch_finance.exceptions import ForbiddenError
from branch_finance.models.enums import ApprovalStatus
from branch_finance.schemas.finance import (
    ContributionCreate,
    TransactionCreate,
    ExpenditureCreate,
    ExpenditureDecision,
)
from branch_finance.services.finance_service import FinanceService
from branch_finance.services.permissions import require_permission
from branch_finance.services.report_service import (
    EXPORT_HEADERS,
    ReportService,
    export_filename,
    render_csv,
    render_xlsx,
)

from tests.conftest import actor_for, enroll, make_member, make_project


@pytest.fixture
def activity(world, db_session):
    """One contribution and one approved expenditure in branch 01, one
    transaction in branch 02."""
    admin = actor_for(world["users"]["admin"])
    supervisor = actor_for(world["users"]["supervisor"])
    cash = world["payment_method"].id
    north = make_member(db_session, branch_code="01", number="M0001")
    south = make_member(db_session, branch_code="02", number="M0002")
    project = make_project(db_session)
    enroll(db_session, north, project)

    finance = FinanceService(db_session)
    finance.record_contribution(admin, ContributionCreate(
        member_id=north.id, project_id=project.id,
        amount=Decimal("40.00"), payment_method_id=cash,
    ))
    finance.record_transaction(admin, TransactionCreate(
        member_id=south.id, revenue_head_code="02R001",
        amount=Decimal("60.00"), payment_method_id=cash,
    ))
    expenditure = finance.create_expenditure(supervisor, ExpenditureCreate(
        expenditure_head_code="01E001", description="Water bill",
        amount=Decimal("30.00"), payment_method_id=cash, branch_code="01",
    ))
    finance.decide_expenditure(
        admin, expenditure.id,
        ExpenditureDecision(approval_status=ApprovalStatus.APPROVED),
    )
    db_session.commit()


class TestDashboard:

    def test_all_branches(self, world, db_session, activity):
        stats = ReportService(db_session).dashboard(actor_for(world["users"]["admin"]))
        assert stats.branch_code is None
        assert stats.total_members == 2
        assert stats.total_collected.total == Decimal("100.00")
        assert stats.total_spent == Decimal("30.00")
        assert stats.pending_approvals == 0

    def test_scoped_to_own_branch(self, world, db_session, activity):
        stats = ReportService(db_session).dashboard(
            actor_for(world["users"]["supervisor"]), branch_code="02"
        )
        assert stats.branch_code == "01"
        assert stats.total_members == 1
        assert stats.total_collected.contributions == Decimal("40.00")
        assert stats.total_collected.transactions == Decimal("0")

    def test_admin_can_pick_branch(self, world, db_session, activity):
        stats = ReportService(db_session).dashboard(
            actor_for(world["users"]["admin"]), branch_code="02"
        )
        assert stats.total_transactions == 1
        assert stats.total_contributions == 0


class TestExport:

    def test_rows_merge_all_types(self, world, db_session, activity):
        rows = ReportService(db_session).export_rows(actor_for(world["users"]["admin"]))
        assert sorted(row.type for row in rows) == [
            "Contribution", "Expenditure", "Transaction",
        ]
        expenditure = next(row for row in rows if row.type == "Expenditure")
        assert expenditure.status == "APPROVED"
        assert expenditure.processed_by == "supervisor1"

    def test_type_filter(self, world, db_session, activity):
        rows = ReportService(db_session).export_rows(
            actor_for(world["users"]["admin"]), record_type="transaction"
        )
        assert [row.branch for row in rows] == ["02"]

    def test_export_scoped_to_own_branch(self, world, db_session, activity):
        rows = ReportService(db_session).export_rows(
            actor_for(world["users"]["supervisor"]), branch_code="02"
        )
        assert {row.branch for row in rows} == {"01"}

    def test_unknown_type(self, world, db_session):
        with pytest.raises(ValueError):
            ReportService(db_session).export_rows(
                actor_for(world["users"]["admin"]), record_type="refund"
            )

    def test_date_range_excludes_everything(self, world, db_session, activity):
        rows = ReportService(db_session).export_rows(
            actor_for(world["users"]["admin"]),
            start_date=date(2000, 1, 1), end_date=date(2000, 12, 31),
        )
        assert rows == []

    def test_render_csv(self, world, db_session, activity):
        rows = ReportService(db_session).export_rows(actor_for(world["users"]["admin"]))
        reader = csv.reader(io.StringIO(render_csv(rows).decode("utf-8")))
        header, *body = list(reader)
        assert header == EXPORT_HEADERS
        assert len(body) == 3

    def test_render_xlsx(self, world, db_session, activity):
        rows = ReportService(db_session).export_rows(actor_for(world["users"]["admin"]))
        sheet = load_workbook(io.BytesIO(render_xlsx(rows))).active
        assert sheet.title == "Financial Report"
        assert [cell.value for cell in sheet[1]] == EXPORT_HEADERS
        assert sheet.max_row == 4


def test_export_filename():
    assert export_filename("csv", date(2025, 4, 30)) == "financial-report-2025-04-30.csv"


def test_cashier_cannot_export(world):
    with pytest.raises(ForbiddenError):
        require_permission(actor_for(world["users"]["cashier"]), "reports", "export")
