"""
Tests for budget periods and budget lines.
"""

from datetime import date
from decimal import Decimal

import pytest

from branch_finance.exceptions import ConflictError, NotFoundError, ValidationError
from branch_finance.models.enums import BudgetStatus
from branch_finance.schemas.budget import (
    BudgetPeriodCreate,
    BudgetPeriodUpdate,
    BudgetLineUpsert,
)
from branch_finance.services.budget_service import BudgetService

from tests.conftest import actor_for


@pytest.fixture
def admin(world):
    return actor_for(world["users"]["admin"])


@pytest.fixture
def period(admin, db_session):
    return BudgetService(db_session).create_period(admin, BudgetPeriodCreate(
        name="FY 2025",
        start_date=date(2025, 1, 1),
        end_date=date(2025, 12, 31),
        total_budget=Decimal("50000.00"),
    ))


def test_new_period_is_draft(admin, period):
    assert period.status == BudgetStatus.DRAFT
    assert period.created_by == admin.id


def test_update_rejects_inverted_dates(admin, db_session, period):
    with pytest.raises(ValidationError):
        BudgetService(db_session).update_period(
            admin, period.id, BudgetPeriodUpdate(end_date=date(2024, 6, 1))
        )


def test_upsert_creates_then_updates(admin, db_session, period):
    service = BudgetService(db_session)
    request = BudgetLineUpsert(
        expenditure_head_code="01E001", budgeted_amount=Decimal("1000.00")
    )

    line, created = service.upsert_line(admin, period.id, request)
    assert created

    request.budgeted_amount = Decimal("1500.00")
    same, created = service.upsert_line(admin, period.id, request)
    assert not created
    assert same.id == line.id
    assert same.budgeted_amount == Decimal("1500.00")
    assert len(service.list_lines(period.id)) == 1


def test_list_periods_counts_lines(admin, db_session, period):
    service = BudgetService(db_session)
    service.upsert_line(admin, period.id, BudgetLineUpsert(
        expenditure_head_code="01E001", budgeted_amount=Decimal("10.00")
    ))
    [(listed, line_count)] = service.list_periods()
    assert listed.id == period.id
    assert line_count == 1


def test_unknown_head(admin, db_session, period):
    with pytest.raises(NotFoundError, match="Expenditure head"):
        BudgetService(db_session).upsert_line(admin, period.id, BudgetLineUpsert(
            expenditure_head_code="01E999", budgeted_amount=Decimal("10.00")
        ))


def test_delete_blocked_by_lines(admin, db_session, period):
    service = BudgetService(db_session)
    service.upsert_line(admin, period.id, BudgetLineUpsert(
        expenditure_head_code="01E001", budgeted_amount=Decimal("10.00")
    ))
    with pytest.raises(ConflictError):
        service.delete_period(admin, period.id)
