"""
Budget service: budget periods and their per-head budget lines.
"""

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from branch_finance.exceptions import ConflictError, ValidationError
from branch_finance.models.budget import BudgetPeriod, BudgetLine
from branch_finance.models.enums import BudgetStatus
from branch_finance.models.member import Project
from branch_finance.models.reference import Currency, ExpenditureHead
from branch_finance.schemas.budget import (
    BudgetPeriodCreate,
    BudgetPeriodUpdate,
    BudgetLineUpsert,
)
from branch_finance.services.audit_service import (
    AuditService,
    RequestMeta,
    snapshot,
)
from branch_finance.services.lookups import get_or_404
from branch_finance.services.permissions import Actor


class BudgetService:

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditService(db)

    def create_period(
        self, actor: Actor, request: BudgetPeriodCreate, meta: RequestMeta | None = None
    ) -> BudgetPeriod:
        get_or_404(self.db, Currency, request.currency_code, "Currency")

        period = BudgetPeriod(
            **request.model_dump(),
            status=BudgetStatus.DRAFT,
            created_by=actor.id,
        )
        self.db.add(period)
        self.db.flush()
        self.audit.record(
            actor, "CREATE", "budget_periods", period.id, None, snapshot(period), meta
        )
        return period

    def list_periods(self, budget_type=None, status=None) -> list[tuple[BudgetPeriod, int]]:
        """Budget periods, newest first, with their line counts."""
        line_count = (
            select(func.count(BudgetLine.id))
            .where(BudgetLine.budget_period_id == BudgetPeriod.id)
            .correlate(BudgetPeriod)
            .scalar_subquery()
        )
        stmt = select(BudgetPeriod, line_count).order_by(BudgetPeriod.start_date.desc())
        if budget_type:
            stmt = stmt.where(BudgetPeriod.budget_type == budget_type)
        if status:
            stmt = stmt.where(BudgetPeriod.status == status)
        return [(period, count) for period, count in self.db.execute(stmt).all()]

    def update_period(
        self,
        actor: Actor,
        period_id: int,
        request: BudgetPeriodUpdate,
        meta: RequestMeta | None = None,
    ) -> BudgetPeriod:
        period = get_or_404(self.db, BudgetPeriod, period_id, "Budget period")
        changes = request.model_dump(exclude_unset=True)
        if "currency_code" in changes:
            get_or_404(self.db, Currency, changes["currency_code"], "Currency")

        start = changes.get("start_date", period.start_date)
        end = changes.get("end_date", period.end_date)
        if end <= start:
            raise ValidationError("end_date must be after start_date")

        old_values = snapshot(period)
        for field, value in changes.items():
            setattr(period, field, value)
        self.db.flush()
        self.audit.record(
            actor, "UPDATE", "budget_periods", period.id, old_values,
            snapshot(period), meta,
        )
        return period

    def delete_period(
        self, actor: Actor, period_id: int, meta: RequestMeta | None = None
    ) -> None:
        period = get_or_404(self.db, BudgetPeriod, period_id, "Budget period")
        if period.lines:
            raise ConflictError(
                "Cannot delete budget period with associated budget lines."
            )
        old_values = snapshot(period)
        self.db.delete(period)
        self.db.flush()
        self.audit.record(
            actor, "DELETE", "budget_periods", period_id, old_values, None, meta
        )

    def upsert_line(
        self,
        actor: Actor,
        period_id: int,
        request: BudgetLineUpsert,
        meta: RequestMeta | None = None,
    ) -> tuple[BudgetLine, bool]:
        """
        Create or replace the line for (period, head, project).

        Returns (line, created).
        """
        get_or_404(self.db, BudgetPeriod, period_id, "Budget period")
        get_or_404(
            self.db, ExpenditureHead, request.expenditure_head_code, "Expenditure head"
        )
        if request.project_id:
            get_or_404(self.db, Project, request.project_id, "Project")

        # NULL never equals NULL in SQL, so the "no project" line is
        # matched with IS NULL.
        project_match = (
            BudgetLine.project_id == request.project_id
            if request.project_id is not None
            else BudgetLine.project_id.is_(None)
        )
        line = self.db.execute(
            select(BudgetLine).where(
                BudgetLine.budget_period_id == period_id,
                BudgetLine.expenditure_head_code == request.expenditure_head_code,
                project_match,
            )
        ).scalar_one_or_none()

        if line is None:
            line = BudgetLine(budget_period_id=period_id, **request.model_dump())
            self.db.add(line)
            self.db.flush()
            self.audit.record(
                actor, "CREATE", "budget_lines", line.id, None, snapshot(line), meta
            )
            return line, True

        old_values = snapshot(line)
        line.budgeted_amount = request.budgeted_amount
        line.notes = request.notes
        self.db.flush()
        self.audit.record(
            actor, "UPDATE", "budget_lines", line.id, old_values, snapshot(line), meta
        )
        return line, False

    def list_lines(self, period_id: int) -> list[BudgetLine]:
        get_or_404(self.db, BudgetPeriod, period_id, "Budget period")
        return list(self.db.execute(
            select(BudgetLine)
            .where(BudgetLine.budget_period_id == period_id)
            .order_by(BudgetLine.expenditure_head_code, BudgetLine.id)
        ).scalars())
