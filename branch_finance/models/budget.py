"""
Budget periods and the per-head budget lines inside them.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Date, DateTime, Numeric, ForeignKey, Text, Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from branch_finance.models.base import Base, utcnow
from branch_finance.models.enums import BudgetType, BudgetStatus


class BudgetPeriod(Base):
    __tablename__ = "budget_periods"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    budget_type: Mapped[BudgetType] = mapped_column(
        SAEnum(BudgetType, name="budget_type_enum"),
        nullable=False,
        default=BudgetType.ANNUAL,
    )
    total_budget: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    actual_spent: Mapped[Decimal] = mapped_column(
        Numeric(19, 2), nullable=False, default=Decimal("0")
    )
    currency_code: Mapped[str] = mapped_column(
        ForeignKey("currencies.code"), nullable=False
    )
    status: Mapped[BudgetStatus] = mapped_column(
        SAEnum(BudgetStatus, name="budget_status_enum"),
        nullable=False,
        default=BudgetStatus.DRAFT,
    )
    created_by: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )

    lines: Mapped[list["BudgetLine"]] = relationship(
        back_populates="budget_period", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<BudgetPeriod {self.name}>"


class BudgetLine(Base):
    """
    Amount budgeted for one expenditure head (optionally one project)
    inside a period. At most one line per (period, head, project).
    """

    __tablename__ = "budget_lines"

    id: Mapped[int] = mapped_column(primary_key=True)
    budget_period_id: Mapped[int] = mapped_column(
        ForeignKey("budget_periods.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    expenditure_head_code: Mapped[str] = mapped_column(
        ForeignKey("expenditure_heads.code"), nullable=False, index=True
    )
    project_id: Mapped[int | None] = mapped_column(
        ForeignKey("projects.id"), nullable=True
    )
    budgeted_amount: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    budget_period: Mapped["BudgetPeriod"] = relationship(back_populates="lines")
