"""
Financial records: member contributions, general transactions and
expenditures.

Each record carries an identifier allocated by the sequence counter
in the same unit of work that inserts it. Amounts use Numeric,
never float. A float like 0.1 + 0.2 gives 0.30000000000000004.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, Date, DateTime, Integer, Numeric, ForeignKey, Text,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from branch_finance.models.base import Base, utcnow
from branch_finance.models.enums import RecordStatus, ApprovalStatus, Urgency


class MemberContribution(Base):
    """
    Money a member pays towards a project they are enrolled in.

    branch_code is the project's branch at the time of the payment;
    it scopes the record and its receipt number.
    """

    __tablename__ = "member_contributions"

    id: Mapped[int] = mapped_column(primary_key=True)
    receipt_number: Mapped[str] = mapped_column(
        String(30), unique=True, nullable=False
    )
    member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id"), nullable=False, index=True
    )
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id"), nullable=False, index=True
    )
    branch_code: Mapped[str] = mapped_column(
        ForeignKey("branches.code"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    currency_code: Mapped[str] = mapped_column(
        ForeignKey("currencies.code"), nullable=False
    )
    payment_method_id: Mapped[int] = mapped_column(
        ForeignKey("payment_methods.id"), nullable=False
    )
    reference_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payment_date: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    processed_by: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[RecordStatus] = mapped_column(
        SAEnum(RecordStatus, name="record_status_enum"),
        nullable=False,
        default=RecordStatus.COMPLETED,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )

    member: Mapped["Member"] = relationship()
    project: Mapped["Project"] = relationship()
    payment_method: Mapped["PaymentMethod"] = relationship()
    processor: Mapped["User"] = relationship()

    def __repr__(self) -> str:
        return f"<MemberContribution {self.receipt_number} {self.amount}>"


class Transaction(Base):
    """General income against a revenue head (tithes, offerings...)."""

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    receipt_number: Mapped[str] = mapped_column(
        String(30), unique=True, nullable=False
    )
    member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id"), nullable=False, index=True
    )
    revenue_head_code: Mapped[str] = mapped_column(
        ForeignKey("revenue_heads.code"), nullable=False, index=True
    )
    branch_code: Mapped[str] = mapped_column(
        ForeignKey("branches.code"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    currency_code: Mapped[str] = mapped_column(
        ForeignKey("currencies.code"), nullable=False
    )
    payment_method_id: Mapped[int] = mapped_column(
        ForeignKey("payment_methods.id"), nullable=False
    )
    reference_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    transaction_date: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, index=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[RecordStatus] = mapped_column(
        SAEnum(RecordStatus, name="record_status_enum"),
        nullable=False,
        default=RecordStatus.COMPLETED,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )

    member: Mapped["Member"] = relationship()
    revenue_head: Mapped["RevenueHead"] = relationship()
    payment_method: Mapped["PaymentMethod"] = relationship()
    user: Mapped["User"] = relationship()

    def __repr__(self) -> str:
        return f"<Transaction {self.receipt_number} {self.amount}>"


class Expenditure(Base):
    """
    Money going out against an expenditure head.

    total_amount is always amount + tax_amount. Approved
    expenditures can only be changed by an approver.
    """

    __tablename__ = "expenditures"

    id: Mapped[int] = mapped_column(primary_key=True)
    voucher_number: Mapped[str] = mapped_column(
        String(30), unique=True, nullable=False
    )
    expenditure_head_code: Mapped[str] = mapped_column(
        ForeignKey("expenditure_heads.code"), nullable=False, index=True
    )
    project_id: Mapped[int | None] = mapped_column(
        ForeignKey("projects.id"), nullable=True
    )
    supplier_id: Mapped[int | None] = mapped_column(
        ForeignKey("suppliers.id"), nullable=True, index=True
    )
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 2), nullable=False, default=Decimal("0")
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    currency_code: Mapped[str] = mapped_column(
        ForeignKey("currencies.code"), nullable=False
    )
    payment_method_id: Mapped[int] = mapped_column(
        ForeignKey("payment_methods.id"), nullable=False
    )
    reference_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    branch_code: Mapped[str] = mapped_column(
        ForeignKey("branches.code"), nullable=False, index=True
    )
    expense_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    urgency: Mapped[Urgency] = mapped_column(
        SAEnum(Urgency, name="urgency_enum"),
        nullable=False,
        default=Urgency.NORMAL,
    )
    is_reimbursement: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    reimbursed_to: Mapped[int | None] = mapped_column(
        ForeignKey("members.id"), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    approval_status: Mapped[ApprovalStatus] = mapped_column(
        SAEnum(ApprovalStatus, name="approval_status_enum"),
        nullable=False,
        default=ApprovalStatus.PENDING,
    )
    requested_by: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    approved_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    budget_year: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    expenditure_head: Mapped["ExpenditureHead"] = relationship()
    supplier: Mapped["Supplier"] = relationship()
    payment_method: Mapped["PaymentMethod"] = relationship()
    requester: Mapped["User"] = relationship(foreign_keys=[requested_by])
    approver: Mapped["User"] = relationship(foreign_keys=[approved_by])

    def __repr__(self) -> str:
        return f"<Expenditure {self.voucher_number} {self.total_amount}>"
