"""
Report service.

Read-only aggregation for the dashboard and the financial export.
Both are branch scoped: without reports:read_all (dashboard) or
reports:export_all (export) the figures cover the actor's branch only.

The export merges contributions, general transactions and
expenditures into one table, newest first, and renders it as an
xlsx workbook (openpyxl) or CSV.
"""

import csv
import io
from dataclasses import dataclass, astuple
from datetime import date, datetime
from decimal import Decimal

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from sqlalchemy import select, func
from sqlalchemy.orm import Session, joinedload

from branch_finance.models.enums import ApprovalStatus, RecordStatus
from branch_finance.models.finance import (
    MemberContribution,
    Transaction,
    Expenditure,
)
from branch_finance.models.member import Member, Project
from branch_finance.schemas.report import (
    CollectedTotals,
    DashboardStats,
    PeriodTotal,
)
from branch_finance.services.finance_service import _day_bounds
from branch_finance.services.permissions import Actor, resolve_branch_query

EXPORT_TYPES = ("all", "contribution", "transaction", "expenditure")

EXPORT_HEADERS = [
    "Receipt Number", "Date", "Type", "Member/Supplier", "Description",
    "Amount", "Currency", "Payment Method", "Reference", "Processed By",
    "Status", "Branch", "Notes",
]

_COLUMN_WIDTHS = [20, 12, 15, 25, 30, 12, 10, 15, 15, 15, 12, 10, 30]

_HEADER_FILL = PatternFill(
    start_color="FFE0E0E0", end_color="FFE0E0E0", fill_type="solid"
)


@dataclass
class ExportRow:
    receipt_number: str
    date: date
    type: str
    party: str
    description: str
    amount: Decimal
    currency: str
    payment_method: str
    reference: str
    processed_by: str
    status: str
    branch: str
    notes: str


def _as_date(value) -> date:
    return value.date() if isinstance(value, datetime) else value


class ReportService:

    def __init__(self, db: Session):
        self.db = db

    # --- Dashboard ---

    def dashboard(
        self,
        actor: Actor,
        branch_code: str | None = None,
        today: date | None = None,
    ) -> DashboardStats:
        branch = resolve_branch_query(actor, "reports", branch_code)
        month_start = (today or date.today()).replace(day=1)
        month_start_at = datetime.combine(month_start, datetime.min.time())

        def scoped(stmt, model):
            return stmt.where(model.branch_code == branch) if branch else stmt

        def count(model, *criteria):
            stmt = select(func.count()).select_from(model).where(*criteria)
            return self.db.execute(scoped(stmt, model)).scalar_one()

        def total(model, column, *criteria):
            stmt = select(
                func.count(), func.coalesce(func.sum(column), 0)
            ).select_from(model).where(*criteria)
            n, amount = self.db.execute(scoped(stmt, model)).one()
            return PeriodTotal(count=n, amount=Decimal(amount))

        completed_contribution = MemberContribution.status == RecordStatus.COMPLETED
        completed_transaction = Transaction.status == RecordStatus.COMPLETED

        contributions = total(
            MemberContribution, MemberContribution.amount, completed_contribution
        )
        transactions = total(Transaction, Transaction.amount, completed_transaction)
        spent = total(
            Expenditure, Expenditure.total_amount,
            Expenditure.approval_status == ApprovalStatus.APPROVED,
        )

        return DashboardStats(
            branch_code=branch,
            total_members=count(Member),
            total_projects=count(Project),
            active_projects=count(Project, Project.is_active.is_(True)),
            total_contributions=contributions.count,
            total_transactions=transactions.count,
            total_expenditures=count(Expenditure),
            pending_approvals=count(
                Expenditure, Expenditure.approval_status == ApprovalStatus.PENDING
            ),
            total_collected=CollectedTotals(
                contributions=contributions.amount,
                transactions=transactions.amount,
                total=contributions.amount + transactions.amount,
            ),
            total_spent=spent.amount,
            this_month={
                "contributions": total(
                    MemberContribution, MemberContribution.amount,
                    completed_contribution,
                    MemberContribution.payment_date >= month_start_at,
                ),
                "transactions": total(
                    Transaction, Transaction.amount, completed_transaction,
                    Transaction.transaction_date >= month_start_at,
                ),
                "expenditures": total(
                    Expenditure, Expenditure.total_amount,
                    Expenditure.expense_date >= month_start,
                ),
            },
        )

    # --- Export ---

    def export_rows(
        self,
        actor: Actor,
        branch_code: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        record_type: str = "all",
    ) -> list[ExportRow]:
        if record_type not in EXPORT_TYPES:
            raise ValueError(f"Unknown export type: {record_type}")
        branch = resolve_branch_query(actor, "reports", branch_code, action="export")
        start, end = _day_bounds(start_date, end_date)

        rows: list[ExportRow] = []
        if record_type in ("all", "contribution"):
            rows.extend(self._contribution_rows(branch, start, end))
        if record_type in ("all", "transaction"):
            rows.extend(self._transaction_rows(branch, start, end))
        if record_type in ("all", "expenditure"):
            rows.extend(self._expenditure_rows(branch, start_date, end_date))

        rows.sort(key=lambda row: row.date, reverse=True)
        return rows

    def _contribution_rows(self, branch, start, end):
        stmt = select(MemberContribution).options(
            joinedload(MemberContribution.member),
            joinedload(MemberContribution.project),
            joinedload(MemberContribution.payment_method),
            joinedload(MemberContribution.processor),
        )
        if branch:
            stmt = stmt.where(MemberContribution.branch_code == branch)
        if start:
            stmt = stmt.where(MemberContribution.payment_date >= start)
        if end:
            stmt = stmt.where(MemberContribution.payment_date < end)

        for c in self.db.execute(stmt).scalars():
            yield ExportRow(
                receipt_number=c.receipt_number,
                date=_as_date(c.payment_date),
                type="Contribution",
                party=c.member.full_name,
                description=c.project.name,
                amount=c.amount,
                currency=c.currency_code,
                payment_method=c.payment_method.name,
                reference=c.reference_number or "",
                processed_by=c.processor.username,
                status=c.status.value,
                branch=c.branch_code,
                notes=c.notes or "",
            )

    def _transaction_rows(self, branch, start, end):
        stmt = select(Transaction).options(
            joinedload(Transaction.member),
            joinedload(Transaction.revenue_head),
            joinedload(Transaction.payment_method),
            joinedload(Transaction.user),
        )
        if branch:
            stmt = stmt.where(Transaction.branch_code == branch)
        if start:
            stmt = stmt.where(Transaction.transaction_date >= start)
        if end:
            stmt = stmt.where(Transaction.transaction_date < end)

        for t in self.db.execute(stmt).scalars():
            yield ExportRow(
                receipt_number=t.receipt_number,
                date=_as_date(t.transaction_date),
                type="Transaction",
                party=t.member.full_name,
                description=t.revenue_head.name,
                amount=t.amount,
                currency=t.currency_code,
                payment_method=t.payment_method.name,
                reference=t.reference_number or "",
                processed_by=t.user.username,
                status=t.status.value,
                branch=t.branch_code,
                notes=t.notes or "",
            )

    def _expenditure_rows(self, branch, start_date, end_date):
        stmt = select(Expenditure).options(
            joinedload(Expenditure.supplier),
            joinedload(Expenditure.payment_method),
            joinedload(Expenditure.requester),
        )
        if branch:
            stmt = stmt.where(Expenditure.branch_code == branch)
        if start_date:
            stmt = stmt.where(Expenditure.expense_date >= start_date)
        if end_date:
            stmt = stmt.where(Expenditure.expense_date <= end_date)

        for e in self.db.execute(stmt).scalars():
            yield ExportRow(
                receipt_number=e.voucher_number,
                date=e.expense_date,
                type="Expenditure",
                party=e.supplier.name if e.supplier else "",
                description=e.description,
                amount=e.total_amount,
                currency=e.currency_code,
                payment_method=e.payment_method.name,
                reference=e.reference_number or "",
                processed_by=e.requester.username,
                status=e.approval_status.value,
                branch=e.branch_code,
                notes=e.notes or "",
            )


def export_filename(extension: str, today: date | None = None) -> str:
    return f"financial-report-{(today or date.today()).isoformat()}.{extension}"


def render_csv(rows: list[ExportRow]) -> bytes:
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL)
    writer.writerow(EXPORT_HEADERS)
    for row in rows:
        values = list(astuple(row))
        values[1] = row.date.isoformat()
        writer.writerow(values)
    return output.getvalue().encode("utf-8")


def render_xlsx(rows: list[ExportRow]) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Financial Report"

    sheet.append(EXPORT_HEADERS)
    for cell, width in zip(sheet[1], _COLUMN_WIDTHS):
        cell.font = Font(bold=True)
        cell.fill = _HEADER_FILL
        sheet.column_dimensions[cell.column_letter].width = width

    for row in rows:
        sheet.append(list(astuple(row)))

    output = io.BytesIO()
    workbook.save(output)
    return output.getvalue()
