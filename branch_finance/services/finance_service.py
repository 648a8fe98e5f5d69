"""
Finance service.

Records member contributions, general transactions and expenditures.

Every record gets its receipt (or voucher) number from the
IdentifierService inside the same unit of work that inserts it, so a
failed insert never burns a number and two concurrent requests never
share one. All referenced rows are checked up front so the caller
gets a specific NotFoundError instead of a foreign key failure.

Branch of the record:
    contribution -> the enrolled project's branch
    transaction  -> the member's branch
    expenditure  -> the branch named in the request
"""

import logging
from datetime import date, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from branch_finance.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from branch_finance.models.base import utcnow
from branch_finance.models.enums import (
    ApprovalStatus,
    RecordStatus,
    RecordType,
)
from branch_finance.models.finance import (
    MemberContribution,
    Transaction,
    Expenditure,
)
from branch_finance.models.member import Member, Project, MemberProject
from branch_finance.models.procurement import Asset, Supplier
from branch_finance.models.reference import (
    Branch,
    Currency,
    PaymentMethod,
    RevenueHead,
    ExpenditureHead,
)
from branch_finance.schemas.finance import (
    ContributionCreate,
    TransactionCreate,
    ExpenditureCreate,
    ExpenditureUpdate,
    ExpenditureDecision,
)
from branch_finance.services.audit_service import (
    AuditService,
    RequestMeta,
    snapshot,
)
from branch_finance.services.identifier_service import (
    IdentifierService,
    current_year,
)
from branch_finance.services.lookups import get_or_404, dependents, paginate
from branch_finance.services.permissions import (
    Actor,
    ensure_branch_access,
    has_permission,
    resolve_branch_query,
)

logger = logging.getLogger(__name__)


def _day_bounds(start_date: date | None, end_date: date | None):
    """Datetime bounds covering start_date through the whole of end_date."""
    start = datetime.combine(start_date, datetime.min.time()) if start_date else None
    end = (
        datetime.combine(end_date + timedelta(days=1), datetime.min.time())
        if end_date else None
    )
    return start, end


class FinanceService:

    def __init__(self, db: Session, timezone_name: str = "UTC"):
        self.db = db
        self.timezone_name = timezone_name
        self.identifiers = IdentifierService(db, timezone_name)
        self.audit = AuditService(db)

    def _check_payment_refs(self, currency_code: str, payment_method_id: int) -> None:
        get_or_404(self.db, Currency, currency_code, "Currency")
        get_or_404(self.db, PaymentMethod, payment_method_id, "Payment method")

    # --- Contributions ---

    def record_contribution(
        self,
        actor: Actor,
        request: ContributionCreate,
        meta: RequestMeta | None = None,
    ) -> MemberContribution:
        """
        Record a payment by an enrolled member towards a project.

        The member must be enrolled in the project and the project
        must be active.
        """
        enrollment = self.db.execute(
            select(MemberProject).where(
                MemberProject.member_id == request.member_id,
                MemberProject.project_id == request.project_id,
            )
        ).scalar_one_or_none()
        if enrollment is None:
            raise NotFoundError("Member is not enrolled in this project.")

        project = enrollment.project
        if not project.is_active:
            raise ValidationError("Cannot record contributions for inactive projects.")
        ensure_branch_access(actor, "transactions", "update", project.branch_code)
        self._check_payment_refs(request.currency_code, request.payment_method_id)

        receipt_number = self.identifiers.allocate_receipt_number(
            RecordType.CONTRIBUTION, project.branch_code
        )
        contribution = MemberContribution(
            receipt_number=receipt_number,
            member_id=request.member_id,
            project_id=request.project_id,
            branch_code=project.branch_code,
            amount=request.amount,
            currency_code=request.currency_code,
            payment_method_id=request.payment_method_id,
            reference_number=request.reference_number,
            payment_date=request.payment_date or utcnow(),
            processed_by=actor.id,
            notes=request.notes,
            status=RecordStatus.COMPLETED,
        )
        self.db.add(contribution)
        self.db.flush()

        self.audit.record(
            actor, "CREATE", "member_contributions", receipt_number, None,
            snapshot(contribution), meta,
        )
        logger.info(
            "Contribution %s recorded by %s: %s %s",
            receipt_number, actor.username, request.amount, request.currency_code,
        )
        return contribution

    def list_contributions(
        self,
        actor: Actor,
        limit: int = 50,
        offset: int = 0,
        branch_code: str | None = None,
        member_id: int | None = None,
        project_id: int | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> tuple[list[MemberContribution], int]:
        stmt = select(MemberContribution).order_by(
            MemberContribution.payment_date.desc()
        )
        branch = resolve_branch_query(actor, "transactions", branch_code)
        if branch:
            stmt = stmt.where(MemberContribution.branch_code == branch)
        if member_id:
            stmt = stmt.where(MemberContribution.member_id == member_id)
        if project_id:
            stmt = stmt.where(MemberContribution.project_id == project_id)
        start, end = _day_bounds(start_date, end_date)
        if start:
            stmt = stmt.where(MemberContribution.payment_date >= start)
        if end:
            stmt = stmt.where(MemberContribution.payment_date < end)
        return paginate(self.db, stmt, limit, offset)

    # --- General transactions ---

    def record_transaction(
        self,
        actor: Actor,
        request: TransactionCreate,
        meta: RequestMeta | None = None,
    ) -> Transaction:
        member = get_or_404(self.db, Member, request.member_id, "Member")
        get_or_404(self.db, RevenueHead, request.revenue_head_code, "Revenue head")
        self._check_payment_refs(request.currency_code, request.payment_method_id)
        ensure_branch_access(actor, "transactions", "update", member.branch_code)

        receipt_number = self.identifiers.allocate_receipt_number(
            RecordType.TRANSACTION, member.branch_code
        )
        transaction = Transaction(
            receipt_number=receipt_number,
            member_id=member.id,
            revenue_head_code=request.revenue_head_code,
            branch_code=member.branch_code,
            amount=request.amount,
            currency_code=request.currency_code,
            payment_method_id=request.payment_method_id,
            reference_number=request.reference_number,
            transaction_date=request.transaction_date or utcnow(),
            user_id=actor.id,
            notes=request.notes,
            status=RecordStatus.COMPLETED,
        )
        self.db.add(transaction)
        self.db.flush()

        self.audit.record(
            actor, "CREATE", "transactions", receipt_number, None,
            snapshot(transaction), meta,
        )
        logger.info(
            "Transaction %s recorded by %s: %s %s",
            receipt_number, actor.username, request.amount, request.currency_code,
        )
        return transaction

    def list_transactions(
        self,
        actor: Actor,
        limit: int = 50,
        offset: int = 0,
        branch_code: str | None = None,
        status: RecordStatus | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> tuple[list[Transaction], int]:
        """
        Transactions visible to the actor, newest first.

        Without transactions:read_all the list is silently narrowed to
        the actor's own branch, whatever branch_code was asked for.
        """
        stmt = select(Transaction).order_by(Transaction.transaction_date.desc())
        branch = resolve_branch_query(actor, "transactions", branch_code)
        if branch:
            stmt = stmt.where(Transaction.branch_code == branch)
        if status:
            stmt = stmt.where(Transaction.status == status)
        start, end = _day_bounds(start_date, end_date)
        if start:
            stmt = stmt.where(Transaction.transaction_date >= start)
        if end:
            stmt = stmt.where(Transaction.transaction_date < end)
        return paginate(self.db, stmt, limit, offset)

    # --- Expenditures ---

    def create_expenditure(
        self,
        actor: Actor,
        request: ExpenditureCreate,
        meta: RequestMeta | None = None,
    ) -> Expenditure:
        ensure_branch_access(actor, "expenditures", "update", request.branch_code)
        get_or_404(
            self.db, ExpenditureHead, request.expenditure_head_code,
            "Expenditure head",
        )
        self._check_payment_refs(request.currency_code, request.payment_method_id)
        get_or_404(self.db, Branch, request.branch_code, "Branch")
        self._check_optional_refs(
            request.project_id, request.supplier_id, request.reimbursed_to
        )

        voucher_number = self.identifiers.allocate_receipt_number(
            RecordType.EXPENDITURE, request.branch_code
        )
        data = request.model_dump()
        data["expense_date"] = request.expense_date or date.today()
        expenditure = Expenditure(
            **data,
            voucher_number=voucher_number,
            total_amount=request.amount + request.tax_amount,
            approval_status=ApprovalStatus.PENDING,
            requested_by=actor.id,
            budget_year=current_year(self.timezone_name),
        )
        self.db.add(expenditure)
        self.db.flush()

        self.audit.record(
            actor, "CREATE", "expenditures", voucher_number, None,
            snapshot(expenditure), meta,
        )
        return expenditure

    def list_expenditures(
        self,
        actor: Actor,
        limit: int = 50,
        offset: int = 0,
        branch_code: str | None = None,
        approval_status: ApprovalStatus | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> tuple[list[Expenditure], int]:
        stmt = select(Expenditure).order_by(Expenditure.expense_date.desc())
        branch = resolve_branch_query(actor, "expenditures", branch_code)
        if branch:
            stmt = stmt.where(Expenditure.branch_code == branch)
        if approval_status:
            stmt = stmt.where(Expenditure.approval_status == approval_status)
        if start_date:
            stmt = stmt.where(Expenditure.expense_date >= start_date)
        if end_date:
            stmt = stmt.where(Expenditure.expense_date <= end_date)
        return paginate(self.db, stmt, limit, offset)

    def get_expenditure(self, actor: Actor, expenditure_id: int) -> Expenditure:
        expenditure = get_or_404(self.db, Expenditure, expenditure_id, "Expenditure")
        ensure_branch_access(actor, "expenditures", "read", expenditure.branch_code)
        return expenditure

    def update_expenditure(
        self,
        actor: Actor,
        expenditure_id: int,
        request: ExpenditureUpdate,
        meta: RequestMeta | None = None,
    ) -> Expenditure:
        expenditure = get_or_404(self.db, Expenditure, expenditure_id, "Expenditure")
        ensure_branch_access(actor, "expenditures", "update", expenditure.branch_code)
        if (
            expenditure.approval_status != ApprovalStatus.PENDING
            and not has_permission(actor, "expenditures", "approve")
        ):
            raise ForbiddenError("Only approvers can modify approved expenditures.")

        changes = request.model_dump(exclude_unset=True)
        if "expenditure_head_code" in changes:
            get_or_404(
                self.db, ExpenditureHead, changes["expenditure_head_code"],
                "Expenditure head",
            )
        if "currency_code" in changes:
            get_or_404(self.db, Currency, changes["currency_code"], "Currency")
        if "payment_method_id" in changes:
            get_or_404(
                self.db, PaymentMethod, changes["payment_method_id"], "Payment method"
            )
        self._check_optional_refs(
            changes.get("project_id"),
            changes.get("supplier_id"),
            changes.get("reimbursed_to"),
        )

        old_values = snapshot(expenditure)
        for field, value in changes.items():
            setattr(expenditure, field, value)
        expenditure.total_amount = expenditure.amount + (expenditure.tax_amount or 0)
        self.db.flush()

        self.audit.record(
            actor, "UPDATE", "expenditures", expenditure.id, old_values,
            snapshot(expenditure), meta,
        )
        return expenditure

    def decide_expenditure(
        self,
        actor: Actor,
        expenditure_id: int,
        request: ExpenditureDecision,
        meta: RequestMeta | None = None,
    ) -> Expenditure:
        """Approve or reject a pending expenditure."""
        if request.approval_status == ApprovalStatus.PENDING:
            raise ValidationError("Decision must be APPROVED or REJECTED.")

        expenditure = get_or_404(self.db, Expenditure, expenditure_id, "Expenditure")
        ensure_branch_access(actor, "expenditures", "update", expenditure.branch_code)
        if expenditure.approval_status != ApprovalStatus.PENDING:
            raise ConflictError(
                f"Expenditure is already {expenditure.approval_status.value.lower()}."
            )
        if expenditure.requested_by == actor.id:
            raise ForbiddenError("You cannot approve your own expenditure.")

        old_values = snapshot(expenditure)
        expenditure.approval_status = request.approval_status
        expenditure.approved_by = actor.id
        expenditure.approved_at = utcnow()
        if request.notes:
            expenditure.notes = request.notes
        self.db.flush()

        self.audit.record(
            actor, request.approval_status.value, "expenditures",
            expenditure.id, old_values, snapshot(expenditure), meta,
        )
        logger.info(
            "Expenditure %s %s by %s",
            expenditure.voucher_number, request.approval_status.value.lower(),
            actor.username,
        )
        return expenditure

    def delete_expenditure(
        self, actor: Actor, expenditure_id: int, meta: RequestMeta | None = None
    ) -> None:
        expenditure = get_or_404(self.db, Expenditure, expenditure_id, "Expenditure")
        ensure_branch_access(actor, "expenditures", "delete", expenditure.branch_code)
        if dependents(self.db, [("assets", Asset.expenditure_id, expenditure_id)]):
            raise ConflictError("Cannot delete expenditure with associated assets.")

        old_values = snapshot(expenditure)
        self.db.delete(expenditure)
        self.db.flush()
        self.audit.record(
            actor, "DELETE", "expenditures", expenditure_id, old_values, None, meta
        )

    def _check_optional_refs(self, project_id, supplier_id, reimbursed_to) -> None:
        if project_id:
            get_or_404(self.db, Project, project_id, "Project")
        if supplier_id:
            get_or_404(self.db, Supplier, supplier_id, "Supplier")
        if reimbursed_to:
            get_or_404(self.db, Member, reimbursed_to, "Member for reimbursement")
