"""
Reference data service: branches, currencies, payment methods,
revenue heads and expenditure heads.

None of these rows can be deleted while financial records or other
reference rows still point at them. Head codes are allocated per
branch by the IdentifierService, so a deleted head never frees its
code.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from branch_finance.exceptions import ConflictError
from branch_finance.models.budget import BudgetLine, BudgetPeriod
from branch_finance.models.finance import (
    MemberContribution,
    Transaction,
    Expenditure,
)
from branch_finance.models.member import (
    Member,
    Project,
    MemberProject,
    PaymentReminder,
)
from branch_finance.models.procurement import Asset, Contract
from branch_finance.models.reference import (
    Branch,
    Currency,
    PaymentMethod,
    RevenueHead,
    ExpenditureHead,
)
from branch_finance.models.user import User
from branch_finance.schemas.reference import (
    BranchCreate,
    BranchUpdate,
    CurrencyCreate,
    CurrencyUpdate,
    PaymentMethodCreate,
    PaymentMethodUpdate,
    RevenueHeadCreate,
    RevenueHeadUpdate,
    ExpenditureHeadCreate,
    ExpenditureHeadUpdate,
)
from branch_finance.services.audit_service import (
    AuditService,
    RequestMeta,
    snapshot,
)
from branch_finance.services.identifier_service import IdentifierService
from branch_finance.services.lookups import get_or_404, dependents
from branch_finance.services.permissions import Actor


class ReferenceService:

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditService(db)
        self.identifiers = IdentifierService(db)

    def _apply(self, actor, instance, table, key, changes, meta):
        old_values = snapshot(instance)
        for field, value in changes.items():
            setattr(instance, field, value)
        self.db.flush()
        self.audit.record(
            actor, "UPDATE", table, key, old_values, snapshot(instance), meta
        )
        return instance

    def _remove(self, actor, instance, table, key, meta):
        old_values = snapshot(instance)
        self.db.delete(instance)
        self.db.flush()
        self.audit.record(actor, "DELETE", table, key, old_values, None, meta)

    # --- Branches ---

    def create_branch(
        self, actor: Actor, request: BranchCreate, meta: RequestMeta | None = None
    ) -> Branch:
        if self.db.get(Branch, request.code):
            raise ConflictError("Branch code already exists.")
        if self._branch_by_name(request.name):
            raise ConflictError("Branch name already exists.")

        branch = Branch(**request.model_dump())
        self.db.add(branch)
        self.db.flush()
        self.audit.record(
            actor, "CREATE", "branches", branch.code, None, snapshot(branch), meta
        )
        return branch

    def list_branches(self) -> list[Branch]:
        return list(
            self.db.execute(select(Branch).order_by(Branch.name)).scalars()
        )

    def update_branch(
        self,
        actor: Actor,
        code: str,
        request: BranchUpdate,
        meta: RequestMeta | None = None,
    ) -> Branch:
        branch = get_or_404(self.db, Branch, code, "Branch")
        changes = request.model_dump(exclude_unset=True)
        if "name" in changes and changes["name"] != branch.name:
            if self._branch_by_name(changes["name"]):
                raise ConflictError("Branch with this name already exists.")
        return self._apply(actor, branch, "branches", code, changes, meta)

    def delete_branch(
        self, actor: Actor, code: str, meta: RequestMeta | None = None
    ) -> None:
        branch = get_or_404(self.db, Branch, code, "Branch")
        blocking = dependents(self.db, [
            ("users", User.branch_code, code),
            ("members", Member.branch_code, code),
            ("projects", Project.branch_code, code),
            ("contributions", MemberContribution.branch_code, code),
            ("transactions", Transaction.branch_code, code),
            ("expenditures", Expenditure.branch_code, code),
            ("revenue heads", RevenueHead.branch_code, code),
            ("expenditure heads", ExpenditureHead.branch_code, code),
            ("assets", Asset.branch_code, code),
        ])
        if blocking:
            raise ConflictError(
                "Cannot delete branch with associated records "
                f"({', '.join(blocking)})."
            )
        self._remove(actor, branch, "branches", code, meta)

    def _branch_by_name(self, name: str) -> Branch | None:
        return self.db.execute(
            select(Branch).where(Branch.name == name)
        ).scalar_one_or_none()

    # --- Currencies ---

    def create_currency(
        self, actor: Actor, request: CurrencyCreate, meta: RequestMeta | None = None
    ) -> Currency:
        code = request.code.upper()
        if self.db.get(Currency, code):
            raise ConflictError("Currency with this code already exists.")

        currency = Currency(**request.model_dump(exclude={"code"}), code=code)
        self.db.add(currency)
        self.db.flush()
        self.audit.record(
            actor, "CREATE", "currencies", code, None, snapshot(currency), meta
        )
        return currency

    def list_currencies(self) -> list[Currency]:
        return list(
            self.db.execute(select(Currency).order_by(Currency.code)).scalars()
        )

    def update_currency(
        self,
        actor: Actor,
        code: str,
        request: CurrencyUpdate,
        meta: RequestMeta | None = None,
    ) -> Currency:
        currency = get_or_404(self.db, Currency, code, "Currency")
        changes = request.model_dump(exclude_unset=True)
        return self._apply(actor, currency, "currencies", code, changes, meta)

    def delete_currency(
        self, actor: Actor, code: str, meta: RequestMeta | None = None
    ) -> None:
        currency = get_or_404(self.db, Currency, code, "Currency")
        blocking = dependents(self.db, [
            ("transactions", Transaction.currency_code, code),
            ("contributions", MemberContribution.currency_code, code),
            ("projects", Project.currency_code, code),
            ("enrollments", MemberProject.currency_code, code),
            ("expenditures", Expenditure.currency_code, code),
            ("contracts", Contract.currency_code, code),
            ("assets", Asset.currency_code, code),
            ("budget periods", BudgetPeriod.currency_code, code),
            ("reminders", PaymentReminder.currency_code, code),
        ])
        if blocking:
            raise ConflictError(
                "Cannot delete currency with associated records "
                f"({', '.join(blocking)})."
            )
        self._remove(actor, currency, "currencies", code, meta)

    # --- Payment methods ---

    def create_payment_method(
        self,
        actor: Actor,
        request: PaymentMethodCreate,
        meta: RequestMeta | None = None,
    ) -> PaymentMethod:
        existing = self.db.execute(
            select(PaymentMethod).where(PaymentMethod.name == request.name)
        ).scalar_one_or_none()
        if existing:
            raise ConflictError("Payment method with this name already exists.")

        method = PaymentMethod(**request.model_dump())
        self.db.add(method)
        self.db.flush()
        self.audit.record(
            actor, "CREATE", "payment_methods", method.id, None,
            snapshot(method), meta,
        )
        return method

    def list_payment_methods(self) -> list[PaymentMethod]:
        return list(self.db.execute(
            select(PaymentMethod).order_by(PaymentMethod.name)
        ).scalars())

    def update_payment_method(
        self,
        actor: Actor,
        method_id: int,
        request: PaymentMethodUpdate,
        meta: RequestMeta | None = None,
    ) -> PaymentMethod:
        method = get_or_404(self.db, PaymentMethod, method_id, "Payment method")
        changes = request.model_dump(exclude_unset=True)
        if "name" in changes and changes["name"] != method.name:
            clash = self.db.execute(
                select(PaymentMethod).where(PaymentMethod.name == changes["name"])
            ).scalar_one_or_none()
            if clash:
                raise ConflictError("Payment method with this name already exists.")
        return self._apply(actor, method, "payment_methods", method_id, changes, meta)

    def delete_payment_method(
        self, actor: Actor, method_id: int, meta: RequestMeta | None = None
    ) -> None:
        method = get_or_404(self.db, PaymentMethod, method_id, "Payment method")
        if dependents(self.db, [
            ("transactions", Transaction.payment_method_id, method_id),
            ("contributions", MemberContribution.payment_method_id, method_id),
            ("expenditures", Expenditure.payment_method_id, method_id),
        ]):
            raise ConflictError(
                "Cannot delete payment method with associated transactions "
                "or expenditures."
            )
        self._remove(actor, method, "payment_methods", method_id, meta)

    # --- Revenue heads ---

    def create_revenue_head(
        self,
        actor: Actor,
        request: RevenueHeadCreate,
        meta: RequestMeta | None = None,
    ) -> RevenueHead:
        get_or_404(self.db, Branch, request.branch_code, "Branch")
        if self._head_by_name(RevenueHead, request.name, request.branch_code):
            raise ConflictError(
                "Revenue head with this name already exists for this branch."
            )

        code = self.identifiers.allocate_code("revenue_head", request.branch_code)
        head = RevenueHead(**request.model_dump(), code=code)
        self.db.add(head)
        self.db.flush()
        self.audit.record(
            actor, "CREATE", "revenue_heads", code, None, snapshot(head), meta
        )
        return head

    def list_revenue_heads(self, branch_code: str | None = None) -> list[RevenueHead]:
        stmt = select(RevenueHead).order_by(RevenueHead.name)
        if branch_code:
            stmt = stmt.where(RevenueHead.branch_code == branch_code)
        return list(self.db.execute(stmt).scalars())

    def update_revenue_head(
        self,
        actor: Actor,
        code: str,
        request: RevenueHeadUpdate,
        meta: RequestMeta | None = None,
    ) -> RevenueHead:
        head = get_or_404(self.db, RevenueHead, code, "Revenue head")
        changes = request.model_dump(exclude_unset=True)
        if "name" in changes and changes["name"] != head.name:
            if self._head_by_name(RevenueHead, changes["name"], head.branch_code):
                raise ConflictError(
                    "Revenue head with this name already exists for this branch."
                )
        return self._apply(actor, head, "revenue_heads", code, changes, meta)

    def delete_revenue_head(
        self, actor: Actor, code: str, meta: RequestMeta | None = None
    ) -> None:
        head = get_or_404(self.db, RevenueHead, code, "Revenue head")
        if dependents(self.db, [
            ("transactions", Transaction.revenue_head_code, code),
        ]):
            raise ConflictError(
                "Cannot delete revenue head with associated transactions."
            )
        self._remove(actor, head, "revenue_heads", code, meta)

    # --- Expenditure heads ---

    def create_expenditure_head(
        self,
        actor: Actor,
        request: ExpenditureHeadCreate,
        meta: RequestMeta | None = None,
    ) -> ExpenditureHead:
        get_or_404(self.db, Branch, request.branch_code, "Branch")
        if self._head_by_name(ExpenditureHead, request.name, request.branch_code):
            raise ConflictError(
                "Expenditure head with this name already exists for this branch."
            )

        code = self.identifiers.allocate_code(
            "expenditure_head", request.branch_code
        )
        head = ExpenditureHead(**request.model_dump(), code=code)
        self.db.add(head)
        self.db.flush()
        self.audit.record(
            actor, "CREATE", "expenditure_heads", code, None, snapshot(head), meta
        )
        return head

    def list_expenditure_heads(
        self, branch_code: str | None = None, category=None
    ) -> list[ExpenditureHead]:
        stmt = select(ExpenditureHead).order_by(ExpenditureHead.name)
        if branch_code:
            stmt = stmt.where(ExpenditureHead.branch_code == branch_code)
        if category:
            stmt = stmt.where(ExpenditureHead.category == category)
        return list(self.db.execute(stmt).scalars())

    def update_expenditure_head(
        self,
        actor: Actor,
        code: str,
        request: ExpenditureHeadUpdate,
        meta: RequestMeta | None = None,
    ) -> ExpenditureHead:
        head = get_or_404(self.db, ExpenditureHead, code, "Expenditure head")
        changes = request.model_dump(exclude_unset=True)
        if "name" in changes and changes["name"] != head.name:
            if self._head_by_name(ExpenditureHead, changes["name"], head.branch_code):
                raise ConflictError(
                    "Expenditure head with this name already exists for this branch."
                )
        return self._apply(actor, head, "expenditure_heads", code, changes, meta)

    def delete_expenditure_head(
        self, actor: Actor, code: str, meta: RequestMeta | None = None
    ) -> None:
        head = get_or_404(self.db, ExpenditureHead, code, "Expenditure head")
        if dependents(self.db, [
            ("expenditures", Expenditure.expenditure_head_code, code),
            ("budget lines", BudgetLine.expenditure_head_code, code),
        ]):
            raise ConflictError(
                "Cannot delete expenditure head with associated expenditures "
                "or budget lines."
            )
        self._remove(actor, head, "expenditure_heads", code, meta)

    def _head_by_name(self, model, name: str, branch_code: str):
        return self.db.execute(
            select(model).where(model.name == name, model.branch_code == branch_code)
        ).scalar_one_or_none()
