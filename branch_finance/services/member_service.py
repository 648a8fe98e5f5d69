"""
Member service.

Handles members, projects, project enrollment and payment reminders.
Members and projects are branch scoped: actors without the matching
"*_all" action only see and touch rows of their own branch.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import select, or_, func
from sqlalchemy.orm import Session

from branch_finance.exceptions import ConflictError
from branch_finance.models.enums import AgeCategory, RecordStatus
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
from branch_finance.models.procurement import Contract
from branch_finance.models.reference import Branch, Currency
from branch_finance.schemas.member import (
    MemberCreate,
    MemberUpdate,
    ProjectCreate,
    ProjectUpdate,
    EnrollmentCreate,
    ReminderCreate,
)
from branch_finance.services.audit_service import (
    AuditService,
    RequestMeta,
    snapshot,
)
from branch_finance.services.lookups import (
    get_or_404,
    count_rows,
    dependents,
    paginate,
)
from branch_finance.services.permissions import (
    Actor,
    ensure_branch_access,
    resolve_branch_query,
)


def age_category(date_of_birth: date, today: date | None = None) -> AgeCategory:
    """Age bracket of a member on the given day."""
    today = today or date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    if age < 13:
        return AgeCategory.CHILD
    if age < 18:
        return AgeCategory.YOUTH
    if age >= 65:
        return AgeCategory.ELDERLY
    return AgeCategory.ADULT


class ProjectStats:
    """Enrollment and collection figures for one project."""

    def __init__(self, member_count: int, contribution_count: int, total_collected):
        self.member_count = member_count
        self.contribution_count = contribution_count
        self.total_collected = Decimal(total_collected or 0)

    def progress(self, target_amount: Decimal) -> float:
        if not target_amount or target_amount <= 0:
            return 0.0
        return min(100.0, float(self.total_collected / target_amount * 100))


class MemberService:

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditService(db)

    # --- Members ---

    def create_member(
        self, actor: Actor, request: MemberCreate, meta: RequestMeta | None = None
    ) -> Member:
        # Creating a member in another branch needs the same reach as
        # updating one there.
        ensure_branch_access(actor, "members", "update", request.branch_code)

        if self._member_by_number(request.member_number):
            raise ConflictError("Member number already exists.")
        get_or_404(self.db, Branch, request.branch_code, "Branch")

        data = request.model_dump()
        if request.date_of_birth and "age_category" not in request.model_fields_set:
            data["age_category"] = age_category(request.date_of_birth)

        member = Member(**data)
        self.db.add(member)
        self.db.flush()
        self.audit.record(
            actor, "CREATE", "members", member.id, None, snapshot(member), meta
        )
        return member

    def list_members(
        self,
        actor: Actor,
        limit: int = 50,
        offset: int = 0,
        branch_code: str | None = None,
        age_category: AgeCategory | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> tuple[list[Member], int]:
        stmt = select(Member).order_by(Member.last_name, Member.first_name)

        branch = resolve_branch_query(actor, "members", branch_code)
        if branch:
            stmt = stmt.where(Member.branch_code == branch)
        if age_category:
            stmt = stmt.where(Member.age_category == age_category)
        if is_active is not None:
            stmt = stmt.where(Member.is_active == is_active)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(or_(
                func.lower(Member.first_name).like(pattern),
                func.lower(Member.last_name).like(pattern),
                func.lower(Member.member_number).like(pattern),
                func.lower(Member.email).like(pattern),
            ))
        return paginate(self.db, stmt, limit, offset)

    def get_member(self, actor: Actor, member_id: int) -> Member:
        member = get_or_404(self.db, Member, member_id, "Member")
        ensure_branch_access(actor, "members", "read", member.branch_code)
        return member

    def update_member(
        self,
        actor: Actor,
        member_id: int,
        request: MemberUpdate,
        meta: RequestMeta | None = None,
    ) -> Member:
        member = get_or_404(self.db, Member, member_id, "Member")
        ensure_branch_access(actor, "members", "update", member.branch_code)

        changes = request.model_dump(exclude_unset=True)
        number = changes.get("member_number")
        if number and number != member.member_number:
            if self._member_by_number(number):
                raise ConflictError("New member number already exists.")
        if "branch_code" in changes:
            ensure_branch_access(actor, "members", "update", changes["branch_code"])
            get_or_404(self.db, Branch, changes["branch_code"], "Branch")
        if changes.get("date_of_birth"):
            changes["age_category"] = age_category(changes["date_of_birth"])

        old_values = snapshot(member)
        for field, value in changes.items():
            setattr(member, field, value)
        self.db.flush()
        self.audit.record(
            actor, "UPDATE", "members", member.id, old_values, snapshot(member), meta
        )
        return member

    def delete_member(
        self, actor: Actor, member_id: int, meta: RequestMeta | None = None
    ) -> None:
        member = get_or_404(self.db, Member, member_id, "Member")
        ensure_branch_access(actor, "members", "delete", member.branch_code)

        if dependents(self.db, [
            ("contributions", MemberContribution.member_id, member_id),
            ("transactions", Transaction.member_id, member_id),
            ("enrollments", MemberProject.member_id, member_id),
        ]):
            raise ConflictError(
                "Cannot delete member with associated contributions or transactions."
            )

        old_values = snapshot(member)
        self.db.delete(member)
        self.db.flush()
        self.audit.record(actor, "DELETE", "members", member_id, old_values, None, meta)

    def _member_by_number(self, member_number: str) -> Member | None:
        return self.db.execute(
            select(Member).where(Member.member_number == member_number)
        ).scalar_one_or_none()

    # --- Projects ---

    def create_project(
        self, actor: Actor, request: ProjectCreate, meta: RequestMeta | None = None
    ) -> Project:
        ensure_branch_access(actor, "projects", "update", request.branch_code)
        get_or_404(self.db, Branch, request.branch_code, "Branch")
        get_or_404(self.db, Currency, request.currency_code, "Currency")

        project = Project(**request.model_dump())
        self.db.add(project)
        self.db.flush()
        self.audit.record(
            actor, "CREATE", "projects", project.id, None, snapshot(project), meta
        )
        return project

    def list_projects(
        self,
        actor: Actor,
        branch_code: str | None = None,
        is_active: bool | None = None,
        status=None,
    ) -> list[tuple[Project, ProjectStats]]:
        stmt = select(Project).order_by(
            Project.is_active.desc(), Project.start_date.desc()
        )
        branch = resolve_branch_query(actor, "projects", branch_code)
        if branch:
            stmt = stmt.where(Project.branch_code == branch)
        if is_active is not None:
            stmt = stmt.where(Project.is_active == is_active)
        if status:
            stmt = stmt.where(Project.status == status)

        projects = self.db.execute(stmt).scalars().all()
        return [(project, self.project_stats(project.id)) for project in projects]

    def get_project(self, actor: Actor, project_id: int) -> tuple[Project, ProjectStats]:
        project = get_or_404(self.db, Project, project_id, "Project")
        ensure_branch_access(actor, "projects", "read", project.branch_code)
        return project, self.project_stats(project.id)

    def project_stats(self, project_id: int) -> ProjectStats:
        collected = self.db.execute(
            select(func.coalesce(func.sum(MemberContribution.amount), 0)).where(
                MemberContribution.project_id == project_id,
                MemberContribution.status == RecordStatus.COMPLETED,
            )
        ).scalar_one()
        return ProjectStats(
            member_count=count_rows(self.db, MemberProject.project_id, project_id),
            contribution_count=count_rows(
                self.db, MemberContribution.project_id, project_id
            ),
            total_collected=collected,
        )

    def update_project(
        self,
        actor: Actor,
        project_id: int,
        request: ProjectUpdate,
        meta: RequestMeta | None = None,
    ) -> Project:
        project = get_or_404(self.db, Project, project_id, "Project")
        ensure_branch_access(actor, "projects", "update", project.branch_code)

        changes = request.model_dump(exclude_unset=True)
        if "branch_code" in changes:
            ensure_branch_access(actor, "projects", "update", changes["branch_code"])
            get_or_404(self.db, Branch, changes["branch_code"], "Branch")
        if "currency_code" in changes:
            get_or_404(self.db, Currency, changes["currency_code"], "Currency")

        old_values = snapshot(project)
        for field, value in changes.items():
            setattr(project, field, value)
        self.db.flush()
        self.audit.record(
            actor, "UPDATE", "projects", project.id, old_values, snapshot(project), meta
        )
        return project

    def delete_project(
        self, actor: Actor, project_id: int, meta: RequestMeta | None = None
    ) -> None:
        project = get_or_404(self.db, Project, project_id, "Project")
        ensure_branch_access(actor, "projects", "delete", project.branch_code)

        if dependents(self.db, [
            ("contributions", MemberContribution.project_id, project_id),
            ("enrollments", MemberProject.project_id, project_id),
            ("expenditures", Expenditure.project_id, project_id),
            ("contracts", Contract.project_id, project_id),
        ]):
            raise ConflictError(
                "Cannot delete project with associated contributions, members, "
                "expenditures, or contracts."
            )

        old_values = snapshot(project)
        self.db.delete(project)
        self.db.flush()
        self.audit.record(actor, "DELETE", "projects", project_id, old_values, None, meta)

    # --- Enrollment ---

    def enroll(
        self,
        actor: Actor,
        member_id: int,
        request: EnrollmentCreate,
        meta: RequestMeta | None = None,
    ) -> MemberProject:
        member = get_or_404(self.db, Member, member_id, "Member")
        project = get_or_404(self.db, Project, request.project_id, "Project")
        ensure_branch_access(actor, "members", "update", member.branch_code)

        existing = self.db.execute(
            select(MemberProject).where(
                MemberProject.member_id == member_id,
                MemberProject.project_id == project.id,
            )
        ).scalar_one_or_none()
        if existing:
            raise ConflictError("Member is already associated with this project.")

        currency_code = request.currency_code or project.currency_code
        get_or_404(self.db, Currency, currency_code, "Currency")

        enrollment = MemberProject(
            member_id=member_id,
            project_id=project.id,
            required_amount=request.required_amount or project.target_amount,
            currency_code=currency_code,
        )
        self.db.add(enrollment)
        self.db.flush()
        self.audit.record(
            actor, "CREATE", "member_projects", enrollment.id, None,
            snapshot(enrollment), meta,
        )
        return enrollment

    # --- Payment reminders ---

    def create_reminder(
        self, actor: Actor, request: ReminderCreate, meta: RequestMeta | None = None
    ) -> PaymentReminder:
        member = get_or_404(self.db, Member, request.member_id, "Member")
        ensure_branch_access(actor, "members", "update", member.branch_code)
        get_or_404(self.db, Currency, request.currency_code, "Currency")

        reminder = PaymentReminder(**request.model_dump())
        self.db.add(reminder)
        self.db.flush()
        self.audit.record(
            actor, "CREATE", "payment_reminders", reminder.id, None,
            snapshot(reminder), meta,
        )
        return reminder

    def list_reminders(
        self, actor: Actor, status=None, member_id: int | None = None
    ) -> list[PaymentReminder]:
        stmt = (
            select(PaymentReminder)
            .join(Member, PaymentReminder.member_id == Member.id)
            .order_by(PaymentReminder.due_date)
        )
        branch = resolve_branch_query(actor, "members", None)
        if branch:
            stmt = stmt.where(Member.branch_code == branch)
        if status:
            stmt = stmt.where(PaymentReminder.status == status)
        if member_id:
            stmt = stmt.where(PaymentReminder.member_id == member_id)
        return list(self.db.execute(stmt).scalars())
