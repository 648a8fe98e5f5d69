"""
User and role service.

Users can always read and update their own record, but never their
own role, branch or status. Changing another user's locked flag is an
unlock (or lock) by an administrator and resets the failed-attempt
counter. Users who own financial records cannot be deleted; deactivate
them instead.
"""

import logging

from sqlalchemy import select, or_, func
from sqlalchemy.orm import Session

from branch_finance.config import Settings
from branch_finance.exceptions import ConflictError, ForbiddenError
from branch_finance.models.budget import BudgetPeriod
from branch_finance.models.finance import (
    MemberContribution,
    Transaction,
    Expenditure,
)
from branch_finance.models.procurement import Contract
from branch_finance.models.reference import Branch
from branch_finance.models.user import Role, User
from branch_finance.schemas.user import (
    UserCreate,
    UserUpdate,
    RoleCreate,
    RoleUpdate,
)
from branch_finance.services.audit_service import (
    AuditService,
    RequestMeta,
    snapshot,
)
from branch_finance.services.auth_service import AuthService
from branch_finance.services.lookups import get_or_404, dependents, paginate
from branch_finance.services.permissions import (
    Actor,
    CAPABILITY_SCHEMA_VERSION,
    SYSTEM_ROLE_NAMES,
    validate_capabilities,
    check_user_access,
    check_self_update,
    require_permission,
)
from branch_finance.services.security import hash_password

logger = logging.getLogger(__name__)


class UserService:

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.audit = AuditService(db)

    # --- Users ---

    def create_user(
        self, actor: Actor, request: UserCreate, meta: RequestMeta | None = None
    ) -> User:
        existing = self.db.execute(
            select(User).where(User.username == request.username)
        ).scalar_one_or_none()
        if existing:
            raise ConflictError("Username already exists.")

        get_or_404(self.db, Role, request.role_id, "Role")
        get_or_404(self.db, Branch, request.branch_code, "Branch")

        data = request.model_dump(exclude={"password"})
        user = User(
            **data,
            password_hash=hash_password(
                request.password, self.settings.BCRYPT_ROUNDS
            ),
            created_by=actor.username,
            is_active=True,
        )
        self.db.add(user)
        self.db.flush()

        self.audit.record(
            actor, "CREATE", "users", user.id, None, snapshot(user), meta
        )
        return user

    def list_users(
        self,
        limit: int = 50,
        offset: int = 0,
        branch_code: str | None = None,
        role_id: int | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> tuple[list[User], int]:
        stmt = select(User).order_by(User.username)
        if branch_code:
            stmt = stmt.where(User.branch_code == branch_code)
        if role_id:
            stmt = stmt.where(User.role_id == role_id)
        if is_active is not None:
            stmt = stmt.where(User.is_active == is_active)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(or_(
                func.lower(User.username).like(pattern),
                func.lower(User.first_name).like(pattern),
                func.lower(User.last_name).like(pattern),
                func.lower(User.email).like(pattern),
            ))
        return paginate(self.db, stmt, limit, offset)

    def get_user(self, actor: Actor, user_id: int) -> User:
        check_user_access(actor, user_id, "read")
        return get_or_404(self.db, User, user_id, "User")

    def update_user(
        self,
        actor: Actor,
        user_id: int,
        request: UserUpdate,
        meta: RequestMeta | None = None,
    ) -> User:
        check_user_access(actor, user_id, "update")
        user = get_or_404(self.db, User, user_id, "User")
        changes = request.model_dump(exclude_unset=True)
        check_self_update(actor, user_id, changes.keys())

        if "locked" in changes and changes["locked"] != user.locked:
            require_permission(actor, "users", "lock_unlock")

        if "username" in changes and changes["username"] != user.username:
            clash = self.db.execute(
                select(User).where(User.username == changes["username"])
            ).scalar_one_or_none()
            if clash:
                raise ConflictError("New username already exists.")
        if "role_id" in changes:
            get_or_404(self.db, Role, changes["role_id"], "Role")
        if "branch_code" in changes:
            get_or_404(self.db, Branch, changes["branch_code"], "Branch")

        old_values = snapshot(user)

        password = changes.pop("password", None)
        if password:
            user.password_hash = hash_password(
                password, self.settings.BCRYPT_ROUNDS
            )
        if "locked" in changes:
            # Any lock/unlock by an administrator starts the counter over.
            user.attempts = 0
        for field, value in changes.items():
            setattr(user, field, value)
        self.db.flush()

        if changes.get("locked") is False:
            logger.info("User %s unlocked by %s", user.username, actor.username)

        self.audit.record(
            actor, "UPDATE", "users", user.id, old_values, snapshot(user), meta
        )
        return user

    def delete_user(
        self, actor: Actor, user_id: int, meta: RequestMeta | None = None
    ) -> None:
        if actor.id == user_id:
            raise ForbiddenError("You cannot delete your own account.")
        user = get_or_404(self.db, User, user_id, "User")

        blocking = dependents(self.db, [
            ("contributions", MemberContribution.processed_by, user_id),
            ("transactions", Transaction.user_id, user_id),
            ("expenditures", Expenditure.requested_by, user_id),
            ("approvals", Expenditure.approved_by, user_id),
            ("contracts", Contract.created_by, user_id),
            ("budget periods", BudgetPeriod.created_by, user_id),
        ])
        if blocking:
            raise ConflictError(
                "Cannot delete user who owns financial records "
                f"({', '.join(blocking)}). Deactivate the account instead."
            )

        old_values = snapshot(user)
        AuthService(self.db, self.settings).revoke_all(user_id)
        self.db.delete(user)
        self.db.flush()
        self.audit.record(actor, "DELETE", "users", user_id, old_values, None, meta)

    # --- Roles ---

    def create_role(
        self, actor: Actor, request: RoleCreate, meta: RequestMeta | None = None
    ) -> Role:
        existing = self.db.execute(
            select(Role).where(Role.name == request.name)
        ).scalar_one_or_none()
        if existing:
            raise ConflictError("Role name already exists.")

        role = Role(
            name=request.name,
            display_name=request.display_name,
            description=request.description,
            permissions=validate_capabilities(request.permissions),
            schema_version=CAPABILITY_SCHEMA_VERSION,
            is_active=request.is_active,
        )
        self.db.add(role)
        self.db.flush()
        self.audit.record(
            actor, "CREATE", "roles", role.id, None, snapshot(role), meta
        )
        return role

    def list_roles(self) -> list[tuple[Role, int]]:
        """Roles with the number of users assigned to each."""
        user_count = (
            select(func.count(User.id))
            .where(User.role_id == Role.id)
            .correlate(Role)
            .scalar_subquery()
        )
        rows = self.db.execute(
            select(Role, user_count).order_by(
                Role.is_active.desc(), Role.display_name
            )
        ).all()
        return [(role, count) for role, count in rows]

    def update_role(
        self,
        actor: Actor,
        role_id: int,
        request: RoleUpdate,
        meta: RequestMeta | None = None,
    ) -> Role:
        role = get_or_404(self.db, Role, role_id, "Role")
        changes = request.model_dump(exclude_unset=True)
        old_values = snapshot(role)

        if "permissions" in changes:
            changes["permissions"] = validate_capabilities(changes["permissions"])
            changes["schema_version"] = CAPABILITY_SCHEMA_VERSION
        for field, value in changes.items():
            setattr(role, field, value)
        self.db.flush()

        self.audit.record(
            actor, "UPDATE", "roles", role.id, old_values, snapshot(role), meta
        )
        return role

    def delete_role(
        self, actor: Actor, role_id: int, meta: RequestMeta | None = None
    ) -> None:
        role = get_or_404(self.db, Role, role_id, "Role")
        if role.name in SYSTEM_ROLE_NAMES:
            raise ConflictError("Cannot delete system roles.")
        if dependents(self.db, [("users", User.role_id, role_id)]):
            raise ConflictError("Cannot delete role that has users assigned.")

        old_values = snapshot(role)
        self.db.delete(role)
        self.db.flush()
        self.audit.record(actor, "DELETE", "roles", role_id, old_values, None, meta)
