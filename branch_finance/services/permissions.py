"""
Permission engine.

A role carries a capability map: module name -> list of actions.
The decision is a flat allow-list lookup:

    allowed = role is active and action in capabilities[module]

There is no inheritance, no wildcard and no deny rule.

On top of that, rows of the branch-scoped modules (members,
projects, transactions, expenditures, reports) are narrowed to the
actor's branch unless the role also holds the matching "*_all"
action (read_all, update_all, delete_all, export_all). List queries
are filtered silently; touching a single row in another branch is
forbidden.

The capability map is validated against MODULE_ACTIONS when a role
is created or updated. Bump CAPABILITY_SCHEMA_VERSION whenever
MODULE_ACTIONS changes so stored roles can be migrated.
"""

import logging
from dataclasses import dataclass, field

from branch_finance.exceptions import ForbiddenError, ValidationError

logger = logging.getLogger(__name__)

CAPABILITY_SCHEMA_VERSION = 2

_CRUD = ("read", "create", "update", "delete")
_SCOPED_CRUD = _CRUD + ("read_all", "update_all", "delete_all")

MODULE_ACTIONS: dict[str, frozenset[str]] = {
    "users": frozenset(_CRUD + ("lock_unlock",)),
    "roles": frozenset(_CRUD),
    "branches": frozenset(_CRUD),
    "transactions": frozenset(_SCOPED_CRUD + ("refund",)),
    "reports": frozenset(("read", "export", "advanced", "read_all", "export_all")),
    "settings": frozenset(("read", "update", "system_config")),
    "revenue_heads": frozenset(_CRUD),
    "expenditure_heads": frozenset(_CRUD),
    "currencies": frozenset(("read", "manage")),
    "payment_methods": frozenset(("read", "manage")),
    "members": frozenset(_SCOPED_CRUD),
    "projects": frozenset(_SCOPED_CRUD),
    "expenditures": frozenset(_SCOPED_CRUD + ("approve",)),
    "assets": frozenset(_CRUD),
    "suppliers": frozenset(_CRUD),
    "contracts": frozenset(_CRUD),
    "budgets": frozenset(_CRUD),
}

BRANCH_SCOPED_MODULES = frozenset(
    ("members", "projects", "transactions", "expenditures", "reports")
)

# Fields an actor may never change on their own user record.
SELF_PROTECTED_FIELDS = frozenset(("role_id", "branch_code", "locked", "is_active"))

SYSTEM_ROLE_NAMES = frozenset(("admin", "supervisor", "cashier"))


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, as far as authorization is concerned."""
    id: int
    username: str
    role_id: int | None
    role_name: str | None
    role_active: bool
    branch_code: str
    capabilities: dict = field(default_factory=dict)

    @classmethod
    def from_user(cls, user) -> "Actor":
        role = user.role
        return cls(
            id=user.id,
            username=user.username,
            role_id=role.id if role else None,
            role_name=role.name if role else None,
            role_active=bool(role and role.is_active),
            branch_code=user.branch_code,
            capabilities=dict(role.permissions or {}) if role else {},
        )


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str | None = None


def validate_capabilities(capabilities: dict) -> dict:
    """
    Check a capability map against MODULE_ACTIONS.

    Returns a normalized copy (duplicate actions removed, order kept).
    Raises ValidationError naming the first unknown module or action.
    """
    if not isinstance(capabilities, dict):
        raise ValidationError("Permissions must be an object of module -> actions.")

    normalized = {}
    for module, actions in capabilities.items():
        allowed = MODULE_ACTIONS.get(module)
        if allowed is None:
            raise ValidationError(f"Unknown permission module: {module}")
        if not isinstance(actions, (list, tuple)):
            raise ValidationError(f"Permissions for {module} must be a list.")
        seen = []
        for action in actions:
            if action not in allowed:
                raise ValidationError(
                    f"Unknown action '{action}' for module {module}"
                )
            if action not in seen:
                seen.append(action)
        normalized[module] = seen
    return normalized


def check_permission(actor: Actor, module: str, action: str) -> Decision:
    """Pure decision: no I/O, no logging."""
    if actor.role_id is None or not actor.role_active:
        return Decision(False, "User role is invalid or inactive.")
    if action in actor.capabilities.get(module, ()):
        return Decision(True)
    return Decision(False, f"Access denied. Required permission: {module}:{action}")


def has_permission(actor: Actor, module: str, action: str) -> bool:
    return check_permission(actor, module, action).allowed


def require_permission(actor: Actor, module: str, action: str) -> None:
    decision = check_permission(actor, module, action)
    if not decision.allowed:
        logger.warning(
            "Access denied for user %s: required permission %s:%s",
            actor.username, module, action,
        )
        raise ForbiddenError(decision.reason)


def branch_filter(actor: Actor, module: str, action: str = "read") -> str | None:
    """
    Branch a list query must be restricted to, or None for all branches.

    None is returned for modules that are not branch scoped and for
    actors holding "<action>_all" on the module.
    """
    if module not in BRANCH_SCOPED_MODULES:
        return None
    if has_permission(actor, module, f"{action}_all"):
        return None
    return actor.branch_code


def ensure_branch_access(
    actor: Actor, module: str, action: str, branch_code: str
) -> None:
    """Forbid touching a single row that lies outside the actor's scope."""
    scope = branch_filter(actor, module, action)
    if scope is not None and branch_code != scope:
        logger.warning(
            "User %s (branch %s) denied %s on %s in branch %s",
            actor.username, actor.branch_code, action, module, branch_code,
        )
        raise ForbiddenError(
            f"You can only {action} {module} in your own branch."
        )


def resolve_branch_query(
    actor: Actor, module: str, requested: str | None, action: str = "read"
) -> str | None:
    """
    Branch filter for a list endpoint that also accepts ?branch_code=.

    Scoped actors always get their own branch, whatever they asked for.
    """
    scope = branch_filter(actor, module, action)
    if scope is not None:
        return scope
    return requested


def check_user_access(actor: Actor, user_id: int, action: str) -> None:
    """Actors may always read and update their own record."""
    if actor.id == user_id and action in ("read", "update"):
        return
    require_permission(actor, "users", action)


def check_self_update(actor: Actor, user_id: int, changed_fields) -> None:
    if actor.id != user_id:
        return
    if SELF_PROTECTED_FIELDS.intersection(changed_fields):
        raise ForbiddenError("You cannot modify your own role, branch or status.")


# --- System roles seeded on first start ---

SYSTEM_ROLES = {
    "admin": {
        "display_name": "Administrator",
        "description": "Full system access with all permissions",
        "permissions": {
            module: sorted(actions) for module, actions in MODULE_ACTIONS.items()
        },
    },
    "supervisor": {
        "display_name": "Supervisor",
        "description": "Branch supervisor with elevated permissions",
        "permissions": {
            "users": ["read", "create", "update", "lock_unlock"],
            "branches": ["read"],
            "transactions": ["read", "create", "update", "refund"],
            "reports": ["read", "export"],
            "revenue_heads": ["read", "create"],
            "expenditure_heads": ["read", "create"],
            "currencies": ["read"],
            "payment_methods": ["read"],
            "members": ["read", "create", "update"],
            "projects": ["read", "create", "update"],
            "expenditures": ["read", "create", "update"],
            "assets": ["read", "create", "update"],
            "suppliers": ["read", "create", "update"],
            "contracts": ["read", "create", "update"],
        },
    },
    "cashier": {
        "display_name": "Cashier",
        "description": "Standard cashier with basic permissions",
        "permissions": {
            "users": ["read"],
            "branches": ["read"],
            "transactions": ["read", "create"],
            "reports": ["read"],
            "revenue_heads": ["read"],
            "expenditure_heads": ["read"],
            "currencies": ["read"],
            "payment_methods": ["read"],
            "members": ["read", "create"],
            "projects": ["read"],
            "expenditures": ["read"],
            "assets": ["read"],
            "suppliers": ["read"],
        },
    },
}
