"""
User and role API endpoints.
"""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from branch_finance.config import Settings
from branch_finance.exceptions import AppError
from branch_finance.models.base import get_db
from branch_finance.api.deps import (
    get_actor,
    require,
    request_meta,
    settings_dependency,
)
from branch_finance.services.audit_service import RequestMeta
from branch_finance.services.permissions import Actor
from branch_finance.services.user_service import UserService
from branch_finance.schemas.user import (
    UserCreate,
    UserUpdate,
    UserResponse,
    UserList,
    RoleCreate,
    RoleUpdate,
    RoleResponse,
)

router = APIRouter(prefix="/api", tags=["Users"])


# --- User Endpoints ---

@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(
    request: UserCreate,
    actor: Actor = Depends(require("users", "create")),
    db: Session = Depends(get_db),
    settings: Settings = Depends(settings_dependency),
    meta: RequestMeta = Depends(request_meta),
):
    """Create a user. The password must satisfy the password policy."""
    service = UserService(db, settings)
    try:
        user = service.create_user(actor, request, meta)
        db.commit()
        return user
    except AppError:
        db.rollback()
        raise


@router.get("/users", response_model=UserList)
def list_users(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    branch_code: str | None = None,
    role_id: int | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    actor: Actor = Depends(require("users", "read")),
    db: Session = Depends(get_db),
    settings: Settings = Depends(settings_dependency),
):
    users, total = UserService(db, settings).list_users(
        limit, offset, branch_code, role_id, is_active, search
    )
    return UserList(total=total, limit=limit, offset=offset, users=users)


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
    settings: Settings = Depends(settings_dependency),
):
    """Get a user. Anyone may read their own record."""
    return UserService(db, settings).get_user(actor, user_id)


@router.patch("/users/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    request: UserUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
    settings: Settings = Depends(settings_dependency),
    meta: RequestMeta = Depends(request_meta),
):
    """
    Update a user.

    Users may update their own profile and password, but not their
    own role, lock or active flag. Changing locked on someone else
    needs users:lock_unlock and resets the failed-attempt counter.
    """
    service = UserService(db, settings)
    try:
        user = service.update_user(actor, user_id, request, meta)
        db.commit()
        return user
    except AppError:
        db.rollback()
        raise


@router.delete("/users/{user_id}", status_code=204)
def delete_user(
    user_id: int,
    actor: Actor = Depends(require("users", "delete")),
    db: Session = Depends(get_db),
    settings: Settings = Depends(settings_dependency),
    meta: RequestMeta = Depends(request_meta),
):
    service = UserService(db, settings)
    try:
        service.delete_user(actor, user_id, meta)
        db.commit()
    except AppError:
        db.rollback()
        raise
    return Response(status_code=204)


# --- Role Endpoints ---

@router.post("/roles", response_model=RoleResponse, status_code=201)
def create_role(
    request: RoleCreate,
    actor: Actor = Depends(require("roles", "create")),
    db: Session = Depends(get_db),
    settings: Settings = Depends(settings_dependency),
    meta: RequestMeta = Depends(request_meta),
):
    """Create a role. Unknown modules or actions are rejected."""
    service = UserService(db, settings)
    try:
        role = service.create_role(actor, request, meta)
        db.commit()
        return role
    except AppError:
        db.rollback()
        raise


@router.get("/roles", response_model=list[RoleResponse])
def list_roles(
    actor: Actor = Depends(require("roles", "read")),
    db: Session = Depends(get_db),
    settings: Settings = Depends(settings_dependency),
):
    """List roles with the number of users holding each."""
    return [
        RoleResponse.model_validate(role).model_copy(update={"user_count": count})
        for role, count in UserService(db, settings).list_roles()
    ]


@router.patch("/roles/{role_id}", response_model=RoleResponse)
def update_role(
    role_id: int,
    request: RoleUpdate,
    actor: Actor = Depends(require("roles", "update")),
    db: Session = Depends(get_db),
    settings: Settings = Depends(settings_dependency),
    meta: RequestMeta = Depends(request_meta),
):
    service = UserService(db, settings)
    try:
        role = service.update_role(actor, role_id, request, meta)
        db.commit()
        return role
    except AppError:
        db.rollback()
        raise


@router.delete("/roles/{role_id}", status_code=204)
def delete_role(
    role_id: int,
    actor: Actor = Depends(require("roles", "delete")),
    db: Session = Depends(get_db),
    settings: Settings = Depends(settings_dependency),
    meta: RequestMeta = Depends(request_meta),
):
    """Delete a role. System roles and roles still assigned are kept."""
    service = UserService(db, settings)
    try:
        service.delete_role(actor, role_id, meta)
        db.commit()
    except AppError:
        db.rollback()
        raise
    return Response(status_code=204)
