"""
Request-scoped dependencies shared by the routers.

get_actor resolves the bearer token to the calling user on every
request; require() layers a module:action permission check on top.
"""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from branch_finance.config import Settings, get_settings
from branch_finance.exceptions import AuthError
from branch_finance.models.base import get_db
from branch_finance.models.user import User
from branch_finance.services.audit_service import RequestMeta
from branch_finance.services.auth_service import AuthService
from branch_finance.services.permissions import Actor, require_permission

bearer_scheme = HTTPBearer(auto_error=False)


def settings_dependency() -> Settings:
    return get_settings()


def request_meta(request: Request) -> RequestMeta:
    return RequestMeta(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(settings_dependency),
) -> User:
    if credentials is None or not credentials.credentials:
        raise AuthError("Access token required.", code="TOKEN_INVALID")
    return AuthService(db, settings).authenticate(credentials.credentials)


def get_actor(user: User = Depends(get_current_user)) -> Actor:
    return Actor.from_user(user)


def require(module: str, action: str):
    """Dependency factory: the calling actor, once module:action is granted."""

    def dependency(actor: Actor = Depends(get_actor)) -> Actor:
        require_permission(actor, module, action)
        return actor

    return dependency
