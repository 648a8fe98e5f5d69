"""
Login, token and password reset endpoints.

Failed logins still commit: the attempt counter, the lockout and the
login history row must survive the error response.
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from branch_finance.config import Settings
from branch_finance.exceptions import AppError
from branch_finance.models.base import get_db
from branch_finance.models.user import User
from branch_finance.rate_limit import limiter, LOGIN_RATE_LIMIT
from branch_finance.api.deps import (
    get_current_user,
    request_meta,
    settings_dependency,
)
from branch_finance.services.audit_service import RequestMeta
from branch_finance.services.auth_service import AuthService
from branch_finance.services.mailer import Mailer, MailError
from branch_finance.schemas.auth import (
    LoginRequest,
    LoginResponse,
    LoginUser,
    RefreshRequest,
    TokenResponse,
    LogoutRequest,
    PasswordResetRequest,
    PasswordReset,
    MessageResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])

RESET_REQUESTED_MESSAGE = (
    "If a matching account is found, a password reset link will be sent."
)


@router.post("/login", response_model=LoginResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
def login(
    request: Request,
    credentials: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(settings_dependency),
    meta: RequestMeta = Depends(request_meta),
):
    """Authenticate with username and password."""
    service = AuthService(db, settings)
    try:
        result = service.login(credentials.username, credentials.password, meta)
        db.commit()
    except AppError:
        db.rollback()
        raise

    if not result.ok:
        raise result.error()

    user = result.user
    return LoginResponse(
        message=result.message,
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
        user=LoginUser(
            id=user.id,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            role_id=user.role_id,
            role_name=user.role.name,
            branch_code=user.branch_code,
            branch_name=user.branch.name if user.branch else "Unknown Branch",
            permissions=user.role.permissions or {},
        ),
    )


@router.post("/refresh-token", response_model=TokenResponse)
def refresh_token(
    request: RefreshRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(settings_dependency),
):
    """Exchange a refresh token for a new token pair."""
    service = AuthService(db, settings)
    result = service.refresh(request.refresh_token)
    db.commit()
    if not result.ok:
        raise result.error()
    return TokenResponse(
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
    )


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: LogoutRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(settings_dependency),
):
    """Revoke the presented refresh token."""
    AuthService(db, settings).logout(user.id, request.refresh_token)
    db.commit()
    logger.info("User %s logged out", user.username)
    return MessageResponse(message="Logged out successfully.")


@router.post("/password-reset/request", response_model=MessageResponse)
def request_password_reset(
    request: PasswordResetRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(settings_dependency),
):
    """
    Issue a password reset token.

    The response is the same whether or not the username exists.
    """
    issued = AuthService(db, settings).request_password_reset(request.username)
    db.commit()

    if issued is not None:
        user, token = issued
        _deliver_reset_token(Mailer(settings), user, token, settings)
    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


def _deliver_reset_token(mailer: Mailer, user: User, token: str, settings: Settings):
    if not user.email or not mailer.configured:
        logger.warning(
            "Password reset token for %s not emailed (no address or SMTP)",
            user.username,
        )
        return
    minutes = settings.PASSWORD_RESET_EXPIRE_MINUTES
    body = (
        f"Hello {user.first_name or user.username},\n\n"
        f"Use this code to reset your password: {token}\n"
        f"It expires in {minutes} minutes.\n"
    )
    try:
        mailer.send(user.email, "Password Reset", body)
    except MailError as e:
        logger.error("Password reset email for %s failed: %s", user.username, e)


@router.post("/password-reset/reset", response_model=MessageResponse)
def reset_password(
    request: PasswordReset,
    db: Session = Depends(get_db),
    settings: Settings = Depends(settings_dependency),
):
    """Set a new password using a reset token."""
    service = AuthService(db, settings)
    try:
        service.reset_password(request.token, request.new_password)
        db.commit()
    except AppError:
        db.rollback()
        raise
    return MessageResponse(message="Password has been reset successfully.")
