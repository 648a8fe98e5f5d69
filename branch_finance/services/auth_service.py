"""
Authentication session manager.

Login runs a small lockout state machine on the user row:

    attempts < MAX_LOGIN_ATTEMPTS  --wrong password-->  attempts + 1
    attempts + 1 == MAX            --wrong password-->  locked = True
    locked                         --any password---->  rejected
    admin unlock / password reset  ------------------>  attempts = 0, unlocked

Every attempt against a known username appends a LoginHistory row.
Failed attempts must be persisted even though the caller gets an
error, so login() and refresh() never raise for an authentication
outcome. They return a result object; the route commits the
bookkeeping and only then raises result.error().

Access tokens are short-lived JWTs. Refresh tokens are opaque random
strings, stored as a SHA-256 hash with an expiry, and are single use:
every refresh deletes the presented token and issues a new one.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import select, delete
from sqlalchemy.orm import Session

from branch_finance.config import Settings
from branch_finance.exceptions import AppError, AuthError, ForbiddenError
from branch_finance.models.base import utcnow
from branch_finance.models.user import (
    User,
    RefreshToken,
    LoginHistory,
    PasswordResetToken,
)
from branch_finance.services.audit_service import RequestMeta
from branch_finance.services.security import (
    TokenStatus,
    create_access_token,
    verify_access_token,
    verify_password,
    hash_password,
    generate_opaque_token,
    generate_reset_token,
    hash_token,
)

logger = logging.getLogger(__name__)


class LoginOutcome(str, enum.Enum):
    SUCCESS = "SUCCESS"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    LOCKED = "LOCKED"
    INACTIVE = "INACTIVE"
    ROLE_INVALID = "ROLE_INVALID"


_OUTCOME_ERRORS = {
    LoginOutcome.INVALID_CREDENTIALS: (AuthError, "INVALID_CREDENTIALS"),
    LoginOutcome.LOCKED: (ForbiddenError, "ACCOUNT_LOCKED"),
    LoginOutcome.INACTIVE: (ForbiddenError, "ACCOUNT_INACTIVE"),
    LoginOutcome.ROLE_INVALID: (ForbiddenError, "ROLE_INVALID"),
}

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password."
LOCKED_MESSAGE = "Account locked. Contact administrator."
LOCKED_NOW_MESSAGE = (
    "Account locked due to multiple failed attempts. Contact administrator."
)


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass
class LoginResult:
    outcome: LoginOutcome
    message: str
    user: User | None = None
    tokens: TokenPair | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is LoginOutcome.SUCCESS

    def error(self) -> AppError | None:
        if self.ok:
            return None
        error_cls, code = _OUTCOME_ERRORS[self.outcome]
        return error_cls(self.message, code=code)


@dataclass
class RefreshResult:
    status: TokenStatus
    tokens: TokenPair | None = None

    @property
    def ok(self) -> bool:
        return self.status is TokenStatus.VALID

    def error(self) -> AppError | None:
        if self.status is TokenStatus.EXPIRED:
            return AuthError(
                "Expired refresh token. Please login again.",
                code="TOKEN_EXPIRED",
            )
        if self.status is TokenStatus.INVALID:
            return AuthError(
                "Invalid refresh token. Please login again.",
                code="TOKEN_INVALID",
            )
        return None


class AuthService:

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings

    # --- Login ---

    def login(
        self, username: str, password: str, meta: RequestMeta | None = None
    ) -> LoginResult:
        meta = meta or RequestMeta()
        user = self.db.execute(
            select(User).where(User.username == username)
        ).scalar_one_or_none()

        if user is None:
            logger.info("Login attempt for unknown user %s", username)
            return LoginResult(
                LoginOutcome.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE
            )

        if user.locked:
            return self._reject(user, meta, LoginOutcome.LOCKED, LOCKED_MESSAGE)
        if not user.is_active:
            return self._reject(
                user, meta, LoginOutcome.INACTIVE,
                "Account is inactive. Contact administrator.",
            )
        if user.role is None or not user.role.is_active:
            return self._reject(
                user, meta, LoginOutcome.ROLE_INVALID,
                "User role is invalid or inactive.",
            )

        if not verify_password(password, user.password_hash):
            user.attempts = (user.attempts or 0) + 1
            if user.attempts >= self.settings.MAX_LOGIN_ATTEMPTS:
                user.locked = True
                logger.warning(
                    "User %s locked after %d failed login attempts",
                    user.username, user.attempts,
                )
                return self._reject(
                    user, meta, LoginOutcome.LOCKED, LOCKED_NOW_MESSAGE
                )
            return self._reject(
                user, meta, LoginOutcome.INVALID_CREDENTIALS,
                INVALID_CREDENTIALS_MESSAGE,
            )

        user.attempts = 0
        user.last_login = utcnow()
        self._record_attempt(user, meta, success=True)
        tokens = self.issue_tokens(user)
        self.db.flush()
        logger.info("User %s logged in", user.username)
        return LoginResult(
            LoginOutcome.SUCCESS, "Login successful.", user=user, tokens=tokens
        )

    def _reject(
        self,
        user: User,
        meta: RequestMeta,
        outcome: LoginOutcome,
        message: str,
    ) -> LoginResult:
        self._record_attempt(user, meta, success=False, error=message)
        self.db.flush()
        return LoginResult(outcome, message, user=user)

    def _record_attempt(
        self,
        user: User,
        meta: RequestMeta,
        success: bool,
        error: str | None = None,
    ) -> None:
        self.db.add(LoginHistory(
            user_id=user.id,
            ip_address=meta.ip_address,
            user_agent=(meta.user_agent or "")[:255] or None,
            success=success,
            error=error,
        ))

    # --- Tokens ---

    def access_claims(self, user: User) -> dict:
        role = user.role
        return {
            "sub": str(user.id),
            "username": user.username,
            "role_id": user.role_id,
            "role_name": role.name if role else None,
            "branch_code": user.branch_code,
            "permissions": role.permissions if role else {},
        }

    def issue_tokens(self, user: User) -> TokenPair:
        access_token = create_access_token(self.access_claims(user), self.settings)
        refresh_token = generate_opaque_token()
        self.db.add(RefreshToken(
            token=hash_token(refresh_token),
            user_id=user.id,
            expires_at=utcnow() + timedelta(
                days=self.settings.REFRESH_TOKEN_EXPIRE_DAYS
            ),
        ))
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    def refresh(self, refresh_token: str) -> RefreshResult:
        """Rotate a refresh token. The presented token is always consumed."""
        stored = self.db.execute(
            select(RefreshToken).where(
                RefreshToken.token == hash_token(refresh_token)
            )
        ).scalar_one_or_none()

        if stored is None:
            return RefreshResult(TokenStatus.INVALID)

        user = stored.user
        self.db.delete(stored)

        if stored.expires_at <= utcnow():
            self.db.flush()
            return RefreshResult(TokenStatus.EXPIRED)

        if (
            not user.is_active
            or user.locked
            or user.role is None
            or not user.role.is_active
        ):
            logger.warning(
                "Refresh refused for user %s (inactive, locked or no role)",
                user.username,
            )
            self.db.flush()
            return RefreshResult(TokenStatus.INVALID)

        tokens = self.issue_tokens(user)
        self.db.flush()
        return RefreshResult(TokenStatus.VALID, tokens)

    def logout(self, user_id: int, refresh_token: str | None) -> int:
        """Revoke only the presented refresh token. Returns rows removed."""
        if not refresh_token:
            return 0
        result = self.db.execute(
            delete(RefreshToken).where(
                RefreshToken.token == hash_token(refresh_token),
                RefreshToken.user_id == user_id,
            )
        )
        return result.rowcount

    def revoke_all(self, user_id: int) -> int:
        result = self.db.execute(
            delete(RefreshToken).where(RefreshToken.user_id == user_id)
        )
        return result.rowcount

    # --- Request authentication ---

    def authenticate(self, access_token: str) -> User:
        """
        Resolve a bearer token to an active user.

        Permissions are read from the user's current role, not from
        the token, so a role change takes effect immediately.
        """
        check = verify_access_token(access_token, self.settings)
        if check.status is TokenStatus.EXPIRED:
            raise AuthError(
                "Access token expired. Please refresh.", code="TOKEN_EXPIRED"
            )
        if not check.valid:
            raise AuthError("Invalid access token.", code="TOKEN_INVALID")

        try:
            user_id = int(check.claims["sub"])
        except (TypeError, ValueError):
            raise AuthError("Invalid access token.", code="TOKEN_INVALID")

        user = self.db.get(User, user_id)
        if user is None:
            raise AuthError("User not found.", code="TOKEN_INVALID")
        if not user.is_active:
            raise ForbiddenError("User account is inactive.")
        if user.locked:
            raise ForbiddenError("User account is locked.")
        if user.role is None or not user.role.is_active:
            raise ForbiddenError("User role is invalid or inactive.")
        return user

    # --- Password reset ---

    def request_password_reset(self, username: str) -> tuple[User, str] | None:
        """
        Replace any outstanding reset token with a new one.

        Returns the user and the plain token for delivery, or None
        when no such user exists (callers must not reveal which).
        """
        user = self.db.execute(
            select(User).where(User.username == username)
        ).scalar_one_or_none()
        if user is None:
            logger.info("Password reset requested for unknown user %s", username)
            return None

        self.db.execute(
            delete(PasswordResetToken).where(PasswordResetToken.user_id == user.id)
        )
        token = generate_reset_token()
        self.db.add(PasswordResetToken(
            token=hash_token(token),
            user_id=user.id,
            expires_at=utcnow() + timedelta(
                minutes=self.settings.PASSWORD_RESET_EXPIRE_MINUTES
            ),
        ))
        self.db.flush()
        logger.info("Password reset token generated for user %s", user.username)
        return user, token

    def reset_password(self, token: str, new_password: str) -> User:
        entry = self.db.execute(
            select(PasswordResetToken).where(
                PasswordResetToken.token == hash_token(token)
            )
        ).scalar_one_or_none()

        if entry is None or entry.expires_at <= utcnow():
            raise AuthError("Password reset token is invalid or has expired.")

        user = entry.user
        user.password_hash = hash_password(
            new_password, self.settings.BCRYPT_ROUNDS
        )
        user.locked = False
        user.attempts = 0
        self.db.delete(entry)
        # Sessions opened with the old password end here.
        self.revoke_all(user.id)
        self.db.flush()
        logger.info("Password reset for user %s", user.username)
        return user
