"""Password hashing, access tokens and opaque token helpers."""

import enum
import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt
from jwt.exceptions import ExpiredSignatureError, PyJWTError

from branch_finance.config import Settings

logger = logging.getLogger(__name__)


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=rounds),
    ).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Timing-safe check; a malformed stored hash counts as a mismatch."""
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8"),
        )
    except ValueError as e:
        logger.warning("Password verification error: %s", e)
        return False


def generate_opaque_token() -> str:
    """Random refresh credential handed to the client."""
    return secrets.token_urlsafe(48)


def generate_reset_token() -> str:
    """64 hex characters."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    SHA-256 of an opaque token, the form kept in the database.

    Tokens are high entropy, so a fast hash is enough; a leaked
    table row cannot be replayed.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenStatus(str, enum.Enum):
    VALID = "VALID"
    EXPIRED = "EXPIRED"
    INVALID = "INVALID"


@dataclass(frozen=True)
class TokenCheck:
    status: TokenStatus
    claims: dict | None = None

    @property
    def valid(self) -> bool:
        return self.status is TokenStatus.VALID


def create_access_token(claims: dict[str, Any], settings: Settings) -> str:
    """Sign an access token carrying claims plus exp, iat, jti and type."""
    now = datetime.now(timezone.utc)
    to_encode = dict(claims)
    to_encode.update({
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        "iat": now,
        "jti": secrets.token_urlsafe(16),
        "type": "access",
    })
    return jwt.encode(
        to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM
    )


def verify_access_token(token: str, settings: Settings) -> TokenCheck:
    """Decode an access token. Never raises; the outcome is in the result."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except ExpiredSignatureError:
        return TokenCheck(TokenStatus.EXPIRED)
    except PyJWTError as e:
        logger.debug("JWT decode error: %s", e)
        return TokenCheck(TokenStatus.INVALID)

    if payload.get("type") != "access":
        return TokenCheck(TokenStatus.INVALID)
    return TokenCheck(TokenStatus.VALID, payload)
