"""
Pydantic schemas for login, token refresh and password reset.
"""

import re

from pydantic import BaseModel, Field, field_validator

# At least one lowercase, uppercase, digit and symbol, 8+ characters.
PASSWORD_PATTERN = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[!@#$%^&*()_+])"
    r"[a-zA-Z\d!@#$%^&*()_+]{8,}$"
)
PASSWORD_RULES = (
    "Password must be at least 8 characters and contain an uppercase letter, "
    "a lowercase letter, a digit and one of !@#$%^&*()_+"
)


def check_password_strength(value: str) -> str:
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(PASSWORD_RULES)
    return value


class LoginRequest(BaseModel):
    username: str = Field(min_length=3, max_length=30)
    password: str = Field(min_length=6)

    @field_validator("username")
    @classmethod
    def strip_username(cls, value: str) -> str:
        return value.strip()


class LoginUser(BaseModel):
    id: int
    username: str
    first_name: str | None
    last_name: str | None
    email: str | None
    role_id: int
    role_name: str | None
    branch_code: str
    branch_name: str | None
    permissions: dict


class LoginResponse(BaseModel):
    message: str
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: LoginUser


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LogoutRequest(BaseModel):
    refresh_token: str | None = None


class PasswordResetRequest(BaseModel):
    username: str = Field(min_length=3, max_length=30)


class PasswordReset(BaseModel):
    token: str = Field(min_length=64, max_length=64)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def strong_password(cls, value: str) -> str:
        return check_password_strength(value)


class MessageResponse(BaseModel):
    message: str
