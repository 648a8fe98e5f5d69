"""
Pydantic schemas for users and roles.
"""

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from branch_finance.schemas.auth import check_password_strength

ROLE_NAME_PATTERN = re.compile(r"^[a-z_]+$")


# --- Users ---

class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=30)
    password: str
    first_name: str | None = Field(default=None, max_length=50)
    last_name: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    phone_number: str | None = Field(default=None, max_length=20)
    role_id: int = Field(gt=0)
    branch_code: str = Field(min_length=2, max_length=2)

    @field_validator("password")
    @classmethod
    def strong_password(cls, value: str) -> str:
        return check_password_strength(value)


class UserUpdate(BaseModel):
    username: str | None = Field(default=None, min_length=3, max_length=30)
    password: str | None = None
    first_name: str | None = Field(default=None, max_length=50)
    last_name: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    phone_number: str | None = Field(default=None, max_length=20)
    role_id: int | None = Field(default=None, gt=0)
    branch_code: str | None = Field(default=None, min_length=2, max_length=2)
    locked: bool | None = None
    is_active: bool | None = None

    @field_validator("password")
    @classmethod
    def strong_password(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return check_password_strength(value)


class UserResponse(BaseModel):
    id: int
    username: str
    first_name: str | None
    last_name: str | None
    email: str | None
    phone_number: str | None
    role_id: int
    branch_code: str
    is_active: bool
    locked: bool
    attempts: int
    last_login: datetime | None
    created_by: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserList(BaseModel):
    total: int
    limit: int
    offset: int
    users: list[UserResponse]


# --- Roles ---

class RoleCreate(BaseModel):
    name: str = Field(min_length=2, max_length=50)
    display_name: str = Field(min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    permissions: dict[str, list[str]]
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def lowercase_name(cls, value: str) -> str:
        value = value.strip().lower()
        if not ROLE_NAME_PATTERN.match(value):
            raise ValueError("Role name may only contain lowercase letters and _")
        return value


class RoleUpdate(BaseModel):
    display_name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    permissions: dict[str, list[str]] | None = None
    is_active: bool | None = None


class RoleResponse(BaseModel):
    id: int
    name: str
    display_name: str
    description: str | None
    permissions: dict
    schema_version: int
    is_active: bool
    created_at: datetime
    user_count: int = 0

    model_config = {"from_attributes": True}
