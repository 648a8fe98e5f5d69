"""
Pydantic schemas for members, projects, enrollments and
payment reminders.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from branch_finance.models.enums import (
    AgeCategory,
    ProjectStatus,
    Priority,
    ReminderMethod,
    ReminderStatus,
)


def _not_in_future(value: date | None) -> date | None:
    if value is not None and value > date.today():
        raise ValueError("Date of birth cannot be in the future")
    return value


# --- Members ---

class MemberCreate(BaseModel):
    member_number: str = Field(min_length=3, max_length=20)
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    date_of_birth: date | None = None
    age_category: AgeCategory = AgeCategory.ADULT
    phone_number: str | None = Field(default=None, max_length=20)
    email: str | None = Field(default=None, max_length=255)
    address: str | None = Field(default=None, max_length=500)
    branch_code: str = Field(min_length=2, max_length=2)
    is_active: bool = True

    _check_dob = field_validator("date_of_birth")(_not_in_future)


class MemberUpdate(BaseModel):
    member_number: str | None = Field(default=None, min_length=3, max_length=20)
    first_name: str | None = Field(default=None, min_length=1, max_length=50)
    last_name: str | None = Field(default=None, min_length=1, max_length=50)
    date_of_birth: date | None = None
    age_category: AgeCategory | None = None
    phone_number: str | None = Field(default=None, max_length=20)
    email: str | None = Field(default=None, max_length=255)
    address: str | None = Field(default=None, max_length=500)
    branch_code: str | None = Field(default=None, min_length=2, max_length=2)
    is_active: bool | None = None

    _check_dob = field_validator("date_of_birth")(_not_in_future)


class MemberResponse(BaseModel):
    id: int
    member_number: str
    first_name: str
    last_name: str
    date_of_birth: date | None
    age_category: AgeCategory
    phone_number: str | None
    email: str | None
    address: str | None
    branch_code: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class MemberList(BaseModel):
    total: int
    limit: int
    offset: int
    members: list[MemberResponse]


# --- Projects ---

class ProjectCreate(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    target_amount: Decimal = Field(gt=0, decimal_places=2)
    currency_code: str = Field(default="USD", min_length=3, max_length=3)
    branch_code: str = Field(min_length=2, max_length=2)
    start_date: date
    end_date: date | None = None
    status: ProjectStatus = ProjectStatus.PLANNING
    priority: Priority = Priority.MEDIUM
    is_active: bool = True

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class ProjectUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    target_amount: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    currency_code: str | None = Field(default=None, min_length=3, max_length=3)
    branch_code: str | None = Field(default=None, min_length=2, max_length=2)
    start_date: date | None = None
    end_date: date | None = None
    status: ProjectStatus | None = None
    priority: Priority | None = None
    is_active: bool | None = None


class ProjectResponse(BaseModel):
    id: int
    name: str
    description: str | None
    target_amount: Decimal
    currency_code: str
    branch_code: str
    start_date: date
    end_date: date | None
    status: ProjectStatus
    priority: Priority
    is_active: bool
    created_at: datetime
    member_count: int = 0
    contribution_count: int = 0
    total_collected: Decimal = Decimal("0")
    progress_percentage: float = 0.0

    model_config = {"from_attributes": True}


# --- Enrollment ---

class EnrollmentCreate(BaseModel):
    project_id: int = Field(gt=0)
    required_amount: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    currency_code: str | None = Field(default=None, min_length=3, max_length=3)


class EnrollmentResponse(BaseModel):
    id: int
    member_id: int
    project_id: int
    required_amount: Decimal
    currency_code: str
    enrolled_at: datetime

    model_config = {"from_attributes": True}


# --- Payment reminders ---

class ReminderCreate(BaseModel):
    member_id: int = Field(gt=0)
    currency_code: str = Field(default="USD", min_length=3, max_length=3)
    amount: Decimal = Field(gt=0, decimal_places=2)
    due_date: date
    reminder_type: str = Field(default="PAYMENT_DUE", min_length=1, max_length=50)
    message: str | None = Field(default=None, max_length=1000)
    method: ReminderMethod = ReminderMethod.EMAIL


class ReminderResponse(BaseModel):
    id: int
    member_id: int
    currency_code: str
    amount: Decimal
    due_date: date
    reminder_type: str
    message: str | None
    method: ReminderMethod
    status: ReminderStatus
    sent_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class SweepResponse(BaseModel):
    sent: int
    failed: int
    skipped: int
