"""
Pydantic schemas for branches, currencies, payment methods and
revenue/expenditure heads.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from branch_finance.models.enums import ExpenditureCategory


# --- Branches ---

class BranchCreate(BaseModel):
    code: str = Field(min_length=2, max_length=2)
    name: str = Field(min_length=3, max_length=100)
    address: str | None = Field(default=None, max_length=200)
    phone_number: str | None = Field(default=None, max_length=20)
    is_active: bool = True


class BranchUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=3, max_length=100)
    address: str | None = Field(default=None, max_length=200)
    phone_number: str | None = Field(default=None, max_length=20)
    is_active: bool | None = None


class BranchResponse(BaseModel):
    code: str
    name: str
    address: str | None
    phone_number: str | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


# --- Currencies ---

class CurrencyCreate(BaseModel):
    code: str = Field(min_length=3, max_length=3)
    name: str = Field(min_length=2, max_length=50)
    symbol: str | None = Field(default=None, max_length=5)
    decimal_places: int = Field(default=2, ge=0, le=4)
    is_base_currency: bool = False
    is_active: bool = True


class CurrencyUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=50)
    symbol: str | None = Field(default=None, max_length=5)
    decimal_places: int | None = Field(default=None, ge=0, le=4)
    is_base_currency: bool | None = None
    is_active: bool | None = None


class CurrencyResponse(BaseModel):
    code: str
    name: str
    symbol: str | None
    decimal_places: int
    is_base_currency: bool
    is_active: bool

    model_config = {"from_attributes": True}


# --- Payment methods ---

class PaymentMethodCreate(BaseModel):
    name: str = Field(min_length=2, max_length=50)
    description: str | None = Field(default=None, max_length=200)
    is_active: bool = True


class PaymentMethodUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=50)
    description: str | None = Field(default=None, max_length=200)
    is_active: bool | None = None


class PaymentMethodResponse(BaseModel):
    id: int
    name: str
    description: str | None
    is_active: bool

    model_config = {"from_attributes": True}


# --- Revenue heads ---

class RevenueHeadCreate(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    description: str | None = Field(default=None, max_length=200)
    branch_code: str = Field(min_length=2, max_length=2)
    is_active: bool = True


class RevenueHeadUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, max_length=200)
    is_active: bool | None = None


class RevenueHeadResponse(BaseModel):
    code: str
    name: str
    description: str | None
    branch_code: str
    is_active: bool

    model_config = {"from_attributes": True}


# --- Expenditure heads ---

class ExpenditureHeadCreate(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    description: str | None = Field(default=None, max_length=200)
    category: ExpenditureCategory = ExpenditureCategory.OPERATIONAL
    branch_code: str = Field(min_length=2, max_length=2)
    budget_limit: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    approval_required: bool = False
    is_active: bool = True


class ExpenditureHeadUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, max_length=200)
    category: ExpenditureCategory | None = None
    budget_limit: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    approval_required: bool | None = None
    is_active: bool | None = None


class ExpenditureHeadResponse(BaseModel):
    code: str
    name: str
    description: str | None
    category: ExpenditureCategory
    branch_code: str
    budget_limit: Decimal | None
    approval_required: bool
    is_active: bool

    model_config = {"from_attributes": True}
