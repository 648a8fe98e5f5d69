"""
Pydantic schemas for contributions, general transactions and
expenditures.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from branch_finance.models.enums import RecordStatus, ApprovalStatus, Urgency


# --- Contributions ---

class ContributionCreate(BaseModel):
    member_id: int = Field(gt=0)
    project_id: int = Field(gt=0)
    amount: Decimal = Field(gt=0, decimal_places=2)
    currency_code: str = Field(default="USD", min_length=3, max_length=3)
    payment_method_id: int = Field(gt=0)
    reference_number: str | None = Field(default=None, max_length=50)
    notes: str | None = Field(default=None, max_length=500)
    payment_date: datetime | None = None


class ContributionResponse(BaseModel):
    id: int
    receipt_number: str
    member_id: int
    project_id: int
    branch_code: str
    amount: Decimal
    currency_code: str
    payment_method_id: int
    reference_number: str | None
    payment_date: datetime
    processed_by: int
    notes: str | None
    status: RecordStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class ContributionList(BaseModel):
    total: int
    limit: int
    offset: int
    contributions: list[ContributionResponse]


# --- General transactions ---

class TransactionCreate(BaseModel):
    member_id: int = Field(gt=0)
    revenue_head_code: str = Field(min_length=1, max_length=10)
    amount: Decimal = Field(gt=0, decimal_places=2)
    currency_code: str = Field(default="USD", min_length=3, max_length=3)
    payment_method_id: int = Field(gt=0)
    reference_number: str | None = Field(default=None, max_length=50)
    notes: str | None = Field(default=None, max_length=500)
    transaction_date: datetime | None = None


class TransactionResponse(BaseModel):
    id: int
    receipt_number: str
    member_id: int
    revenue_head_code: str
    branch_code: str
    amount: Decimal
    currency_code: str
    payment_method_id: int
    reference_number: str | None
    transaction_date: datetime
    user_id: int
    notes: str | None
    status: RecordStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class TransactionList(BaseModel):
    total: int
    limit: int
    offset: int
    transactions: list[TransactionResponse]


# --- Expenditures ---

class ExpenditureCreate(BaseModel):
    expenditure_head_code: str = Field(min_length=1, max_length=10)
    project_id: int | None = Field(default=None, gt=0)
    supplier_id: int | None = Field(default=None, gt=0)
    description: str = Field(min_length=3, max_length=500)
    amount: Decimal = Field(gt=0, decimal_places=2)
    tax_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    currency_code: str = Field(default="USD", min_length=3, max_length=3)
    payment_method_id: int = Field(gt=0)
    reference_number: str | None = Field(default=None, max_length=50)
    branch_code: str = Field(min_length=2, max_length=2)
    expense_date: date | None = None
    due_date: date | None = None
    urgency: Urgency = Urgency.NORMAL
    is_reimbursement: bool = False
    reimbursed_to: int | None = Field(default=None, gt=0)
    notes: str | None = Field(default=None, max_length=500)


class ExpenditureUpdate(BaseModel):
    expenditure_head_code: str | None = Field(default=None, min_length=1, max_length=10)
    project_id: int | None = Field(default=None, gt=0)
    supplier_id: int | None = Field(default=None, gt=0)
    description: str | None = Field(default=None, min_length=3, max_length=500)
    amount: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    tax_amount: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    currency_code: str | None = Field(default=None, min_length=3, max_length=3)
    payment_method_id: int | None = Field(default=None, gt=0)
    reference_number: str | None = Field(default=None, max_length=50)
    expense_date: date | None = None
    due_date: date | None = None
    urgency: Urgency | None = None
    is_reimbursement: bool | None = None
    reimbursed_to: int | None = Field(default=None, gt=0)
    notes: str | None = Field(default=None, max_length=500)


class ExpenditureDecision(BaseModel):
    """Approve or reject a pending expenditure."""
    approval_status: ApprovalStatus
    notes: str | None = Field(default=None, max_length=500)


class ExpenditureResponse(BaseModel):
    id: int
    voucher_number: str
    expenditure_head_code: str
    project_id: int | None
    supplier_id: int | None
    description: str
    amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    currency_code: str
    payment_method_id: int
    reference_number: str | None
    branch_code: str
    expense_date: date
    due_date: date | None
    urgency: Urgency
    is_reimbursement: bool
    reimbursed_to: int | None
    notes: str | None
    approval_status: ApprovalStatus
    requested_by: int
    approved_by: int | None
    approved_at: datetime | None
    budget_year: int
    created_at: datetime

    model_config = {"from_attributes": True}


class ExpenditureList(BaseModel):
    total: int
    limit: int
    offset: int
    expenditures: list[ExpenditureResponse]
