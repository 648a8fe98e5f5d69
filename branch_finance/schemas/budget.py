"""
Pydantic schemas for budget periods and budget lines.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from branch_finance.models.enums import BudgetType, BudgetStatus


class BudgetPeriodCreate(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    start_date: date
    end_date: date
    budget_type: BudgetType = BudgetType.ANNUAL
    total_budget: Decimal = Field(gt=0, decimal_places=2)
    currency_code: str = Field(default="USD", min_length=3, max_length=3)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class BudgetPeriodUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=3, max_length=100)
    start_date: date | None = None
    end_date: date | None = None
    budget_type: BudgetType | None = None
    total_budget: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    actual_spent: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    currency_code: str | None = Field(default=None, min_length=3, max_length=3)
    status: BudgetStatus | None = None


class BudgetPeriodResponse(BaseModel):
    id: int
    name: str
    start_date: date
    end_date: date
    budget_type: BudgetType
    total_budget: Decimal
    actual_spent: Decimal
    currency_code: str
    status: BudgetStatus
    created_by: int
    created_at: datetime
    line_count: int = 0

    model_config = {"from_attributes": True}


class BudgetLineUpsert(BaseModel):
    expenditure_head_code: str = Field(min_length=1, max_length=10)
    project_id: int | None = Field(default=None, gt=0)
    budgeted_amount: Decimal = Field(gt=0, decimal_places=2)
    notes: str | None = Field(default=None, max_length=500)


class BudgetLineResponse(BaseModel):
    id: int
    budget_period_id: int
    expenditure_head_code: str
    project_id: int | None
    budgeted_amount: Decimal
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
