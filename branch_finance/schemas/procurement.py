"""
Pydantic schemas for suppliers, assets and contracts.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from branch_finance.models.enums import (
    SupplierType,
    SupplierStatus,
    RiskLevel,
    AssetCategory,
    AssetCondition,
    ContractType,
    ContractStatus,
)


# --- Suppliers ---

class SupplierCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    business_name: str | None = Field(default=None, max_length=150)
    contact_person: str | None = Field(default=None, max_length=100)
    email: str | None = Field(default=None, max_length=255)
    phone_number: str | None = Field(default=None, max_length=20)
    address: str | None = Field(default=None, max_length=500)
    tax_number: str | None = Field(default=None, max_length=50)
    bank_account: str | None = Field(default=None, max_length=100)
    payment_terms: int = Field(default=30, gt=0)
    credit_limit: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    supplier_type: SupplierType = SupplierType.VENDOR
    notes: str | None = Field(default=None, max_length=500)


class SupplierUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    business_name: str | None = Field(default=None, max_length=150)
    contact_person: str | None = Field(default=None, max_length=100)
    email: str | None = Field(default=None, max_length=255)
    phone_number: str | None = Field(default=None, max_length=20)
    address: str | None = Field(default=None, max_length=500)
    tax_number: str | None = Field(default=None, max_length=50)
    bank_account: str | None = Field(default=None, max_length=100)
    payment_terms: int | None = Field(default=None, gt=0)
    credit_limit: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    supplier_type: SupplierType | None = None
    status: SupplierStatus | None = None
    rating: int | None = Field(default=None, ge=1, le=5)
    risk_level: RiskLevel | None = None
    notes: str | None = Field(default=None, max_length=500)


class SupplierResponse(BaseModel):
    id: int
    code: str
    name: str
    business_name: str | None
    contact_person: str | None
    email: str | None
    phone_number: str | None
    address: str | None
    tax_number: str | None
    bank_account: str | None
    payment_terms: int
    credit_limit: Decimal | None
    supplier_type: SupplierType
    status: SupplierStatus
    rating: int | None
    risk_level: RiskLevel
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


# --- Assets ---

class AssetCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    category: AssetCategory
    expenditure_id: int | None = Field(default=None, gt=0)
    branch_code: str = Field(min_length=2, max_length=2)
    purchase_price: Decimal = Field(gt=0, decimal_places=2)
    currency_code: str = Field(default="USD", min_length=3, max_length=3)
    purchase_date: date
    warranty_expiry: date | None = None
    condition: AssetCondition = AssetCondition.EXCELLENT
    location: str | None = Field(default=None, max_length=100)
    assigned_to: int | None = Field(default=None, gt=0)
    depreciation_rate: Decimal | None = Field(
        default=None, ge=0, le=100, decimal_places=2
    )
    is_insured: bool = False
    insurance_expiry: date | None = None
    serial_number: str | None = Field(default=None, max_length=50)


class AssetUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    category: AssetCategory | None = None
    expenditure_id: int | None = Field(default=None, gt=0)
    purchase_price: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    current_value: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    purchase_date: date | None = None
    warranty_expiry: date | None = None
    condition: AssetCondition | None = None
    location: str | None = Field(default=None, max_length=100)
    assigned_to: int | None = Field(default=None, gt=0)
    depreciation_rate: Decimal | None = Field(
        default=None, ge=0, le=100, decimal_places=2
    )
    is_insured: bool | None = None
    insurance_expiry: date | None = None
    serial_number: str | None = Field(default=None, max_length=50)
    is_active: bool | None = None


class AssetResponse(BaseModel):
    id: int
    asset_number: str
    name: str
    description: str | None
    category: AssetCategory
    expenditure_id: int | None
    branch_code: str
    purchase_price: Decimal
    current_value: Decimal | None
    currency_code: str
    purchase_date: date
    warranty_expiry: date | None
    condition: AssetCondition
    location: str | None
    assigned_to: int | None
    depreciation_rate: Decimal | None
    is_insured: bool
    insurance_expiry: date | None
    serial_number: str | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


# --- Contracts ---

class ContractCreate(BaseModel):
    supplier_id: int = Field(gt=0)
    project_id: int | None = Field(default=None, gt=0)
    title: str = Field(min_length=3, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    contract_value: Decimal = Field(gt=0, decimal_places=2)
    currency_code: str = Field(default="USD", min_length=3, max_length=3)
    start_date: date
    end_date: date
    contract_type: ContractType
    payment_terms: str | None = Field(default=None, max_length=500)
    deliverables: str | None = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class ContractUpdate(BaseModel):
    supplier_id: int | None = Field(default=None, gt=0)
    project_id: int | None = Field(default=None, gt=0)
    title: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    contract_value: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    currency_code: str | None = Field(default=None, min_length=3, max_length=3)
    start_date: date | None = None
    end_date: date | None = None
    contract_type: ContractType | None = None
    status: ContractStatus | None = None
    payment_terms: str | None = Field(default=None, max_length=500)
    deliverables: str | None = Field(default=None, max_length=2000)


class ContractResponse(BaseModel):
    id: int
    contract_number: str
    supplier_id: int
    project_id: int | None
    title: str
    description: str | None
    contract_value: Decimal
    currency_code: str
    start_date: date
    end_date: date | None
    contract_type: ContractType
    status: ContractStatus
    payment_terms: str | None
    deliverables: str | None
    created_by: int
    created_at: datetime

    model_config = {"from_attributes": True}
