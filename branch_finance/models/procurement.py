"""
Suppliers, fixed assets and supplier contracts.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, Date, DateTime, Integer, Numeric, ForeignKey, Text,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from branch_finance.models.base import Base, utcnow
from branch_finance.models.enums import (
    SupplierType,
    SupplierStatus,
    RiskLevel,
    AssetCategory,
    AssetCondition,
    ContractType,
    ContractStatus,
)


class Supplier(Base):
    __tablename__ = "suppliers"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    business_name: Mapped[str | None] = mapped_column(String(150), nullable=True)
    contact_person: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    tax_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    bank_account: Mapped[str | None] = mapped_column(String(100), nullable=True)
    payment_terms: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    credit_limit: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 2), nullable=True
    )
    supplier_type: Mapped[SupplierType] = mapped_column(
        SAEnum(SupplierType, name="supplier_type_enum"),
        nullable=False,
        default=SupplierType.VENDOR,
    )
    status: Mapped[SupplierStatus] = mapped_column(
        SAEnum(SupplierStatus, name="supplier_status_enum"),
        nullable=False,
        default=SupplierStatus.ACTIVE,
    )
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    risk_level: Mapped[RiskLevel] = mapped_column(
        SAEnum(RiskLevel, name="risk_level_enum"),
        nullable=False,
        default=RiskLevel.LOW,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<Supplier {self.code} {self.name}>"


class Asset(Base):
    __tablename__ = "assets"

    id: Mapped[int] = mapped_column(primary_key=True)
    asset_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    category: Mapped[AssetCategory] = mapped_column(
        SAEnum(AssetCategory, name="asset_category_enum"),
        nullable=False,
        default=AssetCategory.OTHER,
    )
    expenditure_id: Mapped[int | None] = mapped_column(
        ForeignKey("expenditures.id"), nullable=True
    )
    branch_code: Mapped[str] = mapped_column(
        ForeignKey("branches.code"), nullable=False, index=True
    )
    purchase_price: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    current_value: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 2), nullable=True
    )
    currency_code: Mapped[str] = mapped_column(
        ForeignKey("currencies.code"), nullable=False
    )
    purchase_date: Mapped[date] = mapped_column(Date, nullable=False)
    warranty_expiry: Mapped[date | None] = mapped_column(Date, nullable=True)
    condition: Mapped[AssetCondition] = mapped_column(
        SAEnum(AssetCondition, name="asset_condition_enum"),
        nullable=False,
        default=AssetCondition.GOOD,
    )
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    assigned_to: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )
    depreciation_rate: Mapped[Decimal | None] = mapped_column(
        Numeric(5, 2), nullable=True
    )
    is_insured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    insurance_expiry: Mapped[date | None] = mapped_column(Date, nullable=True)
    serial_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<Asset {self.asset_number} {self.name}>"


class Contract(Base):
    __tablename__ = "contracts"

    id: Mapped[int] = mapped_column(primary_key=True)
    contract_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False
    )
    supplier_id: Mapped[int] = mapped_column(
        ForeignKey("suppliers.id"), nullable=False, index=True
    )
    project_id: Mapped[int | None] = mapped_column(
        ForeignKey("projects.id"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    contract_value: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    currency_code: Mapped[str] = mapped_column(
        ForeignKey("currencies.code"), nullable=False
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    contract_type: Mapped[ContractType] = mapped_column(
        SAEnum(ContractType, name="contract_type_enum"),
        nullable=False,
        default=ContractType.SERVICE,
    )
    status: Mapped[ContractStatus] = mapped_column(
        SAEnum(ContractStatus, name="contract_status_enum"),
        nullable=False,
        default=ContractStatus.DRAFT,
    )
    payment_terms: Mapped[str | None] = mapped_column(String(500), nullable=True)
    deliverables: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    supplier: Mapped["Supplier"] = relationship()

    def __repr__(self) -> str:
        return f"<Contract {self.contract_number} {self.title}>"
