"""
Shared enumerations for database models.

Using Python enums mapped to database enums ensures that
only valid values can be stored.
"""

import enum


class RecordType(str, enum.Enum):
    """Financial record kinds that receive sequential receipt numbers."""
    CONTRIBUTION = "contribution"
    TRANSACTION = "transaction"
    EXPENDITURE = "expenditure"


class AgeCategory(str, enum.Enum):
    ADULT = "ADULT"
    YOUTH = "YOUTH"
    CHILD = "CHILD"
    ELDERLY = "ELDERLY"


class ProjectStatus(str, enum.Enum):
    PLANNING = "PLANNING"
    ACTIVE = "ACTIVE"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    ARCHIVED = "ARCHIVED"


class Priority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class RecordStatus(str, enum.Enum):
    """Lifecycle of a contribution or general transaction."""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class ApprovalStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ExpenditureCategory(str, enum.Enum):
    OPERATIONAL = "OPERATIONAL"
    PROJECT = "PROJECT"
    CAPITAL = "CAPITAL"
    MAINTENANCE = "MAINTENANCE"
    UTILITIES = "UTILITIES"
    PERSONNEL = "PERSONNEL"
    MINISTRY = "MINISTRY"
    OUTREACH = "OUTREACH"
    EMERGENCY = "EMERGENCY"
    ADMINISTRATIVE = "ADMINISTRATIVE"


class Urgency(str, enum.Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"
    EMERGENCY = "EMERGENCY"


class SupplierType(str, enum.Enum):
    VENDOR = "VENDOR"
    CONTRACTOR = "CONTRACTOR"
    SERVICE_PROVIDER = "SERVICE_PROVIDER"
    CONSULTANT = "CONSULTANT"
    UTILITY_COMPANY = "UTILITY_COMPANY"
    GOVERNMENT_AGENCY = "GOVERNMENT_AGENCY"


class SupplierStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    BLACKLISTED = "BLACKLISTED"


class RiskLevel(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class AssetCategory(str, enum.Enum):
    FURNITURE = "FURNITURE"
    EQUIPMENT = "EQUIPMENT"
    ELECTRONICS = "ELECTRONICS"
    VEHICLES = "VEHICLES"
    PROPERTY = "PROPERTY"
    INSTRUMENTS = "INSTRUMENTS"
    SOFTWARE = "SOFTWARE"
    OTHER = "OTHER"


class AssetCondition(str, enum.Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    DAMAGED = "DAMAGED"
    OBSOLETE = "OBSOLETE"


class ContractType(str, enum.Enum):
    SERVICE = "SERVICE"
    SUPPLY = "SUPPLY"
    CONSTRUCTION = "CONSTRUCTION"
    MAINTENANCE = "MAINTENANCE"
    CONSULTING = "CONSULTING"
    LEASE = "LEASE"
    OTHER = "OTHER"


class ContractStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    TERMINATED = "TERMINATED"


class BudgetType(str, enum.Enum):
    ANNUAL = "ANNUAL"
    QUARTERLY = "QUARTERLY"
    MONTHLY = "MONTHLY"
    PROJECT_BASED = "PROJECT_BASED"
    EVENT_BASED = "EVENT_BASED"


class BudgetStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class ReminderMethod(str, enum.Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"


class ReminderStatus(str, enum.Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
