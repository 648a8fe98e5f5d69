"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from branch_finance.models.base import Base
from branch_finance.models.audit_log import AuditLog
from branch_finance.models.sequence import SequenceCounter
from branch_finance.models.reference import (
    Branch,
    Currency,
    PaymentMethod,
    RevenueHead,
    ExpenditureHead,
)
from branch_finance.models.user import (
    Role,
    User,
    RefreshToken,
    LoginHistory,
    PasswordResetToken,
)
from branch_finance.models.member import (
    Member,
    Project,
    MemberProject,
    PaymentReminder,
)
from branch_finance.models.procurement import Supplier, Asset, Contract
from branch_finance.models.finance import (
    MemberContribution,
    Transaction,
    Expenditure,
)
from branch_finance.models.budget import BudgetPeriod, BudgetLine

__all__ = [
    "Base",
    "AuditLog",
    "SequenceCounter",
    "Branch",
    "Currency",
    "PaymentMethod",
    "RevenueHead",
    "ExpenditureHead",
    "Role",
    "User",
    "RefreshToken",
    "LoginHistory",
    "PasswordResetToken",
    "Member",
    "Project",
    "MemberProject",
    "PaymentReminder",
    "Supplier",
    "Asset",
    "Contract",
    "MemberContribution",
    "Transaction",
    "Expenditure",
    "BudgetPeriod",
    "BudgetLine",
]
