"""Business logic services."""

from branch_finance.services.audit_service import AuditService
from branch_finance.services.auth_service import AuthService
from branch_finance.services.budget_service import BudgetService
from branch_finance.services.finance_service import FinanceService
from branch_finance.services.identifier_service import IdentifierService
from branch_finance.services.member_service import MemberService
from branch_finance.services.procurement_service import ProcurementService
from branch_finance.services.reference_service import ReferenceService
from branch_finance.services.reminder_service import ReminderService
from branch_finance.services.report_service import ReportService
from branch_finance.services.user_service import UserService

__all__ = [
    "AuditService",
    "AuthService",
    "BudgetService",
    "FinanceService",
    "IdentifierService",
    "MemberService",
    "ProcurementService",
    "ReferenceService",
    "ReminderService",
    "ReportService",
    "UserService",
]
