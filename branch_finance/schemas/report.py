"""
Pydantic schemas for dashboard statistics.
"""

from decimal import Decimal

from pydantic import BaseModel


class PeriodTotal(BaseModel):
    count: int
    amount: Decimal


class CollectedTotals(BaseModel):
    contributions: Decimal
    transactions: Decimal
    total: Decimal


class DashboardStats(BaseModel):
    branch_code: str | None
    total_members: int
    total_projects: int
    active_projects: int
    total_contributions: int
    total_transactions: int
    total_expenditures: int
    pending_approvals: int
    total_collected: CollectedTotals
    total_spent: Decimal
    this_month: dict[str, PeriodTotal]
