"""
Sequence counter model.

One row per (scope, branch, year) holding the last number handed
out. Allocation increments the row with a single UPDATE inside the
caller's transaction, so two concurrent allocators serialize on the
row lock instead of reading the same maximum.
"""

from sqlalchemy import String, Integer
from sqlalchemy.orm import Mapped, mapped_column

from branch_finance.models.base import Base


class SequenceCounter(Base):
    __tablename__ = "sequence_counters"

    # contribution / transaction / expenditure, or an entity code scope
    # such as "supplier" or "revenue_head"
    scope: Mapped[str] = mapped_column(String(30), primary_key=True)
    # "" when the scope is global
    branch_code: Mapped[str] = mapped_column(String(10), primary_key=True)
    # 0 when the scope does not reset yearly
    year: Mapped[int] = mapped_column(Integer, primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return (
            f"<SequenceCounter {self.scope}/{self.branch_code}/{self.year} "
            f"= {self.last_value}>"
        )
