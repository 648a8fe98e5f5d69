"""
Members, projects, enrollments and payment reminders.

A member contributes towards projects they are enrolled in.
Reminders are picked up by the daily sweep.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, Date, DateTime, Numeric, ForeignKey, Text,
    UniqueConstraint, Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from branch_finance.models.base import Base, utcnow
from branch_finance.models.enums import (
    AgeCategory,
    ProjectStatus,
    Priority,
    ReminderMethod,
    ReminderStatus,
)


class Member(Base):
    __tablename__ = "members"

    id: Mapped[int] = mapped_column(primary_key=True)
    member_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False
    )
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    age_category: Mapped[AgeCategory] = mapped_column(
        SAEnum(AgeCategory, name="age_category_enum"),
        nullable=False,
        default=AgeCategory.ADULT,
    )
    phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    branch_code: Mapped[str] = mapped_column(
        ForeignKey("branches.code"), nullable=False, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    branch: Mapped["Branch"] = relationship()

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Member {self.member_number} {self.full_name}>"


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    target_amount: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    currency_code: Mapped[str] = mapped_column(
        ForeignKey("currencies.code"), nullable=False
    )
    branch_code: Mapped[str] = mapped_column(
        ForeignKey("branches.code"), nullable=False, index=True
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[ProjectStatus] = mapped_column(
        SAEnum(ProjectStatus, name="project_status_enum"),
        nullable=False,
        default=ProjectStatus.PLANNING,
    )
    priority: Mapped[Priority] = mapped_column(
        SAEnum(Priority, name="priority_enum"),
        nullable=False,
        default=Priority.MEDIUM,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    branch: Mapped["Branch"] = relationship()

    def __repr__(self) -> str:
        return f"<Project {self.id} {self.name}>"


class MemberProject(Base):
    """Enrollment of a member in a project, with the amount they pledged."""

    __tablename__ = "member_projects"
    __table_args__ = (UniqueConstraint("member_id", "project_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id"), nullable=False, index=True
    )
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id"), nullable=False, index=True
    )
    required_amount: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    currency_code: Mapped[str] = mapped_column(
        ForeignKey("currencies.code"), nullable=False
    )
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )

    member: Mapped["Member"] = relationship()
    project: Mapped["Project"] = relationship()


class PaymentReminder(Base):
    __tablename__ = "payment_reminders"

    id: Mapped[int] = mapped_column(primary_key=True)
    member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id"), nullable=False, index=True
    )
    currency_code: Mapped[str] = mapped_column(
        ForeignKey("currencies.code"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    reminder_type: Mapped[str] = mapped_column(String(50), nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    method: Mapped[ReminderMethod] = mapped_column(
        SAEnum(ReminderMethod, name="reminder_method_enum"),
        nullable=False,
        default=ReminderMethod.EMAIL,
    )
    status: Mapped[ReminderStatus] = mapped_column(
        SAEnum(ReminderStatus, name="reminder_status_enum"),
        nullable=False,
        default=ReminderStatus.PENDING,
    )
    sent_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )

    member: Mapped["Member"] = relationship()
    currency: Mapped["Currency"] = relationship()
