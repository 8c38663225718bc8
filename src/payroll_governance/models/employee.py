"""Employee and penalty models.

Both are owned by collaborating subsystems; payroll only reads them.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_governance.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from payroll_governance.models.configuration import PayGrade


class EmploymentStatus(str, Enum):
    """Employment status values."""

    ACTIVE = "active"
    PROBATION = "probation"
    ON_LEAVE = "on_leave"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"
    RETIRED = "retired"
    TERMINATED = "terminated"
    RESIGNED = "resigned"


class Employee(Base, TimestampMixin):
    """Employee record."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_number: Mapped[str] = mapped_column(String, nullable=False)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    employment_status: Mapped[str] = mapped_column(
        String, nullable=False, default=EmploymentStatus.ACTIVE.value
    )
    pay_grade_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("pay_grade.pay_grade_id", ondelete="SET NULL"),
        nullable=True,
    )
    hire_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_number", name="employee_number_unique"),
        CheckConstraint(
            "employment_status IN ('active', 'probation', 'on_leave', 'suspended', "
            "'inactive', 'retired', 'terminated', 'resigned')",
            name="employee_status_check",
        ),
    )

    # Relationships
    pay_grade: Mapped[PayGrade | None] = relationship()

    @property
    def full_name(self) -> str:
        """Get full name."""
        return f"{self.first_name} {self.last_name}"


class EmployeePenalty(Base, TimestampMixin):
    """Misconduct or other penalty deducted from final salary."""

    __tablename__ = "employee_penalty"

    employee_penalty_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    period: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (CheckConstraint("amount >= 0", name="employee_penalty_amount_check"),)
