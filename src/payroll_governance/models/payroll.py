"""Payroll run and per-employee payroll detail models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, Date, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_governance.models.base import Base, TimestampMixin


class PayrollRun(Base, TimestampMixin):
    """Run-level aggregate created by draft generation."""

    __tablename__ = "payroll_run"

    payroll_run_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    run_id: Mapped[str] = mapped_column(String, nullable=False)
    period: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    employees: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    exceptions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_net_pay: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    initiated_by: Mapped[UUID] = mapped_column(nullable=False)

    __table_args__ = (
        UniqueConstraint("run_id", name="payroll_run_run_id_unique"),
        CheckConstraint("employees >= 0", name="payroll_run_employees_check"),
        CheckConstraint(
            "exceptions >= 0 AND exceptions <= employees",
            name="payroll_run_exceptions_check",
        ),
    )

    # Relationships
    details: Mapped[list[EmployeePayrollDetail]] = relationship(
        back_populates="payroll_run",
        order_by="EmployeePayrollDetail.employee_id",
    )


class EmployeePayrollDetail(Base, TimestampMixin):
    """One employee's computed figures within a payroll run."""

    __tablename__ = "employee_payroll_detail"

    employee_payroll_detail_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.payroll_run_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"),
        nullable=False,
    )
    gross: Mapped[Decimal] = mapped_column(nullable=False)
    taxes: Mapped[Decimal] = mapped_column(nullable=False)
    insurance: Mapped[Decimal] = mapped_column(nullable=False)
    penalties: Mapped[Decimal] = mapped_column(nullable=False)
    net: Mapped[Decimal] = mapped_column(nullable=False)
    final_salary: Mapped[Decimal] = mapped_column(nullable=False)
    is_exception: Mapped[bool] = mapped_column(nullable=False, default=False)
    employment_event: Mapped[str] = mapped_column(String, nullable=False, default="normal")
    signing_bonus: Mapped[Decimal | None] = mapped_column(nullable=True)
    termination_benefit: Mapped[Decimal | None] = mapped_column(nullable=True)
    breakdown: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    __table_args__ = (
        UniqueConstraint("payroll_run_id", "employee_id", name="employee_payroll_detail_unique"),
        CheckConstraint(
            "employment_event IN ('normal', 'new_hire', 'termination')",
            name="employee_payroll_detail_event_check",
        ),
    )

    # Relationships
    payroll_run: Mapped[PayrollRun] = relationship(back_populates="details")
