"""Approval-governed payroll configuration models.

Every configuration kind shares the same lifecycle envelope
(:class:`ApprovalMixin`) and carries its own payload columns.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, ClassVar
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payroll_governance.models.base import Base, TimestampMixin

CONFIG_STATUSES = ("draft", "approved", "rejected")


def _status_check(table: str) -> CheckConstraint:
    values = ", ".join(f"'{s}'" for s in CONFIG_STATUSES)
    return CheckConstraint(f"status IN ({values})", name=f"{table}_status_check")


class ApprovalMixin(TimestampMixin):
    """Lifecycle envelope shared by all configuration kinds.

    ``submitted_at`` marks a DRAFT row as awaiting review; it is not a
    separate status.
    """

    __kind__: ClassVar[str]
    __pk__: ClassVar[str]

    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    submitted_by: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def item_id(self) -> UUID:
        return getattr(self, self.__pk__)

    @classmethod
    def id_column(cls) -> Any:
        """Primary key attribute, for use in queries."""
        return getattr(cls, cls.__pk__)

    @property
    def is_submitted(self) -> bool:
        """True when a DRAFT item is awaiting review."""
        return self.status == "draft" and self.submitted_at is not None

    @property
    def is_approved(self) -> bool:
        return self.status == "approved"


class PayGrade(Base, ApprovalMixin):
    """Pay grade with base and gross monthly salary."""

    __tablename__ = "pay_grade"
    __kind__ = "pay_grade"
    __pk__ = "pay_grade_id"

    pay_grade_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    grade: Mapped[str] = mapped_column(String, nullable=False)
    base_salary: Mapped[Decimal] = mapped_column(nullable=False)
    gross_salary: Mapped[Decimal] = mapped_column(nullable=False)

    __table_args__ = (
        UniqueConstraint("grade", name="pay_grade_grade_unique"),
        CheckConstraint("gross_salary >= base_salary", name="pay_grade_gross_check"),
        _status_check("pay_grade"),
    )


class Allowance(Base, ApprovalMixin):
    """Fixed monthly allowance."""

    __tablename__ = "allowance"
    __kind__ = "allowance"
    __pk__ = "allowance_id"

    allowance_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    __table_args__ = (
        UniqueConstraint("name", name="allowance_name_unique"),
        CheckConstraint("amount >= 0", name="allowance_amount_check"),
        _status_check("allowance"),
    )


class TaxRule(Base, ApprovalMixin):
    """Flat tax rule; ``rate`` is a percentage of gross."""

    __tablename__ = "tax_rule"
    __kind__ = "tax_rule"
    __pk__ = "tax_rule_id"

    tax_rule_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    rate: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)

    __table_args__ = (
        UniqueConstraint("name", name="tax_rule_name_unique"),
        CheckConstraint("rate >= 0 AND rate <= 100", name="tax_rule_rate_check"),
        _status_check("tax_rule"),
    )


class InsuranceBracket(Base, ApprovalMixin):
    """Insurance bracket with a fixed employee contribution ``amount``."""

    __tablename__ = "insurance_bracket"
    __kind__ = "insurance_bracket"
    __pk__ = "insurance_bracket_id"

    insurance_bracket_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    min_salary: Mapped[Decimal] = mapped_column(nullable=False)
    max_salary: Mapped[Decimal] = mapped_column(nullable=False)
    employee_rate: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)
    employer_rate: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    __table_args__ = (
        UniqueConstraint("name", name="insurance_bracket_name_unique"),
        CheckConstraint("max_salary >= min_salary", name="insurance_bracket_range_check"),
        CheckConstraint(
            "employee_rate + employer_rate <= 100",
            name="insurance_bracket_rates_check",
        ),
        _status_check("insurance_bracket"),
    )


class PayrollPolicy(Base, ApprovalMixin):
    """Payroll policy with a percentage/fixed/threshold rule definition."""

    __tablename__ = "payroll_policy"
    __kind__ = "payroll_policy"
    __pk__ = "payroll_policy_id"

    payroll_policy_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    policy_name: Mapped[str] = mapped_column(String, nullable=False)
    policy_type: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    rule_percentage: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)
    rule_fixed_amount: Mapped[Decimal] = mapped_column(nullable=False)
    rule_threshold_amount: Mapped[Decimal] = mapped_column(nullable=False)
    applicability: Mapped[str] = mapped_column(String, nullable=False, default="all_employees")

    __table_args__ = (
        UniqueConstraint("policy_name", name="payroll_policy_name_unique"),
        CheckConstraint(
            "policy_type IN ('deduction', 'allowance', 'benefit', 'misconduct', 'leave')",
            name="payroll_policy_type_check",
        ),
        CheckConstraint(
            "applicability IN ('all_employees', 'full_time', 'part_time', 'contractors')",
            name="payroll_policy_applicability_check",
        ),
        _status_check("payroll_policy"),
    )


class SigningBonus(Base, ApprovalMixin):
    """Position-specific signing bonus template."""

    __tablename__ = "signing_bonus"
    __kind__ = "signing_bonus"
    __pk__ = "signing_bonus_id"

    signing_bonus_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    position_name: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    __table_args__ = (
        UniqueConstraint("position_name", name="signing_bonus_position_unique"),
        CheckConstraint("amount >= 0", name="signing_bonus_amount_check"),
        _status_check("signing_bonus"),
    )


class PayType(Base, ApprovalMixin):
    """Pay type (hourly, monthly, ...) with its minimum amount."""

    __tablename__ = "pay_type"
    __kind__ = "pay_type"
    __pk__ = "pay_type_id"

    pay_type_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    type: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    __table_args__ = (
        UniqueConstraint("type", name="pay_type_type_unique"),
        CheckConstraint(
            "type IN ('hourly', 'daily', 'weekly', 'monthly', 'contract_based')",
            name="pay_type_type_check",
        ),
        _status_check("pay_type"),
    )


class TerminationBenefit(Base, ApprovalMixin):
    """Termination / resignation benefit template."""

    __tablename__ = "termination_benefit"
    __kind__ = "termination_benefit"
    __pk__ = "termination_benefit_id"

    termination_benefit_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    terms: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("name", name="termination_benefit_name_unique"),
        CheckConstraint("amount >= 0", name="termination_benefit_amount_check"),
        _status_check("termination_benefit"),
    )


class CompanySettings(Base, ApprovalMixin):
    """Company-wide payroll settings.

    There is no stored "active" flag: the active settings is the most
    recently approved row.
    """

    __tablename__ = "company_settings"
    __kind__ = "company_settings"
    __pk__ = "company_settings_id"

    company_settings_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_date: Mapped[date] = mapped_column(Date, nullable=False)
    time_zone: Mapped[str] = mapped_column(String, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EGP")

    __table_args__ = (_status_check("company_settings"),)

