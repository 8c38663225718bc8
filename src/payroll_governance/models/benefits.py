"""Per-employee benefit links (signing bonus, termination/resignation benefit).

A link carries its own approval status, independent of the template it
references.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payroll_governance.models.base import Base, TimestampMixin

LINK_STATUSES = ("pending", "approved", "rejected", "paid")


def _status_check(table: str) -> CheckConstraint:
    values = ", ".join(f"'{s}'" for s in LINK_STATUSES)
    return CheckConstraint(f"status IN ({values})", name=f"{table}_status_check")


class BenefitLinkMixin(TimestampMixin):
    """Review envelope shared by benefit links."""

    __kind__: ClassVar[str]
    __pk__: ClassVar[str]
    __template_fk__: ClassVar[str]

    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    given_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)
    reviewed_by: Mapped[UUID | None] = mapped_column(nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def link_id(self) -> UUID:
        return getattr(self, self.__pk__)

    @property
    def template_id(self) -> UUID:
        return getattr(self, self.__template_fk__)

    @classmethod
    def id_column(cls) -> Any:
        return getattr(cls, cls.__pk__)

    @classmethod
    def template_column(cls) -> Any:
        return getattr(cls, cls.__template_fk__)


class EmployeeSigningBonus(Base, BenefitLinkMixin):
    """An employee's instance of a signing bonus template."""

    __tablename__ = "employee_signing_bonus"
    __kind__ = "signing_bonus"
    __pk__ = "employee_signing_bonus_id"
    __template_fk__ = "signing_bonus_id"

    employee_signing_bonus_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    signing_bonus_id: Mapped[UUID] = mapped_column(
        ForeignKey("signing_bonus.signing_bonus_id", ondelete="RESTRICT"),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("employee_id", "signing_bonus_id", name="employee_signing_bonus_unique"),
        CheckConstraint(
            "given_amount IS NULL OR given_amount >= 0",
            name="employee_signing_bonus_amount_check",
        ),
        _status_check("employee_signing_bonus"),
    )


class EmployeeTerminationBenefit(Base, BenefitLinkMixin):
    """An employee's termination or resignation benefit.

    When a breakdown is recorded, its three parts sum to ``total_amount``.
    """

    __tablename__ = "employee_termination_benefit"
    __kind__ = "termination_benefit"
    __pk__ = "employee_termination_benefit_id"
    __template_fk__ = "termination_benefit_id"

    employee_termination_benefit_id: Mapped[UUID] = mapped_column(
        primary_key=True, default=uuid4
    )
    termination_benefit_id: Mapped[UUID] = mapped_column(
        ForeignKey("termination_benefit.termination_benefit_id", ondelete="RESTRICT"),
        nullable=False,
    )
    termination_request_id: Mapped[UUID] = mapped_column(nullable=False)
    termination_type: Mapped[str] = mapped_column(String, nullable=False, default="termination")

    # Breakdown
    leave_encashment: Mapped[Decimal | None] = mapped_column(nullable=True)
    severance_pay: Mapped[Decimal | None] = mapped_column(nullable=True)
    end_of_service_gratuity: Mapped[Decimal | None] = mapped_column(nullable=True)
    total_amount: Mapped[Decimal | None] = mapped_column(nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "termination_request_id",
            "termination_benefit_id",
            name="employee_termination_benefit_unique",
        ),
        CheckConstraint(
            "termination_type IN ('termination', 'resignation')",
            name="employee_termination_benefit_type_check",
        ),
        CheckConstraint(
            "total_amount IS NULL OR (leave_encashment IS NOT NULL "
            "AND severance_pay IS NOT NULL AND end_of_service_gratuity IS NOT NULL)",
            name="employee_termination_benefit_breakdown_check",
        ),
        _status_check("employee_termination_benefit"),
    )

    @property
    def has_breakdown(self) -> bool:
        return self.total_amount is not None
