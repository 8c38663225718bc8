"""Type definitions for salary and termination calculations."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class SalaryComputation:
    """Result of one employee's salary calculation."""

    gross: Decimal
    taxes: Decimal
    insurance: Decimal
    penalties: Decimal
    net: Decimal
    final_salary: Decimal
    is_exception: bool

    def to_breakdown(self) -> dict[str, Any]:
        """Return a JSON-safe mirror with string-encoded decimals."""
        return {
            "gross": str(self.gross),
            "taxes": str(self.taxes),
            "insurance": str(self.insurance),
            "penalties": str(self.penalties),
            "net": str(self.net),
            "final_salary": str(self.final_salary),
            "is_exception": self.is_exception,
        }


@dataclass(frozen=True)
class TerminationBreakdown:
    """Itemised end-of-service amounts.

    ``total_amount`` is always the sum of the three parts.
    """

    leave_encashment: Decimal
    severance_pay: Decimal
    end_of_service_gratuity: Decimal
    years_of_service: Decimal
    termination_type: str

    @property
    def total_amount(self) -> Decimal:
        return self.leave_encashment + self.severance_pay + self.end_of_service_gratuity

    def to_dict(self) -> dict[str, Any]:
        return {
            "leave_encashment": self.leave_encashment,
            "severance_pay": self.severance_pay,
            "end_of_service_gratuity": self.end_of_service_gratuity,
            "total_amount": self.total_amount,
        }
