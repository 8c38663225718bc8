"""End-of-service benefit arithmetic (severance and gratuity)."""

from __future__ import annotations

from datetime import date
from decimal import ROUND_FLOOR, Decimal

from payroll_governance.calculators.salary_calculator import ZERO, quantize
from payroll_governance.calculators.types import TerminationBreakdown

DAYS_PER_YEAR = Decimal("365.25")
DAYS_PER_MONTH = Decimal("30")

# Gratuity accrual in days of pay per year of service
GRATUITY_TIER_YEARS = Decimal("5")
GRATUITY_DAYS_FIRST_TIER = Decimal("21")
GRATUITY_DAYS_SECOND_TIER = Decimal("30")

RESIGNATION_SEVERANCE_FACTOR = Decimal("0.5")


def years_of_service(hire_date: date | None, end_date: date) -> Decimal:
    """Completed years between hire and end date (0 when hire date is unknown)."""
    if hire_date is None or end_date <= hire_date:
        return ZERO
    days = Decimal((end_date - hire_date).days)
    return (days / DAYS_PER_YEAR).to_integral_value(rounding=ROUND_FLOOR)


class TerminationBenefitCalculator:
    """Computes severance and end-of-service gratuity from base salary.

    Severance is one month of base salary per year of service on
    termination and half that on resignation. Gratuity accrues 21 days per
    year for the first five years and 30 days per year after, at a daily
    rate of base / 30.
    """

    def daily_rate(self, base_salary: Decimal) -> Decimal:
        return Decimal(base_salary) / DAYS_PER_MONTH

    def severance(self, base_salary: Decimal, years: Decimal, termination_type: str) -> Decimal:
        amount = Decimal(base_salary) * years
        if termination_type == "resignation":
            amount *= RESIGNATION_SEVERANCE_FACTOR
        return quantize(amount)

    def gratuity(self, base_salary: Decimal, years: Decimal) -> Decimal:
        first = min(years, GRATUITY_TIER_YEARS)
        rest = max(years - GRATUITY_TIER_YEARS, ZERO)
        days = first * GRATUITY_DAYS_FIRST_TIER + rest * GRATUITY_DAYS_SECOND_TIER
        return quantize(days * self.daily_rate(base_salary))

    def calculate(
        self,
        base_salary: Decimal,
        hire_date: date | None,
        end_date: date,
        termination_type: str,
        leave_encashment: Decimal = ZERO,
    ) -> TerminationBreakdown:
        years = years_of_service(hire_date, end_date)
        return TerminationBreakdown(
            leave_encashment=quantize(leave_encashment),
            severance_pay=self.severance(base_salary, years, termination_type),
            end_of_service_gratuity=self.gratuity(base_salary, years),
            years_of_service=years,
            termination_type=termination_type,
        )
