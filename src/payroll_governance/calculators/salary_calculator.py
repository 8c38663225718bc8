"""Net and final salary arithmetic.

Tax and insurance are aggregated globally across every approved rule and
bracket; there is no bracket selection by salary band.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from payroll_governance.calculators.types import SalaryComputation

CENTS = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


class HasRate(Protocol):
    rate: Decimal


class HasAmount(Protocol):
    amount: Decimal


def quantize(value: Decimal | int | str) -> Decimal:
    """Round a monetary value to cents, half up."""
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def aggregate_tax_total(gross: Decimal, rules: Iterable[HasRate]) -> Decimal:
    """Tax owed on ``gross``: gross times the sum of all rule rates, as percent."""
    total_rate = sum((Decimal(r.rate) for r in rules), ZERO)
    return quantize(Decimal(gross) * total_rate / HUNDRED)


def aggregate_insurance_total(brackets: Iterable[HasAmount]) -> Decimal:
    """Employee insurance contribution: the sum of every bracket's fixed amount."""
    return quantize(sum((Decimal(b.amount) for b in brackets), ZERO))


class SalaryCalculator:
    """Computes net and final salary from precomputed totals.

    net = gross - tax_total - insurance_total
    final = net - penalties_total

    A negative final salary flags the employee as an exception; it is not
    an error.
    """

    def calculate(
        self,
        gross: Decimal,
        tax_total: Decimal,
        insurance_total: Decimal,
        penalties_total: Decimal = ZERO,
    ) -> SalaryComputation:
        gross = quantize(gross)
        taxes = quantize(tax_total)
        insurance = quantize(insurance_total)
        penalties = quantize(penalties_total)

        net = gross - taxes - insurance
        final_salary = net - penalties

        return SalaryComputation(
            gross=gross,
            taxes=taxes,
            insurance=insurance,
            penalties=penalties,
            net=net,
            final_salary=final_salary,
            is_exception=final_salary < ZERO,
        )
