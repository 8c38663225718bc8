"""Payroll calculators."""

from payroll_governance.calculators.salary_calculator import (
    SalaryCalculator,
    aggregate_insurance_total,
    aggregate_tax_total,
    quantize,
)
from payroll_governance.calculators.termination_calculator import (
    TerminationBenefitCalculator,
    years_of_service,
)
from payroll_governance.calculators.types import SalaryComputation, TerminationBreakdown

__all__ = [
    "SalaryCalculator",
    "SalaryComputation",
    "TerminationBenefitCalculator",
    "TerminationBreakdown",
    "aggregate_insurance_total",
    "aggregate_tax_total",
    "quantize",
    "years_of_service",
]
