"""ORM models."""

from payroll_governance.models.base import Base, TimestampMixin, utcnow
from payroll_governance.models.benefits import (
    BenefitLinkMixin,
    EmployeeSigningBonus,
    EmployeeTerminationBenefit,
)
from payroll_governance.models.configuration import (
    Allowance,
    ApprovalMixin,
    CompanySettings,
    InsuranceBracket,
    PayGrade,
    PayrollPolicy,
    PayType,
    SigningBonus,
    TaxRule,
    TerminationBenefit,
)
from payroll_governance.models.employee import Employee, EmployeePenalty, EmploymentStatus
from payroll_governance.models.payroll import EmployeePayrollDetail, PayrollRun

__all__ = [
    "Base",
    "TimestampMixin",
    "utcnow",
    "ApprovalMixin",
    "PayGrade",
    "Allowance",
    "TaxRule",
    "InsuranceBracket",
    "PayrollPolicy",
    "SigningBonus",
    "PayType",
    "TerminationBenefit",
    "CompanySettings",
    "BenefitLinkMixin",
    "EmployeeSigningBonus",
    "EmployeeTerminationBenefit",
    "Employee",
    "EmployeePenalty",
    "EmploymentStatus",
    "PayrollRun",
    "EmployeePayrollDetail",
]
