"""Pydantic payload models for configuration items and benefit links."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from payroll_governance.config import get_settings
from payroll_governance.errors import ValidationError

Amount = Annotated[Decimal, Field(ge=0, max_digits=14, decimal_places=2)]
Percentage = Annotated[Decimal, Field(ge=0, le=100, max_digits=7, decimal_places=4)]


class PayloadBase(BaseModel):
    """Base for all payloads: unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


def _check_minimum_wage(value: Decimal, label: str) -> Decimal:
    minimum = get_settings().minimum_base_salary
    if value < minimum:
        raise ValueError(f"{label} must be at least {minimum}")
    return value


# ============================================================================
# Configuration payloads
# ============================================================================


class PayGradePayload(PayloadBase):
    """Pay grade payload; gross must not be below base."""

    grade: str = Field(min_length=1)
    base_salary: Amount
    gross_salary: Amount

    @field_validator("base_salary")
    @classmethod
    def _base_minimum(cls, v: Decimal) -> Decimal:
        return _check_minimum_wage(v, "Base salary")

    @field_validator("gross_salary")
    @classmethod
    def _gross_minimum(cls, v: Decimal) -> Decimal:
        return _check_minimum_wage(v, "Gross salary")

    @model_validator(mode="after")
    def _gross_covers_base(self) -> PayGradePayload:
        if self.gross_salary < self.base_salary:
            raise ValueError("Gross salary must be greater than or equal to base salary")
        return self


class AllowancePayload(PayloadBase):
    name: str = Field(min_length=1)
    amount: Amount


class TaxRulePayload(PayloadBase):
    name: str = Field(min_length=1)
    description: str | None = None
    rate: Percentage


class InsuranceBracketPayload(PayloadBase):
    """Insurance bracket payload."""

    name: str = Field(min_length=1)
    min_salary: Amount
    max_salary: Amount
    employee_rate: Percentage
    employer_rate: Percentage
    amount: Amount = Decimal("0")

    @model_validator(mode="after")
    def _range_and_rates(self) -> InsuranceBracketPayload:
        if self.max_salary < self.min_salary:
            raise ValueError("Maximum salary must be greater than or equal to minimum salary")
        if self.employee_rate + self.employer_rate > 100:
            raise ValueError("Employee rate plus employer rate must not exceed 100%")
        return self


class PayrollPolicyPayload(PayloadBase):
    """Payroll policy payload with a flattened rule definition."""

    policy_name: str = Field(min_length=1)
    policy_type: Literal["deduction", "allowance", "benefit", "misconduct", "leave"]
    description: str = ""
    effective_date: date
    rule_percentage: Percentage
    rule_fixed_amount: Amount
    rule_threshold_amount: Annotated[Decimal, Field(ge=1, max_digits=14, decimal_places=2)]
    applicability: Literal["all_employees", "full_time", "part_time", "contractors"] = (
        "all_employees"
    )


class SigningBonusPayload(PayloadBase):
    position_name: str = Field(min_length=1)
    amount: Amount


class PayTypePayload(PayloadBase):
    type: Literal["hourly", "daily", "weekly", "monthly", "contract_based"]
    amount: Amount

    @field_validator("amount")
    @classmethod
    def _amount_minimum(cls, v: Decimal) -> Decimal:
        return _check_minimum_wage(v, "Pay type amount")


class TerminationBenefitPayload(PayloadBase):
    name: str = Field(min_length=1)
    amount: Amount
    terms: str | None = None


class CompanySettingsPayload(PayloadBase):
    pay_date: date
    time_zone: str = Field(min_length=1)
    currency: str = Field(default="EGP", pattern=r"^[A-Z]{3}$")


PAYLOADS: dict[str, type[PayloadBase]] = {
    "pay_grade": PayGradePayload,
    "allowance": AllowancePayload,
    "tax_rule": TaxRulePayload,
    "insurance_bracket": InsuranceBracketPayload,
    "payroll_policy": PayrollPolicyPayload,
    "signing_bonus": SigningBonusPayload,
    "pay_type": PayTypePayload,
    "termination_benefit": TerminationBenefitPayload,
    "company_settings": CompanySettingsPayload,
}

# Column that must be unique per kind (None when the kind has no such rule)
UNIQUE_FIELDS: dict[str, str | None] = {
    "pay_grade": "grade",
    "allowance": "name",
    "tax_rule": "name",
    "insurance_bracket": "name",
    "payroll_policy": "policy_name",
    "signing_bonus": "position_name",
    "pay_type": "type",
    "termination_benefit": "name",
    "company_settings": None,
}


# ============================================================================
# Benefit link payloads
# ============================================================================


class BreakdownPayload(PayloadBase):
    """Termination benefit breakdown; parts must sum to the total."""

    leave_encashment: Amount
    severance_pay: Amount
    end_of_service_gratuity: Amount
    total_amount: Amount

    @model_validator(mode="after")
    def _parts_sum_to_total(self) -> BreakdownPayload:
        parts = self.leave_encashment + self.severance_pay + self.end_of_service_gratuity
        if parts != self.total_amount:
            raise ValueError(
                f"Breakdown parts sum to {parts} but total amount is {self.total_amount}"
            )
        return self


class GivenAmount(PayloadBase):
    given_amount: Amount | None = None


# ============================================================================
# Helpers
# ============================================================================


def validate_payload(model: type[BaseModel], data: dict[str, Any]) -> dict[str, Any]:
    """Validate ``data`` against ``model`` and return the cleaned fields.

    Raises:
        ValidationError: with pydantic's error list attached.
    """
    try:
        parsed = model.model_validate(data)
    except PydanticValidationError as e:
        errors = e.errors(include_url=False)
        messages = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'payload'}: {err['msg']}"
            for err in errors
        )
        raise ValidationError(f"Invalid {model.__name__}: {messages}", errors) from e
    return parsed.model_dump()


def validate_config_payload(kind: str, data: dict[str, Any]) -> dict[str, Any]:
    """Validate a full configuration payload for ``kind``."""
    return validate_payload(PAYLOADS[kind], data)
