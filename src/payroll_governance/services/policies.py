"""Per-kind capability descriptors for the approval workflow.

Roles are always passed in explicitly by the caller; nothing here reads an
ambient "current user".
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass
from enum import Enum

from payroll_governance.errors import PermissionDenied
from payroll_governance.models import (
    Allowance,
    ApprovalMixin,
    BenefitLinkMixin,
    CompanySettings,
    EmployeeSigningBonus,
    EmployeeTerminationBenefit,
    InsuranceBracket,
    PayGrade,
    PayrollPolicy,
    PayType,
    SigningBonus,
    TaxRule,
    TerminationBenefit,
)


class SystemRole(str, Enum):
    """Roles that carry payroll capabilities."""

    PAYROLL_SPECIALIST = "payroll_specialist"
    PAYROLL_MANAGER = "payroll_manager"
    HR_MANAGER = "hr_manager"
    HR_ADMIN = "hr_admin"
    LEGAL_POLICY_ADMIN = "legal_policy_admin"
    SYSTEM_ADMIN = "system_admin"
    FINANCE_STAFF = "finance_staff"


class ConfigKind(str, Enum):
    """Configuration item kinds."""

    PAY_GRADE = "pay_grade"
    ALLOWANCE = "allowance"
    TAX_RULE = "tax_rule"
    INSURANCE_BRACKET = "insurance_bracket"
    PAYROLL_POLICY = "payroll_policy"
    SIGNING_BONUS = "signing_bonus"
    PAY_TYPE = "pay_type"
    TERMINATION_BENEFIT = "termination_benefit"
    COMPANY_SETTINGS = "company_settings"


class LinkKind(str, Enum):
    """Benefit link kinds."""

    SIGNING_BONUS = "signing_bonus"
    TERMINATION_BENEFIT = "termination_benefit"


@dataclass(frozen=True)
class EntityPolicy:
    """Capability descriptor for one configuration kind.

    Attributes:
        kind: The configuration kind.
        model: ORM class storing the kind.
        specialist_roles: Roles that may create, edit, submit and delete drafts.
        approver_roles: Roles that may approve or reject.
        privileged_delete: Approved items may be deleted by an approver.
        single_active: Only the most recently approved item is active.
    """

    kind: ConfigKind
    model: type[ApprovalMixin]
    specialist_roles: frozenset[SystemRole]
    approver_roles: frozenset[SystemRole]
    privileged_delete: bool = False
    single_active: bool = False

    @property
    def label(self) -> str:
        return self.kind.value.replace("_", " ")

    def require_specialist(self, roles: Collection[SystemRole], capability: str) -> None:
        _require(roles, self.specialist_roles, capability, self.label)

    def require_approver(self, roles: Collection[SystemRole], capability: str) -> None:
        _require(roles, self.approver_roles, capability, self.label)


@dataclass(frozen=True)
class LinkPolicy:
    """Capability descriptor for one benefit link kind."""

    kind: LinkKind
    model: type[BenefitLinkMixin]
    template_kind: ConfigKind
    creator_roles: frozenset[SystemRole]
    reviewer_roles: frozenset[SystemRole]

    @property
    def label(self) -> str:
        return f"employee {self.kind.value.replace('_', ' ')}"

    def require_creator(self, roles: Collection[SystemRole], capability: str) -> None:
        _require(roles, self.creator_roles, capability, self.label)

    def require_reviewer(self, roles: Collection[SystemRole], capability: str) -> None:
        _require(roles, self.reviewer_roles, capability, self.label)


def _require(
    roles: Collection[SystemRole],
    allowed: frozenset[SystemRole],
    capability: str,
    entity: str,
) -> None:
    held = {getattr(role, "value", role) for role in roles}
    if held.isdisjoint(role.value for role in allowed):
        raise PermissionDenied(capability, entity, held, allowed)


_SPECIALIST = frozenset({SystemRole.PAYROLL_SPECIALIST})
_PAYROLL_MANAGER = frozenset({SystemRole.PAYROLL_MANAGER})

POLICIES: dict[ConfigKind, EntityPolicy] = {
    ConfigKind.PAY_GRADE: EntityPolicy(
        ConfigKind.PAY_GRADE, PayGrade, _SPECIALIST, _PAYROLL_MANAGER
    ),
    ConfigKind.ALLOWANCE: EntityPolicy(
        ConfigKind.ALLOWANCE, Allowance, _SPECIALIST, _PAYROLL_MANAGER
    ),
    ConfigKind.TAX_RULE: EntityPolicy(
        ConfigKind.TAX_RULE,
        TaxRule,
        frozenset({SystemRole.PAYROLL_SPECIALIST, SystemRole.LEGAL_POLICY_ADMIN}),
        _PAYROLL_MANAGER,
    ),
    ConfigKind.INSURANCE_BRACKET: EntityPolicy(
        ConfigKind.INSURANCE_BRACKET,
        InsuranceBracket,
        _SPECIALIST,
        frozenset({SystemRole.HR_MANAGER}),
    ),
    ConfigKind.PAYROLL_POLICY: EntityPolicy(
        ConfigKind.PAYROLL_POLICY, PayrollPolicy, _SPECIALIST, _PAYROLL_MANAGER
    ),
    ConfigKind.SIGNING_BONUS: EntityPolicy(
        ConfigKind.SIGNING_BONUS, SigningBonus, _SPECIALIST, _PAYROLL_MANAGER
    ),
    ConfigKind.PAY_TYPE: EntityPolicy(
        ConfigKind.PAY_TYPE,
        PayType,
        _SPECIALIST,
        _PAYROLL_MANAGER,
        privileged_delete=True,
    ),
    ConfigKind.TERMINATION_BENEFIT: EntityPolicy(
        ConfigKind.TERMINATION_BENEFIT,
        TerminationBenefit,
        _SPECIALIST,
        _PAYROLL_MANAGER,
        privileged_delete=True,
    ),
    ConfigKind.COMPANY_SETTINGS: EntityPolicy(
        ConfigKind.COMPANY_SETTINGS,
        CompanySettings,
        _SPECIALIST,
        frozenset({SystemRole.SYSTEM_ADMIN}),
        single_active=True,
    ),
}

LINK_POLICIES: dict[LinkKind, LinkPolicy] = {
    LinkKind.SIGNING_BONUS: LinkPolicy(
        LinkKind.SIGNING_BONUS,
        EmployeeSigningBonus,
        ConfigKind.SIGNING_BONUS,
        frozenset({SystemRole.PAYROLL_SPECIALIST, SystemRole.HR_ADMIN}),
        frozenset({SystemRole.PAYROLL_SPECIALIST, SystemRole.PAYROLL_MANAGER}),
    ),
    LinkKind.TERMINATION_BENEFIT: LinkPolicy(
        LinkKind.TERMINATION_BENEFIT,
        EmployeeTerminationBenefit,
        ConfigKind.TERMINATION_BENEFIT,
        frozenset({SystemRole.PAYROLL_SPECIALIST, SystemRole.HR_ADMIN}),
        frozenset({SystemRole.PAYROLL_SPECIALIST, SystemRole.PAYROLL_MANAGER}),
    ),
}


def get_policy(kind: ConfigKind | str) -> EntityPolicy:
    """Look up the descriptor for a configuration kind."""
    return POLICIES[ConfigKind(kind)]


def get_link_policy(kind: LinkKind | str) -> LinkPolicy:
    """Look up the descriptor for a benefit link kind."""
    return LINK_POLICIES[LinkKind(kind)]
