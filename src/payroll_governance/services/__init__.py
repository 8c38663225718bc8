"""Payroll governance services."""

from payroll_governance.services.approval_workflow import ApprovalWorkflow
from payroll_governance.services.benefit_linker import EmployeeBenefitLinker
from payroll_governance.services.configuration_store import ConfigurationStore
from payroll_governance.services.draft_generator import DraftEntry, PayrollDraftGenerator
from payroll_governance.services.policies import (
    ConfigKind,
    EntityPolicy,
    LinkKind,
    LinkPolicy,
    SystemRole,
    get_link_policy,
    get_policy,
)
from payroll_governance.services.state_machine import (
    BenefitLinkStateMachine,
    BenefitStatus,
    ConfigStateMachine,
    ConfigStatus,
)

__all__ = [
    "ApprovalWorkflow",
    "ConfigurationStore",
    "EmployeeBenefitLinker",
    "PayrollDraftGenerator",
    "DraftEntry",
    "ConfigKind",
    "LinkKind",
    "SystemRole",
    "EntityPolicy",
    "LinkPolicy",
    "get_policy",
    "get_link_policy",
    "ConfigStateMachine",
    "ConfigStatus",
    "BenefitLinkStateMachine",
    "BenefitStatus",
]
