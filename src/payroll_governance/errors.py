"""Exception hierarchy for payroll governance."""

from __future__ import annotations

from collections.abc import Collection
from typing import Any


class PayrollGovernanceError(Exception):
    """Base exception for all payroll governance errors."""


class ValidationError(PayrollGovernanceError):
    """Malformed input to a create/update operation."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        self.errors = errors or []
        super().__init__(message)


class DuplicateError(ValidationError):
    """A uniqueness rule would be violated."""


class NotFoundError(PayrollGovernanceError):
    """Referenced item, employee, pay grade or benefit link does not exist."""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class InvalidStateTransition(PayrollGovernanceError):
    """Raised when a lifecycle operation is not allowed from the current state."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        from_status = getattr(from_status, "value", from_status)
        to_status = getattr(to_status, "value", to_status)
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PermissionDenied(PayrollGovernanceError):
    """Actor's roles lack the capability required for the operation."""

    def __init__(
        self,
        capability: str,
        entity: str,
        roles: Collection[Any],
        required: Collection[Any],
    ):
        self.capability = capability
        self.entity = entity
        self.roles = frozenset(roles)
        self.required = frozenset(required)
        held = ", ".join(sorted(str(getattr(r, "value", r)) for r in self.roles)) or "none"
        needed = ", ".join(sorted(str(getattr(r, "value", r)) for r in self.required))
        super().__init__(
            f"'{capability}' on {entity} requires one of [{needed}]; actor holds [{held}]"
        )


class ComputationException(PayrollGovernanceError):
    """Record of an employee whose final salary is negative.

    Draft entries carry one for flagged employees and generation logs it;
    it is never raised. The detail row and the run's exception count hold
    the persisted form.
    """

    def __init__(self, employee_id: Any, final_salary: Any):
        self.employee_id = employee_id
        self.final_salary = final_salary
        super().__init__(f"Final salary for employee {employee_id} is negative ({final_salary})")
