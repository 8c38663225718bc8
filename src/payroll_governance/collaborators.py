"""Boundaries to subsystems owned outside payroll.

Leave balances are computed by the leave-management subsystem; payroll
only asks for the resulting figures. Termination breakdowns use the leave
encashment; unpaid leave days are part of the contract a leave service
implements but no payroll figure here depends on them.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Protocol, runtime_checkable
from uuid import UUID


@runtime_checkable
class LeaveService(Protocol):
    """Leave figures needed by payroll."""

    async def get_unpaid_leave_days(self, employee_id: UUID, period: date) -> int:
        """Unpaid leave days taken by the employee in the period."""
        ...

    async def calculate_leave_encashment(self, employee_id: UUID, daily_rate: Decimal) -> Decimal:
        """Cash value of the employee's remaining leave balance."""
        ...


class NullLeaveService:
    """Leave service for deployments without leave management."""

    async def get_unpaid_leave_days(self, employee_id: UUID, period: date) -> int:
        return 0

    async def calculate_leave_encashment(self, employee_id: UUID, daily_rate: Decimal) -> Decimal:
        return Decimal("0")
