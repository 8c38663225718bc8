"""Draft payroll generation.

All per-employee figures are resolved in memory first; the run record and
its detail rows are written only after every employee resolved, so a
failure part-way through leaves nothing behind.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_governance.calculators import (
    SalaryCalculator,
    SalaryComputation,
    aggregate_insurance_total,
    aggregate_tax_total,
)
from payroll_governance.collaborators import LeaveService
from payroll_governance.config import get_settings
from payroll_governance.errors import ComputationException, DuplicateError, NotFoundError
from payroll_governance.models import (
    Employee,
    EmployeePayrollDetail,
    EmployeePenalty,
    EmploymentStatus,
    PayGrade,
    PayrollRun,
)
from payroll_governance.services.benefit_linker import EmployeeBenefitLinker
from payroll_governance.services.configuration_store import ConfigurationStore
from payroll_governance.services.policies import ConfigKind

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

INELIGIBLE_STATUSES = (EmploymentStatus.INACTIVE.value, EmploymentStatus.SUSPENDED.value)
SIGNING_BONUS_STATUSES = (EmploymentStatus.PROBATION.value,)
TERMINATION_STATUSES = (EmploymentStatus.RETIRED.value, EmploymentStatus.TERMINATED.value)


@dataclass(frozen=True)
class DraftEntry:
    """One employee's resolved figures, before persistence."""

    employee_id: UUID
    computation: SalaryComputation
    employment_event: str
    signing_bonus: Decimal | None = None
    termination_benefit: Decimal | None = None

    @property
    def is_exception(self) -> bool:
        return self.computation.is_exception

    @property
    def exception(self) -> ComputationException | None:
        """Record of a negative final salary, if this entry has one."""
        if not self.computation.is_exception:
            return None
        return ComputationException(self.employee_id, self.computation.final_salary)

    def breakdown(self) -> dict[str, Any]:
        """Display mirror of the entry with string-encoded decimals."""
        data = self.computation.to_breakdown()
        data["employment_event"] = self.employment_event
        data["signing_bonus"] = (
            str(self.signing_bonus) if self.signing_bonus is not None else None
        )
        data["termination_benefit"] = (
            str(self.termination_benefit) if self.termination_benefit is not None else None
        )
        return data

    def to_detail(self, payroll_run_id: UUID) -> EmployeePayrollDetail:
        c = self.computation
        return EmployeePayrollDetail(
            payroll_run_id=payroll_run_id,
            employee_id=self.employee_id,
            gross=c.gross,
            taxes=c.taxes,
            insurance=c.insurance,
            penalties=c.penalties,
            net=c.net,
            final_salary=c.final_salary,
            is_exception=c.is_exception,
            employment_event=self.employment_event,
            signing_bonus=self.signing_bonus,
            termination_benefit=self.termination_benefit,
            breakdown=self.breakdown(),
        )


def employment_event_for(status: str) -> str:
    """Classify an employment status into the detail row's event category."""
    if status in SIGNING_BONUS_STATUSES:
        return "new_hire"
    if status in TERMINATION_STATUSES:
        return "termination"
    return "normal"


class PayrollDraftGenerator:
    """Generates DRAFT payroll runs from approved configuration.

    Steps:
    1. Select employees whose status is neither INACTIVE nor SUSPENDED
    2. Resolve gross, tax, insurance and penalties per employee
    3. Compute net and final salary, flagging negative finals as exceptions
    4. Resolve signing bonus (probation) and termination benefit
       (retired/terminated) from APPROVED links
    5. Persist the run record and one detail row per employee
    """

    def __init__(
        self,
        session: AsyncSession,
        leave_service: LeaveService | None = None,
    ):
        self.session = session
        self.store = ConfigurationStore(session)
        self.linker = EmployeeBenefitLinker(session, leave_service)
        self.calculator = SalaryCalculator()

    async def generate_draft(
        self,
        period: date,
        initiator_id: UUID,
        run_id: str | None = None,
    ) -> PayrollRun:
        """Generate and persist a DRAFT payroll run for ``period``.

        Args:
            period: Payroll period date.
            initiator_id: Actor who triggered generation.
            run_id: Human-readable run id; generated when omitted.

        Raises:
            DuplicateError: ``run_id`` is already used.
            NotFoundError: a linked benefit references a missing template.
        """
        if run_id is None:
            run_id = await self._next_run_id(period.year)
        elif await self._run_id_exists(run_id):
            raise DuplicateError(f"Payroll run '{run_id}' already exists")

        try:
            entries = await self._build_entries()
        except Exception:
            logger.exception("Draft generation for run %s aborted", run_id)
            raise

        run = PayrollRun(
            run_id=run_id,
            period=period,
            status="draft",
            employees=len(entries),
            exceptions=sum(1 for e in entries if e.is_exception),
            total_net_pay=sum((e.computation.final_salary for e in entries), ZERO),
            initiated_by=initiator_id,
        )
        self.session.add(run)
        try:
            await self.session.flush()
            self.session.add_all(entry.to_detail(run.payroll_run_id) for entry in entries)
            await self.session.flush()
        except IntegrityError as e:
            raise DuplicateError(f"Payroll run '{run_id}' already exists") from e

        logger.info(
            "Generated draft run %s for %s: %d employees, %d exceptions, total %s",
            run_id,
            period,
            run.employees,
            run.exceptions,
            run.total_net_pay,
        )
        return run

    async def get_run(self, payroll_run_id: UUID) -> PayrollRun:
        """Load a run record or raise NotFoundError."""
        run = await self.session.get(PayrollRun, payroll_run_id)
        if run is None:
            raise NotFoundError("payroll run", payroll_run_id)
        return run

    async def list_runs(self, period: date | None = None) -> list[PayrollRun]:
        """List run records, newest first."""
        query = select(PayrollRun)
        if period is not None:
            query = query.where(PayrollRun.period == period)
        query = query.order_by(PayrollRun.created_at.desc(), PayrollRun.run_id.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_details(
        self,
        payroll_run_id: UUID,
        employee_id: UUID | None = None,
    ) -> list[EmployeePayrollDetail]:
        """Detail rows of a run, optionally for one employee."""
        await self.get_run(payroll_run_id)
        query = select(EmployeePayrollDetail).where(
            EmployeePayrollDetail.payroll_run_id == payroll_run_id
        )
        if employee_id is not None:
            query = query.where(EmployeePayrollDetail.employee_id == employee_id)
        query = query.order_by(EmployeePayrollDetail.employee_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def _build_entries(self) -> list[DraftEntry]:
        employees = await self._eligible_employees()
        tax_rules = await self.store.list_approved(ConfigKind.TAX_RULE)
        brackets = await self.store.list_approved(ConfigKind.INSURANCE_BRACKET)
        insurance_total = aggregate_insurance_total(brackets)

        entries = []
        for employee in employees:
            entry = await self._build_entry(employee, tax_rules, insurance_total)
            exc = entry.exception
            if exc is not None:
                logger.warning("%s (%s)", exc, employee.full_name)
            entries.append(entry)
        return entries

    async def _build_entry(
        self,
        employee: Employee,
        tax_rules: list[Any],
        insurance_total: Decimal,
    ) -> DraftEntry:
        gross = await self._resolve_gross(employee)
        computation = self.calculator.calculate(
            gross=gross,
            tax_total=aggregate_tax_total(gross, tax_rules),
            insurance_total=insurance_total,
            penalties_total=await self._penalties_total(employee.employee_id),
        )

        status = employee.employment_status
        signing_bonus = None
        if status in SIGNING_BONUS_STATUSES:
            signing_bonus = await self.linker.find_approved_signing_bonus(employee.employee_id)

        termination_benefit = None
        if status in TERMINATION_STATUSES:
            termination_benefit = await self.linker.find_approved_termination_benefit(
                employee.employee_id
            )

        return DraftEntry(
            employee_id=employee.employee_id,
            computation=computation,
            employment_event=employment_event_for(status),
            signing_bonus=signing_bonus,
            termination_benefit=termination_benefit,
        )

    async def _eligible_employees(self) -> list[Employee]:
        result = await self.session.execute(
            select(Employee)
            .where(Employee.employment_status.not_in(INELIGIBLE_STATUSES))
            .order_by(Employee.employee_number)
        )
        return list(result.scalars().all())

    async def _resolve_gross(self, employee: Employee) -> Decimal:
        """Gross salary of the employee's APPROVED pay grade, else 0."""
        if employee.pay_grade_id is None:
            return ZERO
        pay_grade = await self.session.get(PayGrade, employee.pay_grade_id)
        if pay_grade is None or not pay_grade.is_approved:
            return ZERO
        return pay_grade.gross_salary

    async def _penalties_total(self, employee_id: UUID) -> Decimal:
        result = await self.session.execute(
            select(func.coalesce(func.sum(EmployeePenalty.amount), 0)).where(
                EmployeePenalty.employee_id == employee_id
            )
        )
        return Decimal(str(result.scalar_one()))

    async def _run_id_exists(self, run_id: str) -> bool:
        result = await self.session.execute(
            select(func.count()).select_from(PayrollRun).where(PayrollRun.run_id == run_id)
        )
        return result.scalar_one() > 0

    async def _next_run_id(self, year: int) -> str:
        """Next ``<prefix>-<year>-<NNNN>`` id: highest sequence used that year plus one."""
        prefix = get_settings().run_id_prefix
        pattern = re.compile(rf"^{re.escape(prefix)}-{year}-(\d+)$")
        result = await self.session.execute(
            select(PayrollRun.run_id).where(PayrollRun.run_id.like(f"{prefix}-{year}-%"))
        )
        sequences = [
            int(match.group(1))
            for match in map(pattern.match, result.scalars().all())
            if match is not None
        ]
        return f"{prefix}-{year}-{max(sequences, default=0) + 1:04d}"
