"""Per-employee signing bonus and termination benefit links."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_governance.calculators import (
    TerminationBenefitCalculator,
    TerminationBreakdown,
    quantize,
)
from payroll_governance.collaborators import LeaveService, NullLeaveService
from payroll_governance.errors import (
    DuplicateError,
    InvalidStateTransition,
    NotFoundError,
    ValidationError,
)
from payroll_governance.models import (
    BenefitLinkMixin,
    Employee,
    EmployeeSigningBonus,
    EmployeeTerminationBenefit,
    PayGrade,
    SigningBonus,
    TerminationBenefit,
    utcnow,
)
from payroll_governance.schemas import BreakdownPayload, GivenAmount, validate_payload
from payroll_governance.services.policies import (
    LinkKind,
    LinkPolicy,
    SystemRole,
    get_link_policy,
    get_policy,
)
from payroll_governance.services.state_machine import (
    BenefitLinkStateMachine,
    BenefitStatus,
)

logger = logging.getLogger(__name__)

TERMINATION_TYPES = ("termination", "resignation")


class EmployeeBenefitLinker:
    """Links employees to approved benefit templates and reviews the links.

    A link's status is independent of its template: approving a template
    never approves a link, and a link is only counted by payroll once it
    is APPROVED itself.
    """

    def __init__(
        self,
        session: AsyncSession,
        leave_service: LeaveService | None = None,
    ):
        self.session = session
        self.leave_service = leave_service or NullLeaveService()
        self.termination_calculator = TerminationBenefitCalculator()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def link_signing_bonus(
        self,
        employee_id: UUID,
        signing_bonus_id: UUID,
        roles: Collection[SystemRole],
        given_amount: Decimal | None = None,
        created_by: UUID | None = None,
    ) -> EmployeeSigningBonus:
        """Create a PENDING signing bonus link for an employee."""
        policy = get_link_policy(LinkKind.SIGNING_BONUS)
        policy.require_creator(roles, "link")

        await self._get_employee(employee_id)
        await self._get_approved_template(policy, signing_bonus_id)
        amount = self._validate_amount(given_amount)

        existing = await self.session.execute(
            select(EmployeeSigningBonus.employee_signing_bonus_id).where(
                EmployeeSigningBonus.employee_id == employee_id,
                EmployeeSigningBonus.signing_bonus_id == signing_bonus_id,
            )
        )
        if existing.first() is not None:
            raise DuplicateError(
                f"Employee {employee_id} is already linked to signing bonus {signing_bonus_id}"
            )

        link = EmployeeSigningBonus(
            employee_id=employee_id,
            signing_bonus_id=signing_bonus_id,
            given_amount=amount,
            status=BenefitStatus.PENDING.value,
            created_by=created_by,
        )
        self.session.add(link)
        await self.session.flush()

        logger.info("Linked signing bonus %s to employee %s", signing_bonus_id, employee_id)
        return link

    async def link_termination_benefit(
        self,
        employee_id: UUID,
        benefit_id: UUID,
        termination_request_id: UUID,
        roles: Collection[SystemRole],
        termination_type: str = "termination",
        given_amount: Decimal | None = None,
        breakdown: TerminationBreakdown | dict[str, Any] | None = None,
        created_by: UUID | None = None,
    ) -> EmployeeTerminationBenefit:
        """Create a PENDING termination or resignation benefit link.

        When a breakdown is given its parts must sum to its total, and the
        total becomes the given amount unless one is passed explicitly (in
        which case the two must agree).
        """
        policy = get_link_policy(LinkKind.TERMINATION_BENEFIT)
        policy.require_creator(roles, "link")

        if termination_type not in TERMINATION_TYPES:
            raise ValidationError(
                f"Termination type must be one of {', '.join(TERMINATION_TYPES)}"
            )

        await self._get_employee(employee_id)
        await self._get_approved_template(policy, benefit_id)
        amount = self._validate_amount(given_amount)
        amount, parts = self._breakdown_fields(amount, breakdown)

        existing = await self.session.execute(
            select(EmployeeTerminationBenefit.employee_termination_benefit_id).where(
                EmployeeTerminationBenefit.termination_request_id == termination_request_id,
                EmployeeTerminationBenefit.termination_benefit_id == benefit_id,
            )
        )
        if existing.first() is not None:
            raise DuplicateError(
                f"Termination request {termination_request_id} already has benefit {benefit_id}"
            )

        link = EmployeeTerminationBenefit(
            employee_id=employee_id,
            termination_benefit_id=benefit_id,
            termination_request_id=termination_request_id,
            termination_type=termination_type,
            given_amount=amount,
            status=BenefitStatus.PENDING.value,
            created_by=created_by,
            **parts,
        )
        self.session.add(link)
        await self.session.flush()

        logger.info(
            "Linked %s benefit %s to employee %s", termination_type, benefit_id, employee_id
        )
        return link

    async def compute_termination_breakdown(
        self,
        employee_id: UUID,
        termination_type: str,
        end_date: date,
    ) -> TerminationBreakdown:
        """Compute severance, gratuity and leave encashment for an employee.

        Uses the base salary of the employee's APPROVED pay grade.
        """
        if termination_type not in TERMINATION_TYPES:
            raise ValidationError(
                f"Termination type must be one of {', '.join(TERMINATION_TYPES)}"
            )

        employee = await self._get_employee(employee_id)
        pay_grade = None
        if employee.pay_grade_id is not None:
            pay_grade = await self.session.get(PayGrade, employee.pay_grade_id)
        if pay_grade is None or not pay_grade.is_approved:
            raise ValidationError(f"Employee {employee_id} has no approved pay grade")

        calc = self.termination_calculator
        encashment = await self.leave_service.calculate_leave_encashment(
            employee_id, calc.daily_rate(pay_grade.base_salary)
        )
        return calc.calculate(
            base_salary=pay_grade.base_salary,
            hire_date=employee.hire_date,
            end_date=end_date,
            termination_type=termination_type,
            leave_encashment=encashment,
        )

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    async def approve_link(
        self,
        kind: LinkKind | str,
        link_id: UUID,
        roles: Collection[SystemRole],
        reviewer_id: UUID | None = None,
    ) -> BenefitLinkMixin:
        """Approve a PENDING link."""
        policy = get_link_policy(kind)
        policy.require_reviewer(roles, "approve")

        link = await self.get_link(policy.kind, link_id)
        BenefitLinkStateMachine.validate_transition(link.status, BenefitStatus.APPROVED)

        await self._conditional_update(
            link,
            BenefitStatus.APPROVED,
            status=BenefitStatus.APPROVED.value,
            reviewed_by=reviewer_id,
            reviewed_at=utcnow(),
        )
        logger.info("Approved %s %s", policy.label, link_id)
        return link

    async def reject_link(
        self,
        kind: LinkKind | str,
        link_id: UUID,
        roles: Collection[SystemRole],
        reason: str,
        reviewer_id: UUID | None = None,
    ) -> BenefitLinkMixin:
        """Reject a PENDING link with a reason."""
        policy = get_link_policy(kind)
        policy.require_reviewer(roles, "reject")
        if not reason or not reason.strip():
            raise ValidationError("Rejection reason is required")

        link = await self.get_link(policy.kind, link_id)
        BenefitLinkStateMachine.validate_transition(link.status, BenefitStatus.REJECTED)

        await self._conditional_update(
            link,
            BenefitStatus.REJECTED,
            status=BenefitStatus.REJECTED.value,
            rejection_reason=reason.strip(),
            reviewed_by=reviewer_id,
            reviewed_at=utcnow(),
        )
        logger.info("Rejected %s %s: %s", policy.label, link_id, reason)
        return link

    async def edit_link_amount(
        self,
        kind: LinkKind | str,
        link_id: UUID,
        roles: Collection[SystemRole],
        given_amount: Decimal | None,
        breakdown: TerminationBreakdown | dict[str, Any] | None = None,
    ) -> BenefitLinkMixin:
        """Change a link's given amount.

        Allowed while PENDING or REJECTED; a REJECTED link goes back to
        PENDING with its review cleared. A termination link that records a
        breakdown needs a replacement breakdown whose total matches the new
        amount.
        """
        policy = get_link_policy(kind)
        policy.require_creator(roles, "edit")

        link = await self.get_link(policy.kind, link_id)
        if not BenefitLinkStateMachine.can_edit_amount(link.status):
            raise InvalidStateTransition(
                link.status,
                BenefitStatus.PENDING,
                f"Amount cannot be edited in {link.status} status",
            )

        amount = self._validate_amount(given_amount)
        parts: dict[str, Any] = {}
        if isinstance(link, EmployeeTerminationBenefit):
            if link.has_breakdown and breakdown is None:
                raise ValidationError(
                    f"{policy.label} {link_id} records a breakdown; "
                    "pass a new breakdown with the amount"
                )
            amount, parts = self._breakdown_fields(amount, breakdown)
        elif breakdown is not None:
            raise ValidationError(f"{policy.label} does not take a breakdown")

        await self._conditional_update(
            link,
            BenefitStatus.PENDING,
            **parts,
            given_amount=amount,
            status=BenefitStatus.PENDING.value,
            rejection_reason=None,
            reviewed_by=None,
            reviewed_at=None,
        )
        logger.info("Edited amount of %s %s to %s", policy.label, link_id, amount)
        return link

    async def mark_paid(self, kind: LinkKind | str, employee_ids: Iterable[UUID]) -> int:
        """Mark the APPROVED links of the given employees as PAID.

        Returns the number of links updated.
        """
        policy = get_link_policy(kind)
        ids = list(employee_ids)
        if not ids:
            return 0

        model = policy.model
        result = await self.session.execute(
            update(model)
            .where(
                model.employee_id.in_(ids),
                model.status == BenefitStatus.APPROVED.value,
            )
            .values(status=BenefitStatus.PAID.value, paid_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        logger.info("Marked %d %s link(s) as paid", result.rowcount, policy.label)
        return result.rowcount

    async def delete_link(
        self,
        kind: LinkKind | str,
        link_id: UUID,
        roles: Collection[SystemRole],
    ) -> None:
        """Delete a PENDING or REJECTED link."""
        policy = get_link_policy(kind)
        policy.require_creator(roles, "delete")

        link = await self.get_link(policy.kind, link_id)
        status = link.status
        if not BenefitLinkStateMachine.can_delete(status):
            raise InvalidStateTransition(
                status, "deleted", f"{policy.label} cannot be deleted in {status} status"
            )

        model = policy.model
        result = await self.session.execute(
            delete(model)
            .where(model.id_column() == link_id, model.status == status)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InvalidStateTransition(status, "deleted", "Status changed during delete")

        self.session.expunge(link)
        logger.info("Deleted %s %s", policy.label, link_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_link(self, kind: LinkKind | str, link_id: UUID) -> BenefitLinkMixin:
        """Load one link or raise NotFoundError."""
        policy = get_link_policy(kind)
        link = await self.session.get(policy.model, link_id)
        if link is None:
            raise NotFoundError(policy.label, link_id)
        return link

    async def list_links(
        self,
        kind: LinkKind | str,
        employee_id: UUID | None = None,
        status: BenefitStatus | str | None = None,
    ) -> list[BenefitLinkMixin]:
        """List links, newest first."""
        policy = get_link_policy(kind)
        model = policy.model
        query = select(model)
        if employee_id is not None:
            query = query.where(model.employee_id == employee_id)
        if status is not None:
            query = query.where(model.status == BenefitStatus(status).value)
        query = query.order_by(model.created_at.desc(), model.id_column().desc())

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def find_approved_signing_bonus(self, employee_id: UUID) -> Decimal | None:
        """Amount of the employee's approved signing bonus, or None."""
        return await self._find_approved_amount(LinkKind.SIGNING_BONUS, employee_id)

    async def find_approved_termination_benefit(self, employee_id: UUID) -> Decimal | None:
        """Amount of the employee's approved termination benefit, or None."""
        return await self._find_approved_amount(LinkKind.TERMINATION_BENEFIT, employee_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _find_approved_amount(self, kind: LinkKind, employee_id: UUID) -> Decimal | None:
        """Resolve the most recent APPROVED link's amount.

        The link's given amount wins; otherwise the template's current
        amount is used.
        """
        policy = get_link_policy(kind)
        model = policy.model
        result = await self.session.execute(
            select(model)
            .where(
                model.employee_id == employee_id,
                model.status == BenefitStatus.APPROVED.value,
            )
            .order_by(model.reviewed_at.desc(), model.created_at.desc())
            .limit(1)
        )
        link = result.scalar_one_or_none()
        if link is None:
            return None

        if link.given_amount is not None:
            return quantize(link.given_amount)

        template_model = SigningBonus if kind == LinkKind.SIGNING_BONUS else TerminationBenefit
        template = await self.session.get(template_model, link.template_id)
        if template is None:
            raise NotFoundError(get_policy(policy.template_kind).label, link.template_id)
        return quantize(template.amount)

    async def _get_employee(self, employee_id: UUID) -> Employee:
        employee = await self.session.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("employee", employee_id)
        return employee

    async def _get_approved_template(self, policy: LinkPolicy, template_id: UUID) -> Any:
        template_policy = get_policy(policy.template_kind)
        template = await self.session.get(template_policy.model, template_id)
        if template is None:
            raise NotFoundError(template_policy.label, template_id)
        if not template.is_approved:
            raise ValidationError(
                f"{template_policy.label} {template_id} is not approved "
                f"(status: {template.status})"
            )
        return template

    def _validate_amount(self, given_amount: Decimal | None) -> Decimal | None:
        return validate_payload(GivenAmount, {"given_amount": given_amount})["given_amount"]

    def _breakdown_fields(
        self,
        amount: Decimal | None,
        breakdown: TerminationBreakdown | dict[str, Any] | None,
    ) -> tuple[Decimal | None, dict[str, Any]]:
        """Validate a breakdown and reconcile it with the given amount.

        The breakdown total stands in for a missing amount; otherwise the two
        must agree.
        """
        if breakdown is None:
            return amount, {}
        raw = breakdown.to_dict() if isinstance(breakdown, TerminationBreakdown) else breakdown
        parts = validate_payload(BreakdownPayload, raw)
        if amount is None:
            return parts["total_amount"], parts
        if amount != parts["total_amount"]:
            raise ValidationError(
                f"Given amount {amount} does not match breakdown total {parts['total_amount']}"
            )
        return amount, parts

    async def _conditional_update(
        self,
        link: BenefitLinkMixin,
        to_status: BenefitStatus,
        **values: Any,
    ) -> None:
        """Apply ``values`` only if the link still has the status we read."""
        model = type(link)
        from_status = link.status
        result = await self.session.execute(
            update(model)
            .where(model.id_column() == link.link_id, model.status == from_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.refresh(link)
            raise InvalidStateTransition(
                link.status, to_status, f"Status changed concurrently (was {from_status})"
            )
        await self.session.refresh(link)
