"""Tests for per-employee benefit links."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from payroll_governance.collaborators import LeaveService, NullLeaveService
from payroll_governance.errors import (
    DuplicateError,
    InvalidStateTransition,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from payroll_governance.models import EmploymentStatus
from payroll_governance.services import ConfigKind, EmployeeBenefitLinker, LinkKind
from tests.conftest import HR_ADMIN, MANAGER, SPECIALIST, remove_unchecked


class FixedLeaveService:
    """Leave service returning a fixed number of encashable days."""

    def __init__(self, days: int):
        self.days = days
        self.calls = []

    async def get_unpaid_leave_days(self, employee_id, period):
        return 0

    async def calculate_leave_encashment(self, employee_id, daily_rate):
        self.calls.append((employee_id, daily_rate))
        return daily_rate * self.days


@pytest.fixture
def linker(session) -> EmployeeBenefitLinker:
    return EmployeeBenefitLinker(session)


@pytest.fixture
async def bonus(make_approved):
    return await make_approved(ConfigKind.SIGNING_BONUS)


@pytest.fixture
async def benefit(make_approved):
    return await make_approved(ConfigKind.TERMINATION_BENEFIT)


class TestLinkSigningBonus:
    """Test signing bonus link creation."""

    async def test_link_is_pending(self, linker, make_employee, bonus):
        employee = await make_employee(EmploymentStatus.PROBATION)

        link = await linker.link_signing_bonus(employee.employee_id, bonus.item_id, HR_ADMIN)

        assert link.status == "pending"
        assert link.given_amount is None
        assert link.template_id == bonus.item_id

    async def test_requires_creator_role(self, linker, make_employee, bonus):
        employee = await make_employee()

        with pytest.raises(PermissionDenied):
            await linker.link_signing_bonus(employee.employee_id, bonus.item_id, MANAGER)

    async def test_template_must_be_approved(self, linker, make_employee, make_item):
        employee = await make_employee()
        draft = await make_item(ConfigKind.SIGNING_BONUS)

        with pytest.raises(ValidationError):
            await linker.link_signing_bonus(employee.employee_id, draft.item_id, SPECIALIST)

    async def test_missing_employee_and_template(self, linker, make_employee, bonus):
        employee = await make_employee()

        with pytest.raises(NotFoundError):
            await linker.link_signing_bonus(uuid4(), bonus.item_id, SPECIALIST)
        with pytest.raises(NotFoundError):
            await linker.link_signing_bonus(employee.employee_id, uuid4(), SPECIALIST)

    async def test_duplicate_link(self, linker, make_employee, bonus):
        employee = await make_employee()
        await linker.link_signing_bonus(employee.employee_id, bonus.item_id, SPECIALIST)

        with pytest.raises(DuplicateError):
            await linker.link_signing_bonus(employee.employee_id, bonus.item_id, SPECIALIST)

    async def test_negative_amount_rejected(self, linker, make_employee, bonus):
        employee = await make_employee()

        with pytest.raises(ValidationError):
            await linker.link_signing_bonus(
                employee.employee_id, bonus.item_id, SPECIALIST, given_amount=Decimal("-1")
            )


class TestReview:
    """Test link approval, rejection, edits and deletion."""

    async def test_template_approval_does_not_approve_link(self, linker, make_employee, bonus):
        employee = await make_employee(EmploymentStatus.PROBATION)
        await linker.link_signing_bonus(employee.employee_id, bonus.item_id, SPECIALIST)

        assert await linker.find_approved_signing_bonus(employee.employee_id) is None

    async def test_approve_link(self, linker, make_employee, bonus, actor_id):
        employee = await make_employee(EmploymentStatus.PROBATION)
        link = await linker.link_signing_bonus(employee.employee_id, bonus.item_id, SPECIALIST)

        approved = await linker.approve_link(LinkKind.SIGNING_BONUS, link.link_id, MANAGER, actor_id)

        assert approved.status == "approved"
        assert approved.reviewed_by == actor_id
        assert await linker.find_approved_signing_bonus(employee.employee_id) == Decimal("5000.00")

    async def test_hr_admin_cannot_review(self, linker, make_employee, bonus):
        employee = await make_employee()
        link = await linker.link_signing_bonus(employee.employee_id, bonus.item_id, HR_ADMIN)

        with pytest.raises(PermissionDenied):
            await linker.approve_link(LinkKind.SIGNING_BONUS, link.link_id, HR_ADMIN)

    async def test_approve_twice_fails(self, linker, make_employee, bonus):
        employee = await make_employee()
        link = await linker.link_signing_bonus(employee.employee_id, bonus.item_id, SPECIALIST)
        await linker.approve_link(LinkKind.SIGNING_BONUS, link.link_id, MANAGER)

        with pytest.raises(InvalidStateTransition):
            await linker.approve_link(LinkKind.SIGNING_BONUS, link.link_id, MANAGER)

    async def test_reject_then_edit_returns_to_pending(self, linker, make_employee, bonus):
        employee = await make_employee()
        link = await linker.link_signing_bonus(employee.employee_id, bonus.item_id, SPECIALIST)

        with pytest.raises(ValidationError):
            await linker.reject_link(LinkKind.SIGNING_BONUS, link.link_id, MANAGER, "")

        rejected = await linker.reject_link(
            LinkKind.SIGNING_BONUS, link.link_id, MANAGER, "Not eligible"
        )
        assert rejected.status == "rejected"
        assert rejected.rejection_reason == "Not eligible"

        edited = await linker.edit_link_amount(
            LinkKind.SIGNING_BONUS, link.link_id, SPECIALIST, Decimal("2500")
        )
        assert edited.status == "pending"
        assert edited.given_amount == Decimal("2500")
        assert edited.rejection_reason is None

    async def test_approved_amount_is_frozen(self, linker, make_employee, bonus):
        employee = await make_employee()
        link = await linker.link_signing_bonus(employee.employee_id, bonus.item_id, SPECIALIST)
        await linker.approve_link(LinkKind.SIGNING_BONUS, link.link_id, MANAGER)

        with pytest.raises(InvalidStateTransition):
            await linker.edit_link_amount(
                LinkKind.SIGNING_BONUS, link.link_id, SPECIALIST, Decimal("1")
            )

    async def test_delete_only_pending_or_rejected(self, linker, make_employee, bonus):
        employee = await make_employee()
        link = await linker.link_signing_bonus(employee.employee_id, bonus.item_id, SPECIALIST)
        await linker.approve_link(LinkKind.SIGNING_BONUS, link.link_id, MANAGER)

        with pytest.raises(InvalidStateTransition):
            await linker.delete_link(LinkKind.SIGNING_BONUS, link.link_id, SPECIALIST)

        other = await make_employee()
        pending = await linker.link_signing_bonus(other.employee_id, bonus.item_id, SPECIALIST)
        await linker.delete_link(LinkKind.SIGNING_BONUS, pending.link_id, SPECIALIST)

        with pytest.raises(NotFoundError):
            await linker.get_link(LinkKind.SIGNING_BONUS, pending.link_id)

    async def test_mark_paid(self, linker, make_employee, bonus):
        paid_employee = await make_employee()
        pending_employee = await make_employee()
        link = await linker.link_signing_bonus(
            paid_employee.employee_id, bonus.item_id, SPECIALIST
        )
        await linker.link_signing_bonus(pending_employee.employee_id, bonus.item_id, SPECIALIST)
        await linker.approve_link(LinkKind.SIGNING_BONUS, link.link_id, MANAGER)

        count = await linker.mark_paid(
            LinkKind.SIGNING_BONUS, [paid_employee.employee_id, pending_employee.employee_id]
        )

        assert count == 1
        links = await linker.list_links(LinkKind.SIGNING_BONUS, status="paid")
        assert [row.employee_id for row in links] == [paid_employee.employee_id]
        # Paid links are no longer resolved as approved
        assert await linker.find_approved_signing_bonus(paid_employee.employee_id) is None


class TestAmountResolution:
    """Test given-amount overrides and template fallback."""

    async def test_given_amount_overrides_template(self, linker, make_employee, bonus):
        employee = await make_employee()
        link = await linker.link_signing_bonus(
            employee.employee_id, bonus.item_id, SPECIALIST, given_amount=Decimal("7500")
        )
        await linker.approve_link(LinkKind.SIGNING_BONUS, link.link_id, MANAGER)

        assert await linker.find_approved_signing_bonus(employee.employee_id) == Decimal("7500.00")

    async def test_dangling_template_raises(self, session, linker, make_employee, benefit):
        employee = await make_employee(EmploymentStatus.TERMINATED)
        link = await linker.link_termination_benefit(
            employee.employee_id, benefit.item_id, uuid4(), SPECIALIST
        )
        await linker.approve_link(LinkKind.TERMINATION_BENEFIT, link.link_id, MANAGER)
        await remove_unchecked(session, benefit)

        with pytest.raises(NotFoundError):
            await linker.find_approved_termination_benefit(employee.employee_id)


class TestTerminationBenefit:
    """Test termination benefit links and breakdowns."""

    async def test_breakdown_must_sum(self, linker, make_employee, benefit):
        employee = await make_employee(EmploymentStatus.TERMINATED)

        with pytest.raises(ValidationError):
            await linker.link_termination_benefit(
                employee.employee_id,
                benefit.item_id,
                uuid4(),
                SPECIALIST,
                breakdown={
                    "leave_encashment": Decimal("100"),
                    "severance_pay": Decimal("200"),
                    "end_of_service_gratuity": Decimal("300"),
                    "total_amount": Decimal("700"),
                },
            )

    async def test_breakdown_total_becomes_given_amount(self, linker, make_employee, benefit):
        employee = await make_employee(EmploymentStatus.RETIRED)
        link = await linker.link_termination_benefit(
            employee.employee_id,
            benefit.item_id,
            uuid4(),
            SPECIALIST,
            breakdown={
                "leave_encashment": Decimal("100"),
                "severance_pay": Decimal("200"),
                "end_of_service_gratuity": Decimal("300"),
                "total_amount": Decimal("600"),
            },
        )
        await linker.approve_link(LinkKind.TERMINATION_BENEFIT, link.link_id, MANAGER)

        assert link.has_breakdown
        assert await linker.find_approved_termination_benefit(
            employee.employee_id
        ) == Decimal("600.00")

    async def test_amount_edit_needs_matching_breakdown(self, linker, make_employee, benefit):
        employee = await make_employee(EmploymentStatus.TERMINATED)
        link = await linker.link_termination_benefit(
            employee.employee_id,
            benefit.item_id,
            uuid4(),
            SPECIALIST,
            breakdown={
                "leave_encashment": Decimal("100"),
                "severance_pay": Decimal("200"),
                "end_of_service_gratuity": Decimal("300"),
                "total_amount": Decimal("600"),
            },
        )
        kind = LinkKind.TERMINATION_BENEFIT

        with pytest.raises(ValidationError):
            await linker.edit_link_amount(kind, link.link_id, SPECIALIST, Decimal("900"))

        new_breakdown = {
            "leave_encashment": Decimal("100"),
            "severance_pay": Decimal("500"),
            "end_of_service_gratuity": Decimal("300"),
            "total_amount": Decimal("900"),
        }
        with pytest.raises(ValidationError):
            await linker.edit_link_amount(
                kind, link.link_id, SPECIALIST, Decimal("800"), breakdown=new_breakdown
            )

        edited = await linker.edit_link_amount(
            kind, link.link_id, SPECIALIST, Decimal("900"), breakdown=new_breakdown
        )

        assert edited.given_amount == Decimal("900.00")
        assert edited.severance_pay == Decimal("500.00")
        assert edited.total_amount == Decimal("900.00")

    async def test_amount_edit_without_breakdown(self, linker, make_employee, benefit):
        employee = await make_employee(EmploymentStatus.TERMINATED)
        link = await linker.link_termination_benefit(
            employee.employee_id, benefit.item_id, uuid4(), SPECIALIST
        )

        edited = await linker.edit_link_amount(
            LinkKind.TERMINATION_BENEFIT, link.link_id, SPECIALIST, Decimal("1200")
        )

        assert edited.given_amount == Decimal("1200.00")
        assert not edited.has_breakdown

    async def test_signing_bonus_edit_rejects_breakdown(self, linker, make_employee, bonus):
        employee = await make_employee()
        link = await linker.link_signing_bonus(employee.employee_id, bonus.item_id, SPECIALIST)

        with pytest.raises(ValidationError):
            await linker.edit_link_amount(
                LinkKind.SIGNING_BONUS,
                link.link_id,
                SPECIALIST,
                Decimal("100"),
                breakdown={"total_amount": Decimal("100")},
            )

    async def test_invalid_termination_type(self, linker, make_employee, benefit):
        employee = await make_employee()

        with pytest.raises(ValidationError):
            await linker.link_termination_benefit(
                employee.employee_id,
                benefit.item_id,
                uuid4(),
                SPECIALIST,
                termination_type="dismissal",
            )

    async def test_duplicate_request_and_benefit(self, linker, make_employee, benefit):
        employee = await make_employee()
        request_id = uuid4()
        await linker.link_termination_benefit(
            employee.employee_id, benefit.item_id, request_id, SPECIALIST
        )

        with pytest.raises(DuplicateError):
            await linker.link_termination_benefit(
                employee.employee_id, benefit.item_id, request_id, SPECIALIST
            )

    async def test_compute_breakdown(self, session, make_approved, make_employee, benefit):
        grade = await make_approved(
            ConfigKind.PAY_GRADE, base_salary=Decimal("9000"), gross_salary=Decimal("12000")
        )
        employee = await make_employee(
            EmploymentStatus.TERMINATED, pay_grade_id=grade.item_id, hire_date=date(2019, 1, 1)
        )
        leave = FixedLeaveService(days=4)
        linker = EmployeeBenefitLinker(session, leave)

        breakdown = await linker.compute_termination_breakdown(
            employee.employee_id, "resignation", date(2026, 1, 1)
        )

        assert leave.calls == [(employee.employee_id, Decimal("300"))]
        assert breakdown.leave_encashment == Decimal("1200.00")
        assert breakdown.severance_pay == Decimal("31500.00")
        assert breakdown.end_of_service_gratuity == Decimal("49500.00")

        link = await linker.link_termination_benefit(
            employee.employee_id,
            benefit.item_id,
            uuid4(),
            SPECIALIST,
            termination_type="resignation",
            breakdown=breakdown,
        )
        assert link.total_amount == breakdown.total_amount

    async def test_compute_breakdown_needs_approved_grade(self, linker, make_item, make_employee):
        grade = await make_item(ConfigKind.PAY_GRADE)
        employee = await make_employee(EmploymentStatus.TERMINATED, pay_grade_id=grade.item_id)

        with pytest.raises(ValidationError):
            await linker.compute_termination_breakdown(
                employee.employee_id, "termination", date(2026, 1, 1)
            )

    async def test_default_leave_service_encashes_nothing(
        self, linker, make_approved, make_employee
    ):
        grade = await make_approved(ConfigKind.PAY_GRADE)
        employee = await make_employee(EmploymentStatus.TERMINATED, pay_grade_id=grade.item_id)

        breakdown = await linker.compute_termination_breakdown(
            employee.employee_id, "termination", date(2026, 1, 1)
        )

        assert isinstance(linker.leave_service, NullLeaveService)
        assert isinstance(FixedLeaveService(days=1), LeaveService)
        assert breakdown.leave_encashment == Decimal("0.00")
