"""Pytest fixtures for payroll governance tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, AsyncGenerator
from uuid import UUID, uuid4

import pytest
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from payroll_governance.models import (
    ApprovalMixin,
    Base,
    Employee,
    EmployeePenalty,
    EmploymentStatus,
)
from payroll_governance.services import (
    ApprovalWorkflow,
    ConfigKind,
    ConfigurationStore,
    SystemRole,
    get_policy,
)

# In-memory SQLite shared by every connection of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

SPECIALIST = {SystemRole.PAYROLL_SPECIALIST}
MANAGER = {SystemRole.PAYROLL_MANAGER}
HR_MANAGER = {SystemRole.HR_MANAGER}
HR_ADMIN = {SystemRole.HR_ADMIN}
SYSTEM_ADMIN = {SystemRole.SYSTEM_ADMIN}
LEGAL_ADMIN = {SystemRole.LEGAL_POLICY_ADMIN}

SAMPLE_PAYLOADS: dict[ConfigKind, dict[str, Any]] = {
    ConfigKind.PAY_GRADE: {
        "grade": "Senior Engineer",
        "base_salary": Decimal("8000"),
        "gross_salary": Decimal("10000"),
    },
    ConfigKind.ALLOWANCE: {"name": "Housing", "amount": Decimal("1500")},
    ConfigKind.TAX_RULE: {"name": "Income Tax", "description": "Flat", "rate": Decimal("15")},
    ConfigKind.INSURANCE_BRACKET: {
        "name": "Social Insurance",
        "min_salary": Decimal("6000"),
        "max_salary": Decimal("50000"),
        "employee_rate": Decimal("11"),
        "employer_rate": Decimal("18.75"),
        "amount": Decimal("200"),
    },
    ConfigKind.PAYROLL_POLICY: {
        "policy_name": "Late Arrival",
        "policy_type": "misconduct",
        "description": "Deduction for repeated late arrival",
        "effective_date": date(2026, 1, 1),
        "rule_percentage": Decimal("5"),
        "rule_fixed_amount": Decimal("100"),
        "rule_threshold_amount": Decimal("1"),
        "applicability": "all_employees",
    },
    ConfigKind.SIGNING_BONUS: {"position_name": "Software Engineer", "amount": Decimal("5000")},
    ConfigKind.PAY_TYPE: {"type": "monthly", "amount": Decimal("6000")},
    ConfigKind.TERMINATION_BENEFIT: {
        "name": "End of Service Gratuity",
        "amount": Decimal("20000"),
        "terms": "Paid on final settlement",
    },
    ConfigKind.COMPANY_SETTINGS: {
        "pay_date": date(2026, 1, 28),
        "time_zone": "Africa/Cairo",
        "currency": "EGP",
    },
}


def approver_roles(kind: ConfigKind) -> set[SystemRole]:
    """Roles able to approve ``kind``."""
    return set(get_policy(kind).approver_roles)


async def remove_unchecked(session: AsyncSession, item: Any) -> None:
    """Delete a configuration row directly, bypassing the workflow's checks.

    SQLite does not enforce foreign keys here, so rows that reference the
    item are left dangling.
    """
    model = type(item)
    await session.execute(
        delete(model)
        .where(model.id_column() == item.item_id)
        .execution_options(synchronize_session=False)
    )
    session.expunge(item)


@pytest.fixture
async def engine():
    """Create test database engine with a fresh schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store(session: AsyncSession) -> ConfigurationStore:
    return ConfigurationStore(session)


@pytest.fixture
def workflow(session: AsyncSession) -> ApprovalWorkflow:
    return ApprovalWorkflow(session)


@pytest.fixture
def actor_id() -> UUID:
    return uuid4()


@pytest.fixture
def make_item(store: ConfigurationStore):
    """Factory creating a DRAFT configuration item with sample payload overrides."""

    async def _make(kind: ConfigKind, **overrides: Any) -> ApprovalMixin:
        payload = {**SAMPLE_PAYLOADS[kind], **overrides}
        return await store.create(kind, payload, SPECIALIST)

    return _make


@pytest.fixture
def make_approved(make_item, workflow: ApprovalWorkflow, actor_id: UUID):
    """Factory creating an item and driving it through submit and approve."""

    async def _make(kind: ConfigKind, **overrides: Any) -> ApprovalMixin:
        item = await make_item(kind, **overrides)
        await workflow.submit(kind, item.item_id, SPECIALIST)
        return await workflow.approve(kind, item.item_id, approver_roles(kind), actor_id)

    return _make


@pytest.fixture
def make_employee(session: AsyncSession):
    """Factory creating an employee."""
    counter = {"n": 0}

    async def _make(
        status: EmploymentStatus = EmploymentStatus.ACTIVE,
        pay_grade_id: UUID | None = None,
        hire_date: date | None = date(2020, 1, 1),
    ) -> Employee:
        counter["n"] += 1
        employee = Employee(
            employee_id=uuid4(),
            employee_number=f"EMP-{counter['n']:04d}",
            first_name="Test",
            last_name=f"Employee {counter['n']}",
            employment_status=status.value,
            pay_grade_id=pay_grade_id,
            hire_date=hire_date,
        )
        session.add(employee)
        await session.flush()
        return employee

    return _make


@pytest.fixture
def add_penalty(session: AsyncSession):
    """Factory recording a penalty for an employee."""

    async def _add(employee_id: UUID, amount: Decimal, reason: str = "Late") -> EmployeePenalty:
        penalty = EmployeePenalty(employee_id=employee_id, amount=amount, reason=reason)
        session.add(penalty)
        await session.flush()
        return penalty

    return _add
