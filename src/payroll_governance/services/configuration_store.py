"""Configuration store: creation, lookup and listing of configuration items."""

from __future__ import annotations

import logging
from collections.abc import Collection
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_governance.errors import DuplicateError, NotFoundError, ValidationError
from payroll_governance.models import ApprovalMixin, CompanySettings
from payroll_governance.schemas import UNIQUE_FIELDS, validate_config_payload
from payroll_governance.services.policies import ConfigKind, SystemRole, get_policy
from payroll_governance.services.state_machine import ConfigStatus

logger = logging.getLogger(__name__)

# Column used by the amount range filters of ``list``
AMOUNT_FIELDS: dict[ConfigKind, str | None] = {
    ConfigKind.PAY_GRADE: "gross_salary",
    ConfigKind.ALLOWANCE: "amount",
    ConfigKind.TAX_RULE: "rate",
    ConfigKind.INSURANCE_BRACKET: "amount",
    ConfigKind.PAYROLL_POLICY: "rule_fixed_amount",
    ConfigKind.SIGNING_BONUS: "amount",
    ConfigKind.PAY_TYPE: "amount",
    ConfigKind.TERMINATION_BENEFIT: "amount",
    ConfigKind.COMPANY_SETTINGS: None,
}


class ConfigurationStore:
    """Persistence boundary for the nine configuration kinds.

    Items are always created in DRAFT; status changes go through
    :class:`~payroll_governance.services.approval_workflow.ApprovalWorkflow`.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        kind: ConfigKind | str,
        payload: dict[str, Any],
        roles: Collection[SystemRole],
        created_by: UUID | None = None,
    ) -> ApprovalMixin:
        """Validate and store a new DRAFT item.

        Raises:
            PermissionDenied: roles lack the specialist capability.
            ValidationError: payload is malformed.
            DuplicateError: the kind's unique field is already taken.
        """
        policy = get_policy(kind)
        policy.require_specialist(roles, "create")

        fields = validate_config_payload(policy.kind.value, payload)
        await self.ensure_unique(policy.kind, fields)

        item = policy.model(**fields, status=ConfigStatus.DRAFT.value, created_by=created_by)
        self.session.add(item)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise DuplicateError(f"{policy.label} violates a uniqueness rule") from e

        logger.info("Created %s %s", policy.kind.value, item.item_id)
        return item

    async def get(self, kind: ConfigKind | str, item_id: UUID) -> ApprovalMixin:
        """Load one item or raise NotFoundError."""
        policy = get_policy(kind)
        item = await self.session.get(policy.model, item_id)
        if item is None:
            raise NotFoundError(policy.label, item_id)
        return item

    async def list(
        self,
        kind: ConfigKind | str,
        status: ConfigStatus | str | None = None,
        name: str | None = None,
        min_amount: Decimal | None = None,
        max_amount: Decimal | None = None,
    ) -> list[ApprovalMixin]:
        """List items of a kind, newest first.

        Args:
            kind: Configuration kind.
            status: Only items in this status.
            name: Case-insensitive partial match on the kind's unique field.
            min_amount: Lower bound on the kind's amount column.
            max_amount: Upper bound on the kind's amount column.
        """
        policy = get_policy(kind)
        model = policy.model
        query = select(model)

        if status is not None:
            query = query.where(model.status == ConfigStatus(status).value)

        if name:
            name_field = UNIQUE_FIELDS[policy.kind.value]
            if name_field is None:
                raise ValidationError(f"{policy.label} cannot be filtered by name")
            query = query.where(getattr(model, name_field).ilike(f"%{name}%"))

        if min_amount is not None or max_amount is not None:
            amount_field = AMOUNT_FIELDS[policy.kind]
            if amount_field is None:
                raise ValidationError(f"{policy.label} cannot be filtered by amount")
            column = getattr(model, amount_field)
            if min_amount is not None:
                query = query.where(column >= min_amount)
            if max_amount is not None:
                query = query.where(column <= max_amount)

        query = query.order_by(model.created_at.desc(), model.id_column().desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_approved(self, kind: ConfigKind | str) -> list[ApprovalMixin]:
        """All APPROVED items of a kind; the only view payroll computation uses."""
        return await self.list(kind, status=ConfigStatus.APPROVED)

    async def get_active_company_settings(self) -> CompanySettings | None:
        """The most recently approved company settings, if any."""
        result = await self.session.execute(
            select(CompanySettings)
            .where(CompanySettings.status == ConfigStatus.APPROVED.value)
            .order_by(
                CompanySettings.approved_at.desc(),
                CompanySettings.created_at.desc(),
                CompanySettings.company_settings_id.desc(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def pending_approvals(self) -> dict[str, Any]:
        """Dashboard of DRAFT items per kind.

        Returns a dict with ``total_pending`` and, per kind, the DRAFT
        ``count``, how many of those are ``submitted`` and the ``items``.
        """
        kinds: dict[str, Any] = {}
        total = 0
        for kind in ConfigKind:
            items = await self.list(kind, status=ConfigStatus.DRAFT)
            submitted = sum(1 for item in items if item.is_submitted)
            kinds[kind.value] = {
                "count": len(items),
                "submitted": submitted,
                "items": items,
            }
            total += len(items)
        return {"total_pending": total, "kinds": kinds}

    async def approved_configuration(self) -> dict[str, list[ApprovalMixin]]:
        """Every APPROVED item, keyed by kind."""
        return {kind.value: await self.list_approved(kind) for kind in ConfigKind}

    async def ensure_unique(
        self,
        kind: ConfigKind | str,
        fields: dict[str, Any],
        exclude_id: UUID | None = None,
    ) -> None:
        """Raise DuplicateError if another item already uses the unique value."""
        policy = get_policy(kind)
        name_field = UNIQUE_FIELDS[policy.kind.value]
        if name_field is None or fields.get(name_field) is None:
            return

        model = policy.model
        query = select(func.count()).select_from(model).where(
            getattr(model, name_field) == fields[name_field]
        )
        if exclude_id is not None:
            query = query.where(model.id_column() != exclude_id)

        count = (await self.session.execute(query)).scalar_one()
        if count:
            raise DuplicateError(
                f"{policy.label} with {name_field} '{fields[name_field]}' already exists"
            )
