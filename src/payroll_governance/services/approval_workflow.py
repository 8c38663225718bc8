"""Approval workflow shared by every configuration kind.

Each transition is checked against :class:`ConfigStateMachine` and then
applied with a conditional UPDATE on the expected status, so a concurrent
transition on the same item fails with InvalidStateTransition instead of
being applied twice.
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_governance.errors import InvalidStateTransition, ValidationError
from payroll_governance.models import ApprovalMixin, utcnow
from payroll_governance.schemas import PAYLOADS, validate_config_payload
from payroll_governance.services.configuration_store import ConfigurationStore
from payroll_governance.services.policies import (
    LINK_POLICIES,
    ConfigKind,
    EntityPolicy,
    SystemRole,
    get_policy,
)
from payroll_governance.services.state_machine import ConfigStateMachine, ConfigStatus

logger = logging.getLogger(__name__)


class ApprovalWorkflow:
    """Submit, approve, reject, edit and delete configuration items.

    Operations:
    - submit: mark a DRAFT as awaiting review
    - approve / reject: review a submitted DRAFT
    - update_draft: edit a DRAFT in place (clears the submission)
    - edit_after_rejection: edit a REJECTED item back into DRAFT
    - delete: remove a DRAFT, or an APPROVED item of a privileged-delete kind

    Roles are passed explicitly to every operation.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.store = ConfigurationStore(session)

    async def submit(
        self,
        kind: ConfigKind | str,
        item_id: UUID,
        roles: Collection[SystemRole],
        submitted_by: UUID | None = None,
    ) -> ApprovalMixin:
        """Mark a DRAFT item as awaiting review."""
        policy = get_policy(kind)
        policy.require_specialist(roles, "submit")

        item = await self.store.get(policy.kind, item_id)
        ConfigStateMachine.validate_submit(item)

        model = policy.model
        await self._conditional_update(
            item,
            "submitted",
            [model.status == ConfigStatus.DRAFT.value, model.submitted_at.is_(None)],
            submitted_at=utcnow(),
            submitted_by=submitted_by,
        )
        logger.info("Submitted %s %s for review", policy.kind.value, item_id)
        return item

    async def approve(
        self,
        kind: ConfigKind | str,
        item_id: UUID,
        roles: Collection[SystemRole],
        approver_id: UUID,
    ) -> ApprovalMixin:
        """Approve a submitted DRAFT item.

        For company settings the newly approved row becomes the active one;
        earlier approved rows are left untouched.
        """
        policy = get_policy(kind)
        policy.require_approver(roles, "approve")

        item = await self.store.get(policy.kind, item_id)
        ConfigStateMachine.validate_item_for_transition(item, ConfigStatus.APPROVED)

        await self._conditional_update(
            item,
            ConfigStatus.APPROVED.value,
            self._review_preconditions(policy),
            status=ConfigStatus.APPROVED.value,
            approved_by=approver_id,
            approved_at=utcnow(),
        )
        logger.info("Approved %s %s by %s", policy.kind.value, item_id, approver_id)
        return item

    async def reject(
        self,
        kind: ConfigKind | str,
        item_id: UUID,
        roles: Collection[SystemRole],
        reason: str,
    ) -> ApprovalMixin:
        """Reject a submitted DRAFT item with a reason."""
        policy = get_policy(kind)
        policy.require_approver(roles, "reject")
        if not reason or not reason.strip():
            raise ValidationError("Rejection reason is required")

        item = await self.store.get(policy.kind, item_id)
        ConfigStateMachine.validate_item_for_transition(item, ConfigStatus.REJECTED)

        await self._conditional_update(
            item,
            ConfigStatus.REJECTED.value,
            self._review_preconditions(policy),
            status=ConfigStatus.REJECTED.value,
            rejection_reason=reason.strip(),
            rejected_at=utcnow(),
        )
        logger.info("Rejected %s %s: %s", policy.kind.value, item_id, reason)
        return item

    async def update_draft(
        self,
        kind: ConfigKind | str,
        item_id: UUID,
        fields: dict[str, Any],
        roles: Collection[SystemRole],
    ) -> ApprovalMixin:
        """Edit a DRAFT item in place. A pending submission is withdrawn."""
        policy = get_policy(kind)
        policy.require_specialist(roles, "edit")

        item = await self.store.get(policy.kind, item_id)
        if not ConfigStateMachine.can_edit(item.status):
            raise InvalidStateTransition(
                item.status,
                ConfigStatus.DRAFT.value,
                "Only items in DRAFT status can be edited",
            )

        values = await self._validated_fields(policy, item, fields)
        await self._conditional_update(
            item,
            ConfigStatus.DRAFT.value,
            [policy.model.status == ConfigStatus.DRAFT.value],
            **values,
            submitted_at=None,
            submitted_by=None,
        )
        logger.info("Updated draft %s %s", policy.kind.value, item_id)
        return item

    async def edit_after_rejection(
        self,
        kind: ConfigKind | str,
        item_id: UUID,
        fields: dict[str, Any],
        roles: Collection[SystemRole],
    ) -> ApprovalMixin:
        """Apply edits to a REJECTED item and return it to DRAFT.

        Rejection metadata and any submission marker are cleared, so the
        item can be submitted again.
        """
        policy = get_policy(kind)
        policy.require_specialist(roles, "edit")

        item = await self.store.get(policy.kind, item_id)
        ConfigStateMachine.validate_item_for_transition(item, ConfigStatus.DRAFT)

        values = await self._validated_fields(policy, item, fields)
        await self._conditional_update(
            item,
            ConfigStatus.DRAFT.value,
            [policy.model.status == ConfigStatus.REJECTED.value],
            **values,
            status=ConfigStatus.DRAFT.value,
            rejection_reason=None,
            rejected_at=None,
            submitted_at=None,
            submitted_by=None,
        )
        logger.info("Returned rejected %s %s to draft", policy.kind.value, item_id)
        return item

    async def delete(
        self,
        kind: ConfigKind | str,
        item_id: UUID,
        roles: Collection[SystemRole],
        approver_id: UUID | None = None,
    ) -> None:
        """Delete an item.

        DRAFT items may be deleted by a specialist. APPROVED items of a
        privileged-delete kind need an approver role and ``approver_id``.
        Anything else raises InvalidStateTransition, as does deleting a
        template that employee benefit links still reference.
        """
        policy = get_policy(kind)
        item = await self.store.get(policy.kind, item_id)
        status = item.status

        if status in ConfigStateMachine.DELETABLE:
            policy.require_specialist(roles, "delete")
        elif policy.privileged_delete and status in ConfigStateMachine.PRIVILEGED_DELETABLE:
            policy.require_approver(roles, "delete")
            if approver_id is None:
                raise ValidationError(
                    f"Deleting an approved {policy.label} requires an approver id"
                )
        else:
            raise InvalidStateTransition(
                status, "deleted", f"{policy.label} cannot be deleted in {status} status"
            )

        linked = await self._linked_count(policy, item_id)
        if linked:
            raise InvalidStateTransition(
                status,
                "deleted",
                f"{policy.label} is referenced by {linked} employee benefit link(s)",
            )

        model = policy.model
        try:
            result = await self.session.execute(
                delete(model)
                .where(model.id_column() == item_id, model.status == status)
                .execution_options(synchronize_session=False)
            )
        except IntegrityError as e:
            raise InvalidStateTransition(
                status, "deleted", f"{policy.label} is still referenced"
            ) from e
        if result.rowcount == 0:
            raise InvalidStateTransition(status, "deleted", "Status changed during delete")

        self.session.expunge(item)
        logger.info(
            "Deleted %s %s (was %s, approver %s)", policy.kind.value, item_id, status, approver_id
        )

    async def _linked_count(self, policy: EntityPolicy, item_id: UUID) -> int:
        """Number of employee benefit links built on this template."""
        total = 0
        for link_policy in LINK_POLICIES.values():
            if link_policy.template_kind != policy.kind:
                continue
            link_model = link_policy.model
            result = await self.session.execute(
                select(func.count())
                .select_from(link_model)
                .where(link_model.template_column() == item_id)
            )
            total += result.scalar_one()
        return total

    def _review_preconditions(self, policy: EntityPolicy) -> list[Any]:
        model = policy.model
        return [
            model.status == ConfigStatus.DRAFT.value,
            model.submitted_at.is_not(None),
        ]

    async def _validated_fields(
        self,
        policy: EntityPolicy,
        item: ApprovalMixin,
        fields: dict[str, Any],
    ) -> dict[str, Any]:
        """Merge edits over the current payload and validate the result."""
        current = {name: getattr(item, name) for name in PAYLOADS[policy.kind.value].model_fields}
        merged = validate_config_payload(policy.kind.value, {**current, **fields})
        await self.store.ensure_unique(policy.kind, merged, exclude_id=item.item_id)
        return merged

    async def _conditional_update(
        self,
        item: ApprovalMixin,
        to_status: str,
        preconditions: list[Any],
        **values: Any,
    ) -> None:
        """Apply ``values`` only if the row still satisfies ``preconditions``."""
        model = type(item)
        from_status = item.status
        result = await self.session.execute(
            update(model)
            .where(model.id_column() == item.item_id, *preconditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.refresh(item)
            raise InvalidStateTransition(
                item.status, to_status, f"Status changed concurrently (was {from_status})"
            )
        await self.session.refresh(item)
