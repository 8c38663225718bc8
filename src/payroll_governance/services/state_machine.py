"""Configuration and benefit-link state machines with transition validation."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from payroll_governance.errors import InvalidStateTransition

if TYPE_CHECKING:
    from payroll_governance.models import ApprovalMixin


class ConfigStatus(str, Enum):
    """Configuration item status values."""

    DRAFT = "draft"
    APPROVED = "approved"
    REJECTED = "rejected"


class BenefitStatus(str, Enum):
    """Benefit link status values."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class ConfigStateMachine:
    """State machine for configuration item status transitions.

    Allowed transitions:
    - draft → approved (only once submitted)
    - draft → rejected (only once submitted)
    - rejected → draft (edit and resubmit)

    Submission is a marker on a draft row, not a status of its own.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        ConfigStatus.DRAFT: [ConfigStatus.APPROVED, ConfigStatus.REJECTED],
        ConfigStatus.REJECTED: [ConfigStatus.DRAFT],
        ConfigStatus.APPROVED: [],
    }

    # Transitions that need a prior submit
    REVIEW_TARGETS = {ConfigStatus.APPROVED, ConfigStatus.REJECTED}

    # Statuses where payload fields may be changed in place
    EDITABLE = {ConfigStatus.DRAFT}

    # Statuses an ordinary specialist may delete from
    DELETABLE = {ConfigStatus.DRAFT}

    # Statuses deletable only through the privileged path
    PRIVILEGED_DELETABLE = {ConfigStatus.APPROVED}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidStateTransition if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidStateTransition(from_status, to_status)

    @classmethod
    def is_review(cls, to_status: str) -> bool:
        """Check if reaching this status is a review decision."""
        return to_status in cls.REVIEW_TARGETS

    @classmethod
    def can_edit(cls, status: str) -> bool:
        return status in cls.EDITABLE

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])

    @classmethod
    def validate_submit(cls, item: ApprovalMixin) -> None:
        """Validate that an item may be submitted for review."""
        if item.status != ConfigStatus.DRAFT:
            raise InvalidStateTransition(
                item.status,
                "submitted",
                "Only items in DRAFT status can be submitted",
            )
        if item.submitted_at is not None:
            raise InvalidStateTransition(
                item.status, "submitted", "Item is already awaiting review"
            )

    @classmethod
    def validate_item_for_transition(cls, item: ApprovalMixin, to_status: str) -> None:
        """Validate an item for a specific transition.

        Raises InvalidStateTransition with the first failing check.
        """
        from_status = item.status

        if not cls.can_transition(from_status, to_status):
            reason = None
            if from_status == to_status:
                reason = f"Item is already {from_status}"
            raise InvalidStateTransition(from_status, to_status, reason)

        if cls.is_review(to_status) and item.submitted_at is None:
            raise InvalidStateTransition(
                from_status, to_status, "Item has not been submitted for review"
            )


class BenefitLinkStateMachine:
    """State machine for per-employee benefit links.

    Allowed transitions:
    - pending → approved
    - pending → rejected
    - rejected → pending (amount edited)
    - approved → paid (disbursed)
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        BenefitStatus.PENDING: [BenefitStatus.APPROVED, BenefitStatus.REJECTED],
        BenefitStatus.REJECTED: [BenefitStatus.PENDING],
        BenefitStatus.APPROVED: [BenefitStatus.PAID],
        BenefitStatus.PAID: [],  # Terminal state
    }

    # Statuses where the given amount may change
    AMOUNT_EDITABLE = {BenefitStatus.PENDING, BenefitStatus.REJECTED}

    # Statuses where the link may be removed
    DELETABLE = {BenefitStatus.PENDING, BenefitStatus.REJECTED}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidStateTransition if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidStateTransition(from_status, to_status)

    @classmethod
    def can_edit_amount(cls, status: str) -> bool:
        return status in cls.AMOUNT_EDITABLE

    @classmethod
    def can_delete(cls, status: str) -> bool:
        return status in cls.DELETABLE
