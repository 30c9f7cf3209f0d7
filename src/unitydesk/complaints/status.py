"""Complaint status lifecycle and priority normalization."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from unitydesk.errors import StatusTransitionError
from unitydesk.models import ComplaintStatus, Priority


ALLOWED_TRANSITIONS: dict[ComplaintStatus, frozenset[ComplaintStatus]] = {
    ComplaintStatus.PENDING: frozenset({ComplaintStatus.IN_PROGRESS, ComplaintStatus.REJECTED}),
    ComplaintStatus.IN_PROGRESS: frozenset({ComplaintStatus.RESOLVED}),
    ComplaintStatus.RESOLVED: frozenset(),
    ComplaintStatus.REJECTED: frozenset(),
}

HIGH_PRIORITY_WORDS = {"critical", "immediate", "urgent", "high"}


@dataclass(frozen=True)
class StatusChange:
    status: ComplaintStatus
    rejection_reason: Optional[str]


def can_transition(current: ComplaintStatus, new: ComplaintStatus) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, frozenset())


def apply_status_change(
    current: ComplaintStatus,
    new: ComplaintStatus,
    reason: Optional[str] = None,
) -> StatusChange:
    """Check one officer status change.

    Only a rejected complaint carries a rejection reason, and a rejection
    always has one.
    """
    if not can_transition(current, new):
        raise StatusTransitionError(
            f"Cannot change status from {current.value} to {new.value}"
        )

    if new is ComplaintStatus.REJECTED:
        cleaned = (reason or "").strip()
        if not cleaned:
            raise StatusTransitionError("A rejection reason is required")
        return StatusChange(status=new, rejection_reason=cleaned)

    return StatusChange(status=new, rejection_reason=None)


def normalize_priority(value: Optional[str]) -> Priority:
    """Collapse free-form urgency labels into high/medium/low."""
    cleaned = (value or "").strip().lower()
    if cleaned in HIGH_PRIORITY_WORDS:
        return Priority.HIGH
    if cleaned == "low":
        return Priority.LOW
    return Priority.MEDIUM
