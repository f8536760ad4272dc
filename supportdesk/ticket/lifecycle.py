# supportdesk/ticket/lifecycle.py
"""Ticket status state machine.

The transition table is the single source of truth for which status moves
are legal; every mutation path (general update, owner status change, owner
close) validates through :func:`validate_transition` and then lets
:func:`stamp_timestamps` maintain the lifecycle timestamps.
"""
from datetime import datetime
from enum import Enum

from supportdesk.core.errors import ValidationFailedError


class TicketStatus(str, Enum):
    NEW = "new"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    PENDING_CUSTOMER = "pending_customer"
    RESOLVED = "resolved"
    CLOSED = "closed"
    REOPENED = "reopened"


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


S = TicketStatus

TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    S.NEW: frozenset({S.ASSIGNED, S.IN_PROGRESS, S.PENDING_CUSTOMER, S.RESOLVED, S.CLOSED}),
    S.ASSIGNED: frozenset({S.NEW, S.IN_PROGRESS, S.PENDING_CUSTOMER, S.RESOLVED, S.CLOSED}),
    S.IN_PROGRESS: frozenset({S.ASSIGNED, S.PENDING_CUSTOMER, S.RESOLVED, S.CLOSED}),
    S.PENDING_CUSTOMER: frozenset({S.ASSIGNED, S.IN_PROGRESS, S.RESOLVED, S.CLOSED}),
    S.RESOLVED: frozenset({S.CLOSED, S.REOPENED}),
    S.CLOSED: frozenset({S.REOPENED}),
    S.REOPENED: frozenset({S.ASSIGNED, S.IN_PROGRESS, S.PENDING_CUSTOMER, S.RESOLVED, S.CLOSED}),
}

# Statuses that count as "done" for SLA purposes
DONE_STATUSES = frozenset({S.RESOLVED, S.CLOSED})

# Leaving these for any other status counts as the first response
_UNTOUCHED_STATUSES = frozenset({S.NEW, S.ASSIGNED})


def parse_status(value) -> TicketStatus:
    """Coerce a raw status value, rejecting anything outside the known set."""
    if isinstance(value, TicketStatus):
        return value
    if value is None or not str(value).strip():
        raise ValidationFailedError("status is required")
    try:
        return TicketStatus(str(value).strip())
    except ValueError:
        allowed = ", ".join(s.value for s in TicketStatus)
        raise ValidationFailedError(f"Invalid status '{value}'; expected one of: {allowed}") from None


def can_transition(current: TicketStatus, target: TicketStatus) -> bool:
    return current == target or target in TRANSITIONS[current]


def validate_transition(current, target) -> TicketStatus:
    current = parse_status(current)
    target = parse_status(target)
    if not can_transition(current, target):
        raise ValidationFailedError(
            f"Cannot move ticket from '{current.value}' to '{target.value}'"
        )
    return target


def stamp_timestamps(ticket, previous: TicketStatus, now: datetime) -> None:
    """Keep lifecycle timestamps consistent with the ticket's new status."""
    status = parse_status(ticket.status)
    if status == previous:
        return

    if status == S.REOPENED:
        ticket.reopened_at = now
        ticket.resolved_at = None
        ticket.closed_at = None
        return

    if previous in _UNTOUCHED_STATUSES and status not in _UNTOUCHED_STATUSES:
        if ticket.first_response_at is None:
            ticket.first_response_at = now

    if status in DONE_STATUSES and ticket.resolved_at is None:
        ticket.resolved_at = now
    if status == S.CLOSED and ticket.closed_at is None:
        ticket.closed_at = now


def check_stamps_kept(current: TicketStatus, target: TicketStatus, changes: dict) -> None:
    """Refuse to clear a done ticket's resolution stamps while it stays done."""
    if target != current or target not in DONE_STATUSES:
        return
    required = {"resolved_at": "resolvedAt"}
    if target == S.CLOSED:
        required["closed_at"] = "closedAt"
    for field, name in required.items():
        if field in changes and changes[field] is None:
            raise ValidationFailedError(f"{name} cannot be cleared while the ticket is {target.value}")
