# supportdesk/ticket/sla.py
from datetime import datetime, timedelta

from supportdesk.core.clock import as_utc, utcnow
from supportdesk.ticket.lifecycle import DONE_STATUSES, TicketStatus


def compute_due_at(created_at: datetime, hours: int) -> datetime:
    return created_at + timedelta(hours=hours)


def sla_hours_for(default_hours: int, category=None, subcategory=None) -> int:
    """Subcategory window first, then the category's, then the default."""
    if subcategory is not None and subcategory.sla_hours:
        return subcategory.sla_hours
    if category is not None and category.default_sla_hours:
        return category.default_sla_hours
    return default_hours


def evaluate(ticket, now: datetime | None = None) -> bool:
    """True when the SLA deadline passed while the ticket was still open."""
    due_at = as_utc(ticket.sla_due_at)
    if due_at is None:
        return False
    if TicketStatus(ticket.status) in DONE_STATUSES:
        return False
    now = as_utc(now) or utcnow()
    return now > due_at


def refresh(ticket, now: datetime | None = None) -> bool:
    """Recompute the cached ``sla_breached`` flag in place."""
    ticket.sla_breached = evaluate(ticket, now)
    return ticket.sla_breached
