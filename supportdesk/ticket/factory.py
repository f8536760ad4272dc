# supportdesk/ticket/factory.py
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session

from supportdesk.catalog import services as catalog_service
from supportdesk.core.config import get_settings
from supportdesk.core.clock import utcnow
from supportdesk.core.errors import ConflictError
from supportdesk.core.logging import build_log_context
from supportdesk.ticket import audit, sla
from supportdesk.ticket.lifecycle import TicketPriority, TicketStatus
from supportdesk.ticket.models import Ticket
from supportdesk.ticket.schemas import ManualOrigin

logger = logging.getLogger(__name__)

_rng = random.SystemRandom()


@dataclass
class TicketDraft:
    """Everything the factory needs; studio/category already resolved."""

    title: str
    studio_id: str
    category_id: str
    source: str
    description: str | None = None
    subcategory_id: str | None = None
    priority: TicketPriority | None = None
    auto_process: bool = False
    assigned_to_user_id: str | None = None
    reported_by_user_id: str | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    # Fixed SLA window; when unset it comes from the subcategory/category
    sla_hours: int | None = None
    origin: object = field(default_factory=ManualOrigin)
    external_ref: str | None = None


def format_ticket_number(now: datetime, suffix: int) -> str:
    return f"TKT-{now:%y%m%d}-{suffix:04d}"


def generate_ticket_number(db: Session, now: datetime, max_attempts: int) -> str:
    for _ in range(max_attempts):
        candidate = format_ticket_number(now, _rng.randrange(10000))
        taken = db.query(Ticket.id).filter(Ticket.ticket_number == candidate).first()
        if taken is None:
            return candidate
    raise ConflictError("Could not allocate a unique ticket number, try again")


def _resolve_priority(draft: TicketDraft, category, subcategory) -> str:
    if draft.priority is not None:
        return TicketPriority(draft.priority).value
    if subcategory is not None and subcategory.default_priority:
        return subcategory.default_priority
    if category is not None and category.default_priority:
        return category.default_priority
    return TicketPriority.MEDIUM.value


def create_ticket(db: Session, draft: TicketDraft, now: datetime | None = None) -> Ticket:
    """Build, number and stage a ticket plus its ``created`` history entry.

    The caller owns the transaction: nothing is committed here, so a batch
    import can create several tickets atomically.
    """
    settings = get_settings()
    now = now or utcnow()

    category = catalog_service.get_category(db, draft.category_id)
    subcategory = catalog_service.get_subcategory(db, draft.subcategory_id)

    hours = draft.sla_hours or sla.sla_hours_for(settings.DEFAULT_SLA_HOURS, category, subcategory)
    status = TicketStatus.ASSIGNED if draft.auto_process else TicketStatus.NEW

    ticket = Ticket(
        ticket_number=generate_ticket_number(db, now, settings.TICKET_NUMBER_MAX_ATTEMPTS),
        studio_id=draft.studio_id,
        category_id=draft.category_id,
        subcategory_id=draft.subcategory_id,
        priority=_resolve_priority(draft, category, subcategory),
        status=status.value,
        source=draft.source,
        title=draft.title,
        description=draft.description,
        customer_name=draft.customer_name,
        customer_email=draft.customer_email,
        customer_phone=draft.customer_phone,
        assigned_to_user_id=draft.assigned_to_user_id,
        reported_by_user_id=draft.reported_by_user_id,
        sla_due_at=sla.compute_due_at(now, hours),
        sla_breached=False,
        created_at=now,
        updated_at=now,
        dynamic_field_data=draft.origin.model_dump(mode="json", by_alias=True),
        external_ref=draft.external_ref,
    )
    db.add(ticket)
    db.flush()
    db.add(audit.record_created(ticket, draft.reported_by_user_id, now))

    logger.info(
        "Ticket staged status=%s source=%s %s",
        ticket.status,
        ticket.source,
        build_log_context(ticket_id=ticket.id, ticket_number=ticket.ticket_number),
    )
    return ticket
