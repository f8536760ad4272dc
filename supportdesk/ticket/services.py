# supportdesk/ticket/services.py
import logging
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Session

from supportdesk.catalog import services as catalog_service
from supportdesk.core.clock import utcnow
from supportdesk.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from supportdesk.core.logging import build_log_context
from supportdesk.ticket import audit, sla
from supportdesk.ticket.factory import TicketDraft, create_ticket
from supportdesk.ticket.lifecycle import (
    TicketStatus,
    check_stamps_kept,
    stamp_timestamps,
    validate_transition,
)
from supportdesk.ticket.models import Ticket, TicketComment, TicketHistory
from supportdesk.ticket.schemas import CommentCreate, ManualOrigin, TicketCreate, TicketUpdate

logger = logging.getLogger(__name__)


def _split(value: str | None) -> list[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def get_all_tickets(
    db: Session,
    *,
    status: str | None = None,
    priority: str | None = None,
    category_id: str | None = None,
    studio_id: str | None = None,
    assigned_to_user_id: str | None = None,
    search: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> list[Ticket]:
    query = db.query(Ticket)
    statuses = _split(status)
    if statuses:
        query = query.filter(Ticket.status.in_(statuses))
    priorities = _split(priority)
    if priorities:
        query = query.filter(Ticket.priority.in_(priorities))
    if category_id:
        query = query.filter(Ticket.category_id == category_id)
    if studio_id:
        query = query.filter(Ticket.studio_id == studio_id)
    if assigned_to_user_id:
        query = query.filter(Ticket.assigned_to_user_id == assigned_to_user_id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                Ticket.title.ilike(pattern),
                Ticket.ticket_number.ilike(pattern),
                Ticket.customer_name.ilike(pattern),
            )
        )
    query = query.order_by(Ticket.created_at.desc(), Ticket.id)
    if offset:
        query = query.offset(offset)
    if limit:
        query = query.limit(limit)
    return query.all()


def get_ticket(db: Session, ticket_id: str) -> Ticket | None:
    return db.query(Ticket).filter(Ticket.id == ticket_id).first()


def find_ticket(db: Session, id_or_number: str) -> Ticket | None:
    """Look a ticket up by id, falling back to its ticket number."""
    ticket = get_ticket(db, id_or_number)
    if ticket is None:
        ticket = db.query(Ticket).filter(Ticket.ticket_number == id_or_number).first()
    return ticket


def require_ticket(db: Session, ticket_id: str) -> Ticket:
    ticket = get_ticket(db, ticket_id)
    if ticket is None:
        raise NotFoundError("Ticket not found")
    return ticket


def get_history(db: Session, ticket_id: str) -> list[TicketHistory]:
    require_ticket(db, ticket_id)
    return (
        db.query(TicketHistory)
        .filter(TicketHistory.ticket_id == ticket_id)
        .order_by(TicketHistory.created_at.desc(), TicketHistory.id.desc())
        .all()
    )


def get_comments(db: Session, ticket_id: str) -> list[TicketComment]:
    require_ticket(db, ticket_id)
    return (
        db.query(TicketComment)
        .filter(TicketComment.ticket_id == ticket_id)
        .order_by(TicketComment.created_at.desc(), TicketComment.id)
        .all()
    )


def add_comment(db: Session, ticket_id: str, payload: CommentCreate, user_id: str) -> TicketComment:
    """Append a comment; the first reply visible to the customer is the first response."""
    if not payload.content.strip():
        raise ValidationFailedError("content is required")
    ticket = require_ticket(db, ticket_id)
    now = utcnow()
    comment = TicketComment(
        ticket_id=ticket.id,
        user_id=user_id,
        content=payload.content.strip(),
        comment_type=payload.comment_type,
        is_internal=payload.is_internal,
        is_resolution=payload.is_resolution,
        time_spent_minutes=payload.time_spent_minutes,
        created_at=now,
    )
    db.add(comment)
    if not comment.is_internal and ticket.first_response_at is None:
        ticket.first_response_at = now
        ticket.updated_at = now
    db.commit()
    db.refresh(comment)
    logger.info(
        "Comment added internal=%s %s",
        comment.is_internal,
        build_log_context(user_id=user_id, ticket_id=ticket.id),
    )
    return comment


def create_manual_ticket(db: Session, payload: TicketCreate, user_id: str) -> Ticket:
    studio_id, category_id = catalog_service.resolve_placement(
        db, payload.studio_id, payload.category_id, payload.subcategory_id
    )
    form_values = dict(payload.dynamic_field_data or {})
    form_values["origin"] = "manual"
    draft = TicketDraft(
        title=payload.title,
        description=payload.description,
        studio_id=studio_id,
        category_id=category_id,
        subcategory_id=payload.subcategory_id,
        priority=payload.priority,
        source=payload.source,
        customer_name=payload.customer_name,
        customer_email=payload.customer_email,
        customer_phone=payload.customer_phone,
        assigned_to_user_id=payload.assigned_to_user_id,
        reported_by_user_id=user_id,
        origin=ManualOrigin.model_validate(form_values),
    )
    ticket = create_ticket(db, draft)
    db.commit()
    db.refresh(ticket)
    return ticket


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def apply_changes(
    db: Session,
    ticket: Ticket,
    changes: dict[str, Any],
    actor_id: str | None,
    now: datetime | None = None,
) -> Ticket:
    """Validate, audit and persist a set of field changes.

    Every mutation entry point funnels through here so status moves are
    checked against the transition table and each changed field leaves a
    history row. Lifecycle stamps and the SLA cache are derived afterwards
    and are not audited themselves.
    """
    now = now or utcnow()
    changes = {key: _plain(value) for key, value in changes.items()}
    previous = TicketStatus(ticket.status)

    target = previous
    if "status" in changes:
        target = validate_transition(previous, changes["status"])
        changes["status"] = target.value
    check_stamps_kept(previous, target, changes)

    entries = audit.record_changes(ticket, changes, actor_id, now)

    for field, value in changes.items():
        setattr(ticket, field, value)
    stamp_timestamps(ticket, previous, now)
    sla.refresh(ticket, now)
    ticket.updated_at = now

    changed = [entry.field_changed for entry in entries]
    db.add_all(entries)
    db.commit()
    db.refresh(ticket)
    logger.info(
        "Ticket updated fields=%s %s",
        changed,
        build_log_context(user_id=actor_id, ticket_id=ticket.id),
    )
    return ticket


def update_ticket(db: Session, ticket_id: str, payload: TicketUpdate, user_id: str) -> Ticket:
    ticket = require_ticket(db, ticket_id)
    if payload.version is not None and payload.version != ticket.version:
        raise ConflictError("Ticket was modified by someone else; reload and retry")
    changes = payload.changes()
    if changes.keys() & {"studio_id", "category_id", "subcategory_id"}:
        # The kept subcategory must still belong to a changed category
        catalog_service.resolve_placement(
            db,
            changes.get("studio_id", ticket.studio_id),
            changes.get("category_id", ticket.category_id),
            changes.get("subcategory_id", ticket.subcategory_id),
        )
    return apply_changes(db, ticket, changes, user_id)


def _require_owner(ticket: Ticket, user_id: str, operation: str) -> None:
    if not ticket.assigned_to_user_id or ticket.assigned_to_user_id != user_id:
        logger.warning(
            "Rejected owner-only %s %s",
            operation,
            build_log_context(user_id=user_id, ticket_id=ticket.id),
        )
        raise PermissionDeniedError("Only the assigned owner can perform this action")


def update_status_as_owner(db: Session, ticket_id: str, status: str | None, user_id: str) -> Ticket:
    if status is None or not str(status).strip():
        raise ValidationFailedError("status is required")
    ticket = require_ticket(db, ticket_id)
    _require_owner(ticket, user_id, "status change")
    return apply_changes(db, ticket, {"status": status}, user_id)


def close_as_owner(db: Session, ticket_id: str, resolution_summary: str | None, user_id: str) -> Ticket:
    if resolution_summary is None or not resolution_summary.strip():
        raise ValidationFailedError("resolutionSummary is required")
    ticket = require_ticket(db, ticket_id)
    _require_owner(ticket, user_id, "close")
    now = utcnow()
    return apply_changes(
        db,
        ticket,
        {
            "status": TicketStatus.CLOSED,
            "resolution_summary": resolution_summary.strip(),
            "resolved_at": now,
            "closed_at": now,
        },
        user_id,
        now,
    )


def delete_ticket(db: Session, ticket_id: str) -> Ticket | None:
    db_ticket = get_ticket(db, ticket_id)
    if not db_ticket:
        return None
    db.delete(db_ticket)
    db.commit()
    return db_ticket
