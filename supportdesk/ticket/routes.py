# supportdesk/ticket/routes.py
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from supportdesk.core.database import get_db
from supportdesk.core.deps import get_current_user_id
from supportdesk.ticket import services as ticket_service
from supportdesk.ticket import sla
from supportdesk.ticket.models import Ticket
from supportdesk.ticket.schemas import (
    CloseOwnerRequest,
    CommentCreate,
    CommentOut,
    StatusOwnerUpdate,
    TicketCreate,
    TicketHistoryOut,
    TicketOut,
    TicketUpdate,
)

router = APIRouter(prefix="/tickets", tags=["Tickets"])


def to_out(ticket: Ticket) -> TicketOut:
    """Serialize with a freshly evaluated SLA flag; the stored one is a cache."""
    out = TicketOut.model_validate(ticket)
    return out.model_copy(update={"sla_breached": sla.evaluate(ticket)})


@router.post("", response_model=TicketOut, status_code=201)
def create(
    ticket: TicketCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return to_out(ticket_service.create_manual_ticket(db, ticket, user_id))


@router.get("", response_model=list[TicketOut])
def list_all(
    status: str | None = Query(default=None, description="Comma separated statuses"),
    priority: str | None = Query(default=None, description="Comma separated priorities"),
    category_id: str | None = Query(default=None, alias="categoryId"),
    studio_id: str | None = Query(default=None, alias="studioId"),
    assigned_to_user_id: str | None = Query(default=None, alias="assignedToUserId"),
    search: str | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1, le=500),
    offset: int | None = Query(default=None, ge=0),
    db: Session = Depends(get_db),
):
    items = ticket_service.get_all_tickets(
        db,
        status=status,
        priority=priority,
        category_id=category_id,
        studio_id=studio_id,
        assigned_to_user_id=assigned_to_user_id,
        search=search,
        limit=limit,
        offset=offset,
    )
    return [to_out(t) for t in items]


@router.get("/{ticket_id}", response_model=TicketOut)
def get(ticket_id: str, db: Session = Depends(get_db)):
    ticket = ticket_service.find_ticket(db, ticket_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return to_out(ticket)


@router.get("/{ticket_id}/history", response_model=list[TicketHistoryOut])
def history(ticket_id: str, db: Session = Depends(get_db)):
    return ticket_service.get_history(db, ticket_id)


@router.get("/{ticket_id}/comments", response_model=list[CommentOut])
def comments(ticket_id: str, db: Session = Depends(get_db)):
    return ticket_service.get_comments(db, ticket_id)


@router.post("/{ticket_id}/comments", response_model=CommentOut, status_code=201)
def add_comment(
    ticket_id: str,
    comment: CommentCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return ticket_service.add_comment(db, ticket_id, comment, user_id)


@router.patch("/{ticket_id}", response_model=TicketOut)
def update(
    ticket_id: str,
    ticket: TicketUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return to_out(ticket_service.update_ticket(db, ticket_id, ticket, user_id))


@router.patch("/{ticket_id}/status-owner", response_model=TicketOut)
def update_status_as_owner(
    ticket_id: str,
    body: StatusOwnerUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return to_out(ticket_service.update_status_as_owner(db, ticket_id, body.status, user_id))


@router.post("/{ticket_id}/close-owner", response_model=TicketOut)
def close_as_owner(
    ticket_id: str,
    body: CloseOwnerRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return to_out(
        ticket_service.close_as_owner(db, ticket_id, body.resolution_summary, user_id)
    )


@router.delete("/{ticket_id}", status_code=204)
def delete(
    ticket_id: str,
    db: Session = Depends(get_db),
    _user_id: str = Depends(get_current_user_id),
):
    deleted = ticket_service.delete_ticket(db, ticket_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return Response(status_code=204)
