# supportdesk/ticket/models.py
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from supportdesk.core.clock import utcnow
from supportdesk.core.database import Base
from supportdesk.ticket.lifecycle import TicketPriority, TicketStatus


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    ticket_number = Column(String(50), unique=True, index=True, nullable=False)

    studio_id = Column(String(36), ForeignKey("studios.id"), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False, index=True)
    subcategory_id = Column(String(36), ForeignKey("subcategories.id"), nullable=True)
    priority = Column(String(20), nullable=False, default=TicketPriority.MEDIUM.value, index=True)
    status = Column(String(32), nullable=False, default=TicketStatus.NEW.value, index=True)
    source = Column(String(100), nullable=True)

    title = Column(String(500), nullable=False, index=True)
    description = Column(Text, nullable=True)
    customer_name = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    resolution_summary = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)

    assigned_to_user_id = Column(String(64), nullable=True, index=True)
    reported_by_user_id = Column(String(64), nullable=True)

    sla_due_at = Column(DateTime(timezone=True), nullable=True)
    sla_breached = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    first_response_at = Column(DateTime(timezone=True), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    reopened_at = Column(DateTime(timezone=True), nullable=True)

    dynamic_field_data = Column(JSON, nullable=False, default=dict)
    external_ref = Column(String(255), nullable=True, index=True)

    version = Column(Integer, nullable=False)

    history = relationship(
        "TicketHistory",
        back_populates="ticket",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TicketHistory.id",
    )

    comments = relationship(
        "TicketComment",
        back_populates="ticket",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TicketComment.created_at",
    )

    __mapper_args__ = {"version_id_col": version}


class TicketHistory(Base):
    __tablename__ = "ticket_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ticket_id = Column(
        String(36), ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    changed_by_user_id = Column(String(64), nullable=True)
    action = Column(String(20), nullable=False)
    field_changed = Column(String(100), nullable=True)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    ticket = relationship("Ticket", back_populates="history")


class TicketComment(Base):
    __tablename__ = "ticket_comments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    ticket_id = Column(
        String(36), ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(String(64), nullable=False)
    content = Column(Text, nullable=False)
    comment_type = Column(String(20), nullable=False, default="comment")
    is_internal = Column(Boolean, nullable=False, default=False)
    is_resolution = Column(Boolean, nullable=False, default=False)
    time_spent_minutes = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    ticket = relationship("Ticket", back_populates="comments")
