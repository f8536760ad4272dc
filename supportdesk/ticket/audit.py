# supportdesk/ticket/audit.py
"""Field-level audit trail for tickets.

Values are compared by their string form, so ``0`` and ``"0"`` are the same
value while ``None`` and ``""`` are not. The same coercion produces the
stored ``old_value`` / ``new_value`` columns, which keeps the trail
deterministic regardless of how a client typed its payload.
"""
import json
from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic.alias_generators import to_camel

from supportdesk.core.clock import as_utc, utcnow
from supportdesk.ticket.models import Ticket, TicketHistory

ACTION_CREATED = "created"
ACTION_UPDATED = "updated"

CREATED_MESSAGE = "Ticket created"


def stringify(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)
    return str(value)


def record_created(ticket: Ticket, actor_id: str | None, now: datetime | None = None) -> TicketHistory:
    return TicketHistory(
        ticket_id=ticket.id,
        changed_by_user_id=actor_id,
        action=ACTION_CREATED,
        field_changed="status",
        old_value=None,
        new_value=CREATED_MESSAGE,
        created_at=now or utcnow(),
    )


def record_changes(
    before: Ticket,
    after: Mapping[str, Any],
    actor_id: str | None,
    now: datetime | None = None,
) -> list[TicketHistory]:
    """Build one ``updated`` entry per key in ``after`` whose value differs.

    ``before`` must still hold the pre-update values; the caller applies
    ``after`` only once the entries exist.
    """
    now = now or utcnow()
    entries = []
    for field, new in after.items():
        old_text = stringify(getattr(before, field))
        new_text = stringify(new)
        if old_text == new_text:
            continue
        entries.append(
            TicketHistory(
                ticket_id=before.id,
                changed_by_user_id=actor_id,
                action=ACTION_UPDATED,
                field_changed=to_camel(field),
                old_value=old_text,
                new_value=new_text,
                created_at=now,
            )
        )
    return entries
