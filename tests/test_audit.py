# tests/test_audit.py
from datetime import datetime, timezone

from supportdesk.ticket import audit
from supportdesk.ticket.lifecycle import TicketPriority
from supportdesk.ticket.models import Ticket


def _ticket(**fields):
    base = dict(id="t-1", title="Old", priority="low", status="new", assigned_to_user_id=None)
    base.update(fields)
    return Ticket(**base)


def test_stringify_rules():
    assert audit.stringify(None) is None
    assert audit.stringify(0) == "0"
    assert audit.stringify("0") == "0"
    assert audit.stringify(True) == "true"
    assert audit.stringify(TicketPriority.HIGH) == "high"
    assert audit.stringify({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'
    naive = datetime(2026, 10, 19, 8, 0)
    aware = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)
    assert audit.stringify(naive) == audit.stringify(aware)


def test_only_changed_fields_are_recorded():
    before = _ticket()
    entries = audit.record_changes(
        before, {"title": "New", "priority": "low", "status": "new"}, "u1"
    )
    assert len(entries) == 1
    entry = entries[0]
    assert entry.action == "updated"
    assert entry.field_changed == "title"
    assert entry.old_value == "Old"
    assert entry.new_value == "New"
    assert entry.changed_by_user_id == "u1"
    assert entry.ticket_id == "t-1"


def test_null_versus_value_is_a_change():
    before = _ticket()
    entries = audit.record_changes(before, {"assigned_to_user_id": "owner"}, None)
    assert [(e.field_changed, e.old_value, e.new_value) for e in entries] == [
        ("assignedToUserId", None, "owner")
    ]

    cleared = audit.record_changes(_ticket(assigned_to_user_id="owner"), {"assigned_to_user_id": None}, None)
    assert cleared[0].new_value is None


def test_string_coercion_makes_equal_values_silent():
    before = _ticket(title="0")
    assert audit.record_changes(before, {"title": 0}, None) == []


def test_created_entry():
    entry = audit.record_created(_ticket(), "u1")
    assert entry.action == "created"
    assert entry.field_changed == "status"
    assert entry.new_value == "Ticket created"
    assert entry.old_value is None
