# tests/test_owner_transitions.py
import pytest

STAFF = {"X-User-Id": "staff-1"}
OWNER = {"X-User-Id": "owner-1"}
INTRUDER = {"X-User-Id": "intruder-9"}


@pytest.fixture
def owned_ticket(client, make_ticket):
    return make_ticket(assignedToUserId="owner-1")


def _history(client, tid):
    return client.get(f"/tickets/{tid}/history").json()


def test_owner_can_change_status(client, owned_ticket):
    tid = owned_ticket["id"]
    r = client.patch(f"/tickets/{tid}/status-owner", json={"status": "in_progress"}, headers=OWNER)
    assert r.status_code == 200
    assert r.json()["status"] == "in_progress"

    rows = [h for h in _history(client, tid) if h["action"] == "updated"]
    assert len(rows) == 1
    assert rows[0]["fieldChanged"] == "status"
    assert rows[0]["oldValue"] == "new"
    assert rows[0]["newValue"] == "in_progress"
    assert rows[0]["changedByUserId"] == "owner-1"


def test_status_owner_requires_status(client, owned_ticket):
    r = client.patch(f"/tickets/{owned_ticket['id']}/status-owner", json={}, headers=OWNER)
    assert r.status_code == 400


def test_status_owner_rejects_unknown_status(client, owned_ticket):
    tid = owned_ticket["id"]
    r = client.patch(f"/tickets/{tid}/status-owner", json={"status": "banana"}, headers=OWNER)
    assert r.status_code == 400
    assert client.get(f"/tickets/{tid}").json()["status"] == "new"


def test_status_owner_missing_ticket(client, catalog):
    r = client.patch("/tickets/nope/status-owner", json={"status": "resolved"}, headers=OWNER)
    assert r.status_code == 404


def test_body_is_checked_before_ticket_lookup(client, catalog):
    assert client.post("/tickets/nope/close-owner", json={}, headers=OWNER).status_code == 400
    assert client.patch("/tickets/nope/status-owner", json={}, headers=OWNER).status_code == 400
    r = client.post("/tickets/nope/close-owner", json={"resolutionSummary": "Fixed"}, headers=OWNER)
    assert r.status_code == 404


@pytest.mark.parametrize(
    "method,path,body",
    [
        ("patch", "status-owner", {"status": "resolved"}),
        ("post", "close-owner", {"resolutionSummary": "Fixed"}),
    ],
)
def test_non_owner_is_rejected_and_ticket_unchanged(client, owned_ticket, method, path, body):
    tid = owned_ticket["id"]
    before = client.get(f"/tickets/{tid}").json()
    history_before = _history(client, tid)

    r = getattr(client, method)(f"/tickets/{tid}/{path}", json=body, headers=INTRUDER)
    assert r.status_code == 403

    assert client.get(f"/tickets/{tid}").json() == before
    assert _history(client, tid) == history_before


def test_unassigned_ticket_rejects_everyone(client, make_ticket):
    ticket = make_ticket()
    r = client.patch(
        f"/tickets/{ticket['id']}/status-owner",
        json={"status": "in_progress"},
        headers={"X-User-Id": "staff-1"},
    )
    assert r.status_code == 403


def test_owner_close_sets_terminal_state(client, owned_ticket):
    tid = owned_ticket["id"]
    r = client.post(
        f"/tickets/{tid}/close-owner", json={"resolutionSummary": "Replaced spring"}, headers=OWNER
    )
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "closed"
    assert data["resolutionSummary"] == "Replaced spring"
    assert data["resolvedAt"] is not None
    assert data["resolvedAt"] == data["closedAt"]

    fields = {h["fieldChanged"] for h in _history(client, tid) if h["action"] == "updated"}
    assert {"status", "resolutionSummary"} <= fields


def test_owner_close_requires_summary(client, owned_ticket):
    tid = owned_ticket["id"]
    history_before = _history(client, tid)

    for body in ({"resolutionSummary": ""}, {"resolutionSummary": "   "}, {}):
        r = client.post(f"/tickets/{tid}/close-owner", json=body, headers=OWNER)
        assert r.status_code == 400

    assert _history(client, tid) == history_before
    assert client.get(f"/tickets/{tid}").json()["status"] == "new"


def test_owner_can_reopen_closed_ticket(client, owned_ticket):
    tid = owned_ticket["id"]
    client.post(f"/tickets/{tid}/close-owner", json={"resolutionSummary": "Done"}, headers=OWNER)
    r = client.patch(f"/tickets/{tid}/status-owner", json={"status": "reopened"}, headers=OWNER)
    assert r.status_code == 200
    assert r.json()["status"] == "reopened"
    assert r.json()["closedAt"] is None
