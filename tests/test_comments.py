# tests/test_comments.py
from supportdesk.ticket.models import TicketComment

STAFF = {"X-User-Id": "staff-1"}
OTHER = {"X-User-Id": "staff-2"}


def test_add_and_list_comments(client, make_ticket):
    tid = make_ticket()["id"]
    r = client.post(f"/tickets/{tid}/comments", json={"content": "Looking into it"}, headers=OTHER)
    assert r.status_code == 201
    comment = r.json()
    assert comment["ticketId"] == tid
    assert comment["userId"] == "staff-2"
    assert comment["commentType"] == "comment"
    assert comment["isInternal"] is False

    client.post(
        f"/tickets/{tid}/comments",
        json={"content": "Vendor called", "isInternal": True, "commentType": "note"},
        headers=STAFF,
    )
    listed = client.get(f"/tickets/{tid}/comments").json()
    assert [c["content"] for c in listed] == ["Vendor called", "Looking into it"]


def test_first_public_reply_stamps_first_response(client, make_ticket):
    tid = make_ticket()["id"]
    client.post(
        f"/tickets/{tid}/comments", json={"content": "note to self", "isInternal": True}, headers=STAFF
    )
    assert client.get(f"/tickets/{tid}").json()["firstResponseAt"] is None

    reply = client.post(f"/tickets/{tid}/comments", json={"content": "On it"}, headers=STAFF).json()
    ticket = client.get(f"/tickets/{tid}").json()
    assert ticket["firstResponseAt"] == reply["createdAt"]

    client.post(f"/tickets/{tid}/comments", json={"content": "Fixed"}, headers=STAFF)
    assert client.get(f"/tickets/{tid}").json()["firstResponseAt"] == reply["createdAt"]


def test_comments_do_not_write_history(client, make_ticket):
    tid = make_ticket()["id"]
    client.post(f"/tickets/{tid}/comments", json={"content": "On it"}, headers=STAFF)
    assert len(client.get(f"/tickets/{tid}/history").json()) == 1


def test_comment_validation(client, make_ticket):
    tid = make_ticket()["id"]
    assert client.post(f"/tickets/{tid}/comments", json={"content": "x"}).status_code == 401
    assert client.post(f"/tickets/{tid}/comments", json={"content": ""}, headers=STAFF).status_code == 422
    assert client.post(f"/tickets/{tid}/comments", json={"content": "   "}, headers=STAFF).status_code == 400
    assert (
        client.post(
            f"/tickets/{tid}/comments", json={"content": "x", "timeSpentMinutes": -5}, headers=STAFF
        ).status_code
        == 422
    )


def test_comments_on_unknown_ticket_return_404(client, catalog):
    assert client.get("/tickets/missing/comments").status_code == 404
    r = client.post("/tickets/missing/comments", json={"content": "hi"}, headers=STAFF)
    assert r.status_code == 404


def test_deleting_ticket_removes_comments(client, db, make_ticket):
    tid = make_ticket()["id"]
    client.post(f"/tickets/{tid}/comments", json={"content": "On it"}, headers=STAFF)
    assert client.delete(f"/tickets/{tid}", headers=STAFF).status_code == 204
    assert db.query(TicketComment).count() == 0
