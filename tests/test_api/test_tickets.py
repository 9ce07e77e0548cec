"""API tests for /api/tickets and the SLA sweep endpoint."""
from app.config import settings


def _create_ticket(client, as_user, who="teacher", priority="urgent", title="Projector does not start"):
    res = client.post("/api/tickets", json={"type": "IT", "title": title, "priority": priority}, headers=as_user(who))
    assert res.status_code == 201
    return res.json()


def test_create_ticket_has_live_sla(client, as_user):
    ticket = _create_ticket(client, as_user)
    assert ticket["ticket_number"].startswith("IT-")
    assert ticket["status"] == "open"
    assert ticket["sla_deadline"] is not None
    assert ticket["sla_status"] == "within_sla"
    assert ticket["sla_label"] == "On Track"
    assert ticket["time_remaining"].endswith("remaining")


def test_ticket_lifecycle(client, as_user, user_ids):
    number = _create_ticket(client, as_user)["ticket_number"]

    res = client.post(f"/api/tickets/{number}/assign", json={"assignee_id": user_ids["tech"]}, headers=as_user("admin"))
    assert res.json()["status"] == "assigned"

    res = client.post(f"/api/tickets/{number}/start", headers=as_user("tech"))
    assert res.json()["status"] == "in_progress"

    res = client.post(f"/api/tickets/{number}/resolve", json={"resolution": ""}, headers=as_user("tech"))
    assert res.status_code == 400
    assert res.json()["detail"]["error"] == "MissingRequiredField"

    res = client.post(f"/api/tickets/{number}/resolve", json={"resolution": "Replaced lamp"}, headers=as_user("tech"))
    assert res.json()["status"] == "resolved"
    assert res.json()["time_remaining"] is None

    res = client.post(f"/api/tickets/{number}/close", headers=as_user("tech"))
    assert res.json()["status"] == "closed"

    activities = client.get(f"/api/tickets/{number}/activities", headers=as_user("teacher")).json()
    assert [a["action"] for a in activities] == ["created", "assigned", "started", "resolved", "closed"]


def test_ticket_comments(client, as_user):
    number = _create_ticket(client, as_user)["ticket_number"]

    res = client.post(f"/api/tickets/{number}/comments", json={"content": "Still no picture"}, headers=as_user("teacher"))
    assert res.status_code == 201
    assert res.json()["action"] == "commented"

    res = client.post(f"/api/tickets/{number}/comments", json={"content": ""}, headers=as_user("teacher"))
    assert res.status_code == 400
    res = client.post(f"/api/tickets/{number}/comments", json={"content": "+1"}, headers=as_user("teacher2"))
    assert res.status_code == 403

    comments = client.get(f"/api/tickets/{number}/comments", headers=as_user("tech")).json()
    assert [c["details"] for c in comments] == ["Still no picture"]
    assert client.get(f"/api/tickets/{number}", headers=as_user("teacher")).json()["status"] == "open"


def test_invalid_transition(client, as_user):
    number = _create_ticket(client, as_user)["ticket_number"]
    res = client.post(f"/api/tickets/{number}/close", headers=as_user("tech"))
    assert res.status_code == 409
    assert res.json()["detail"]["error"] == "InvalidStatus"
    assert res.json()["detail"]["status"] == "open"


def test_other_user_cannot_see_ticket(client, as_user):
    number = _create_ticket(client, as_user)["ticket_number"]
    assert client.get(f"/api/tickets/{number}", headers=as_user("teacher2")).status_code == 403
    assert client.get(f"/api/tickets/{number}", headers=as_user("tech")).status_code == 200


def test_list_tickets_scoped(client, as_user):
    _create_ticket(client, as_user, "teacher")
    _create_ticket(client, as_user, "teacher2")

    mine = client.get("/api/tickets", headers=as_user("teacher")).json()
    assert mine["total"] == 1
    assert mine["items"][0]["sla_status"] == "within_sla"
    assert client.get("/api/tickets", headers=as_user("tech")).json()["total"] == 2


def test_sla_sweep_needs_cron_secret(client):
    assert client.post("/api/tickets/sla-sweep").status_code == 401
    assert client.post("/api/tickets/sla-sweep", headers={"Authorization": "Bearer wrong"}).status_code == 401


def test_sla_sweep(client, as_user):
    _create_ticket(client, as_user)
    res = client.post("/api/tickets/sla-sweep", headers={"Authorization": f"Bearer {settings.CRON_SECRET}"})
    assert res.status_code == 200
    assert res.json() == {"checked": 1, "at_risk": [], "breached": []}
