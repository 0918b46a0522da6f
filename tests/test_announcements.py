from werkzeug.security import generate_password_hash

from app.gymsaas import mailer
from app.gymsaas.db import session_scope
from app.gymsaas.models import User


def _add_member_user(app, email="member@example.com", **flags):
    with session_scope(app) as s:
        s.add(User(email=email, password_hash=generate_password_hash("x"), role="MEMBER", first_name="Mo", **flags))


def test_inactive_announcement_sends_nothing_until_activated(app, client, login, make_owner, outbox):
    make_owner()
    _add_member_user(app)
    login()

    r = client.post(
        "/api/announcements/createannouncement",
        json={"title": "Maintenance", "message": "Down <b>tonight</b>", "is_active": False},
    )
    assert r.status_code == 201, r.json
    assert r.json["emailReport"] is None
    assert outbox == []
    ann_id = r.json["data"]["id"]

    r = client.post("/api/announcements/activeannouncement", json={"id": ann_id, "is_active": True})
    assert r.status_code == 200
    assert r.json["emailReport"] == {"total": 2, "sent": 2, "failed": 0}
    assert sorted(m.to for m in outbox) == ["member@example.com", "owner@example.com"]
    assert all(m.subject == "Announcement: Maintenance" for m in outbox)
    assert "&lt;b&gt;tonight&lt;/b&gt;" in outbox[0].html

    # already active: no second round of emails
    r = client.post("/api/announcements/activeannouncement", json={"id": ann_id, "is_active": True})
    assert r.json["emailReport"] is None
    assert len(outbox) == 2


def test_audience_limits_recipients(app, client, login, make_owner, outbox):
    make_owner()
    _add_member_user(app)
    login()
    r = client.post(
        "/api/announcements/createannouncement",
        json={"title": "Owners only", "message": "New billing page", "audience": "GYM_OWNER"},
    )
    assert r.status_code == 201
    assert r.json["emailReport"]["total"] == 1
    assert [m.to for m in outbox] == ["owner@example.com"]


def test_announcement_validation_and_listing(client, login):
    login()
    r = client.post("/api/announcements/createannouncement", json={"title": "No body"})
    assert r.status_code == 400

    r = client.post("/api/announcements/createannouncement", json={"title": "t", "message": "m", "audience": "EVERYONE"})
    assert r.status_code == 400

    r = client.post("/api/announcements/activeannouncement", json={"id": 1})
    assert r.status_code == 400

    client.post("/api/announcements/createannouncement", json={"title": "Hello", "message": "World", "is_active": False})
    r = client.post("/api/announcements/getannouncements", json={"search": "hell"})
    assert r.json["totalCount"] == 1

    ann_id = r.json["data"][0]["id"]
    r = client.post("/api/announcements/deleteannouncement", json={"id": ann_id})
    assert r.status_code == 200
    r = client.post("/api/announcements/getannouncement", json={"id": ann_id})
    assert r.status_code == 404


def test_update_to_active_emails_each_live_user_once(app, client, login, make_owner, outbox):
    make_owner()
    _add_member_user(app)
    _add_member_user(app, "paused@example.com", is_active=False)
    _add_member_user(app, "gone@example.com", is_deleted=True)
    login()

    r = client.post(
        "/api/announcements/createannouncement",
        json={"title": "Draft", "message": "Holiday hours", "is_active": False},
    )
    ann_id = r.json["data"]["id"]

    r = client.post(
        "/api/announcements/updateannouncement",
        json={"id": ann_id, "title": "Holidays", "is_active": True},
    )
    assert r.status_code == 200, r.json
    assert r.json["emailReport"] == {"total": 2, "sent": 2, "failed": 0}
    assert sorted(m.to for m in outbox) == ["member@example.com", "owner@example.com"]
    assert {m.subject for m in outbox} == {"Announcement: Holidays"}

    # editing an already active announcement mails nobody
    r = client.post("/api/announcements/updateannouncement", json={"id": ann_id, "message": "Closed Monday"})
    assert r.json["emailReport"] is None
    assert len(outbox) == 2


def test_failed_announcement_sends_are_reported(app, client, login, make_owner, monkeypatch):
    make_owner()
    _add_member_user(app)
    login()

    def send(to, subject, body, *, html=None):
        return (to != "member@example.com", "sent")

    monkeypatch.setattr(mailer, "send_email", send)
    r = client.post("/api/announcements/createannouncement", json={"title": "Hi", "message": "All"})
    assert r.status_code == 201
    assert r.json["emailReport"] == {"total": 2, "sent": 1, "failed": 1}
