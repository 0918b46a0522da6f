from datetime import datetime, timedelta

from app.gymsaas import mailer
from app.gymsaas.db import session_scope
from app.gymsaas.models import User
from app.gymsaas.modules.members.models import Member
from app.gymsaas.modules.notifications.service import check_subscriptions
from app.gymsaas.modules.subscriptions.models import MemberSubscription, OwnerSubscription


def _run(app):
    with app.app_context(), session_scope(app) as s:
        return check_subscriptions(s)


def _add_member_subscription(app, ids, *, end):
    with session_scope(app) as s:
        person = User(email="m1@example.com", password_hash="x", role="MEMBER", first_name="Mia", last_name="Lee")
        s.add(person)
        s.flush()
        member = Member(user_id=person.id, gym_id=ids["gym_id"], location_id=ids["location_id"])
        s.add(member)
        s.flush()
        sub = MemberSubscription(
            member_id=member.id,
            price=2000,
            start_date=end - timedelta(days=30),
            end_date=end,
        )
        s.add(sub)
        s.flush()
        return sub.id


def test_cron_endpoint_requires_secret(client):
    r = client.post("/api/cron/check-subscriptions")
    assert r.status_code == 401
    assert r.json == {"message": "Unauthorized"}

    r = client.post("/api/cron/check-subscriptions", headers={"Authorization": "Bearer wrong"})
    assert r.status_code == 401

    r = client.post("/api/cron/check-subscriptions", headers={"Authorization": "Bearer cron-secret"})
    assert r.status_code == 200
    assert r.json["message"] == "Subscription check completed"

    r = client.post("/api/cron/check-subscriptions", headers={"X-Cron-Trigger": "1"})
    assert r.status_code == 200


def test_owner_subscription_ending_today_expires_and_notifies(app, make_owner, outbox):
    ids = make_owner(end_in_days=0)
    result = _run(app)
    assert result["summary"]["ownerSubscriptions"] == {"expired": 1, "remindersSent": 0}

    subjects = {(m.to, m.subject) for m in outbox}
    assert ("owner@example.com", "Your Gym Subscription Has Expired") in subjects
    assert ("admin@example.com", "Daily Subscription Expiration Report - 1 Owner Expired") in subjects

    with session_scope(app) as s:
        sub = s.get(OwnerSubscription, ids["subscription_id"])
        assert sub.is_expired is True
        assert sub.notification_sent is True


def test_reminders_are_sent_once(app, make_owner, outbox):
    ids = make_owner(end_in_days=2)
    result = _run(app)
    assert result["summary"]["ownerSubscriptions"]["remindersSent"] == 1
    assert outbox[0].subject == "Your Gym Subscription Expires in 2 Days"

    result = _run(app)
    assert result["summary"]["ownerSubscriptions"]["remindersSent"] == 0
    assert len(outbox) == 1

    with session_scope(app) as s:
        sub = s.get(OwnerSubscription, ids["subscription_id"])
        assert sub.first_reminder_sent is True
        assert sub.second_reminder_sent is False
        assert sub.is_expired is False


def test_member_expiry_sends_owner_summary(app, make_owner, outbox):
    ids = make_owner()
    _add_member_subscription(app, ids, end=datetime.utcnow())
    result = _run(app)
    assert result["summary"]["memberSubscriptions"]["expired"] == 1

    subjects = {(m.to, m.subject) for m in outbox}
    assert ("m1@example.com", "Your Gym Membership Has Expired") in subjects
    assert ("owner@example.com", "Daily Membership Expiration Report - 1 Member Expired") in subjects


def test_past_due_subscriptions_are_swept(app, make_owner):
    ids = make_owner()
    sub_id = _add_member_subscription(app, ids, end=datetime.utcnow() - timedelta(days=3))
    _run(app)
    with session_scope(app) as s:
        sub = s.get(MemberSubscription, sub_id)
        assert sub.is_expired is True
        assert sub.is_active is False


def test_check_accepts_explicit_day(app, make_owner, outbox):
    make_owner(end_in_days=5)
    later = datetime.utcnow().date() + timedelta(days=4)
    with app.app_context(), session_scope(app) as s:
        result = check_subscriptions(s, today=later)
    assert result["summary"]["ownerSubscriptions"]["remindersSent"] == 1
    assert outbox[0].subject == "Your Gym Subscription Expires in 1 Day"


def test_expired_today_is_no_longer_active(app, make_owner):
    ids = make_owner(end_in_days=0)
    _run(app)
    with session_scope(app) as s:
        sub = s.get(OwnerSubscription, ids["subscription_id"])
        assert sub.is_expired is True
        assert sub.is_active is False


def test_one_failing_row_does_not_stop_the_batch(app, make_owner, outbox, monkeypatch):
    broken = make_owner("broken@example.com", end_in_days=2)
    healthy = make_owner("healthy@example.com", end_in_days=2)
    real_send = mailer.send_email

    def flaky_send(to, subject, body, *, html=None):
        if to == "broken@example.com":
            raise RuntimeError("smtp exploded")
        return real_send(to, subject, body, html=html)

    monkeypatch.setattr(mailer, "send_email", flaky_send)
    result = _run(app)

    assert result["summary"]["ownerSubscriptions"]["remindersSent"] == 1
    assert [m.to for m in outbox] == ["healthy@example.com"]
    with session_scope(app) as s:
        assert s.get(OwnerSubscription, broken["subscription_id"]).first_reminder_sent is False
        assert s.get(OwnerSubscription, healthy["subscription_id"]).first_reminder_sent is True


def test_failed_reminder_is_retried_next_run(app, make_owner, outbox, monkeypatch):
    ids = make_owner(end_in_days=2)
    real_send = mailer.send_email
    monkeypatch.setattr(mailer, "send_email", lambda *a, **kw: (False, "SMTP down"))
    result = _run(app)
    assert result["summary"]["ownerSubscriptions"]["remindersSent"] == 0

    monkeypatch.setattr(mailer, "send_email", real_send)
    result = _run(app)
    assert result["summary"]["ownerSubscriptions"]["remindersSent"] == 1
    with session_scope(app) as s:
        assert s.get(OwnerSubscription, ids["subscription_id"]).first_reminder_sent is True
