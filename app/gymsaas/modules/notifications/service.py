"""
Daily subscription check.

Runs once a day (cron endpoint or scripts/check_subscriptions.py). For every
active, non-expired subscription it sends the expiry notice on the end date and
the two reminders before it, then mails the summaries. A failure on one row is
logged and the batch carries on.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from app.gymsaas import mailer
from app.gymsaas.constants import FIRST_REMINDER_DAYS, ROLE_SUPER_ADMIN, SECOND_REMINDER_DAYS
from app.gymsaas.modules.notifications import emails
from app.gymsaas.modules.subscriptions.helpers import days_until, update_expired_subscriptions

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def _reminder_flag(days_left: int, sub) -> str | None:
    """Name of the reminder flag due for this subscription today, if any."""
    if days_left == FIRST_REMINDER_DAYS and not sub.first_reminder_sent:
        return "first_reminder_sent"
    if days_left == SECOND_REMINDER_DAYS and not sub.second_reminder_sent:
        return "second_reminder_sent"
    return None


def _live(s: "Session", model):
    return (
        s.query(model)
        .filter(model.is_active.is_(True), model.is_deleted.is_(False), model.is_expired.is_(False))
        .order_by(model.end_date.asc(), model.id.asc())
        .all()
    )


def _check_owner_subscriptions(s: "Session", today: date, now: datetime) -> tuple[list[dict], int]:
    from app.gymsaas.modules.subscriptions.models import OwnerSubscription

    expired: list[dict] = []
    reminders = 0
    for sub in _live(s, OwnerSubscription):
        try:
            days_left = days_until(sub.end_date, today)
            owner = sub.owner
            name = owner.full_name
            plan_name = sub.plan.name if sub.plan else "-"
            if days_left == 0:
                sub.is_expired = True
                sub.notification_sent = True
                sub.is_active = False
                sub.updated_at = now
                expired.append({"name": name, "email": owner.email or "-", "plan_name": plan_name})
                if owner.email:
                    subject, text, html = emails.owner_reminder(name, 0, plan_name)
                    mailer.send_email(owner.email, subject, text, html=html)
                continue
            flag = _reminder_flag(days_left, sub)
            if flag and owner.email:
                subject, text, html = emails.owner_reminder(name, days_left, plan_name)
                ok, _ = mailer.send_email(owner.email, subject, text, html=html)
                if ok:
                    setattr(sub, flag, True)
                    sub.updated_at = now
                    reminders += 1
        except Exception:
            logger.exception("Subscription check failed for owner subscription %s", sub.id)
    return expired, reminders


def _check_member_subscriptions(s: "Session", today: date, now: datetime) -> tuple[dict[int, list[dict]], int]:
    from app.gymsaas.modules.subscriptions.models import MemberSubscription

    expired_by_owner: dict[int, list[dict]] = defaultdict(list)
    reminders = 0
    for sub in _live(s, MemberSubscription):
        try:
            days_left = days_until(sub.end_date, today)
            person = sub.member.user
            name = person.full_name
            if days_left == 0:
                sub.is_expired = True
                sub.notification_sent = True
                sub.is_active = False
                sub.updated_at = now
                expired_by_owner[sub.member.gym.owner_id].append({"name": name, "email": person.email or "-"})
                if person.email:
                    subject, text, html = emails.member_reminder(name, 0)
                    mailer.send_email(person.email, subject, text, html=html)
                continue
            flag = _reminder_flag(days_left, sub)
            if flag and person.email:
                subject, text, html = emails.member_reminder(name, days_left)
                ok, _ = mailer.send_email(person.email, subject, text, html=html)
                if ok:
                    setattr(sub, flag, True)
                    sub.updated_at = now
                    reminders += 1
        except Exception:
            logger.exception("Subscription check failed for member subscription %s", sub.id)
    return expired_by_owner, reminders


def _send_summaries(s: "Session", expired_owners: list[dict], expired_by_owner: dict[int, list[dict]]) -> None:
    from app.gymsaas.models import User

    if expired_owners:
        subject, text, html = emails.admin_summary(expired_owners)
        admins = (
            s.query(User)
            .filter(
                User.role == ROLE_SUPER_ADMIN,
                User.is_active.is_(True),
                User.is_deleted.is_(False),
                User.email.isnot(None),
            )
            .all()
        )
        for admin in admins:
            mailer.send_email(admin.email, subject, text, html=html)

    for owner_id, members in expired_by_owner.items():
        owner = s.get(User, owner_id)
        if owner is None or not owner.email:
            continue
        subject, text, html = emails.owner_summary(members)
        mailer.send_email(owner.email, subject, text, html=html)


def check_subscriptions(s: "Session", *, today: date | None = None) -> dict[str, Any]:
    """Run the daily check. Caller commits."""
    now = datetime.utcnow()
    today = today or now.date()

    expired_owners, owner_reminders = _check_owner_subscriptions(s, today, now)
    expired_by_owner, member_reminders = _check_member_subscriptions(s, today, now)
    _send_summaries(s, expired_owners, expired_by_owner)
    s.flush()

    # terms that ended before today were missed by earlier runs
    swept_owner, swept_member = update_expired_subscriptions(s, now=datetime(today.year, today.month, today.day))
    if swept_owner or swept_member:
        logger.info("Swept past-due subscriptions: owner=%s member=%s", swept_owner, swept_member)

    summary = {
        "ownerSubscriptions": {"expired": len(expired_owners), "remindersSent": owner_reminders},
        "memberSubscriptions": {
            "expired": sum(len(v) for v in expired_by_owner.values()),
            "remindersSent": member_reminders,
        },
    }
    logger.info("Subscription check completed: %s", summary)
    return {"message": "Subscription check completed", "summary": summary}
