"""
Platform announcements written by the super admin.

An announcement is emailed to its audience whenever it becomes active: on
create when created active, and on an inactive -> active transition through
update or activation. Re-saving an already active announcement sends nothing.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from markupsafe import escape
from sqlalchemy import or_

from app.gymsaas import mailer
from app.gymsaas.audit import record_event
from app.gymsaas.constants import AUDIENCE_ALL, AUDIENCE_ROLES, AUDIENCES
from app.gymsaas.errors import BadRequest, NotFound
from app.gymsaas.utils import clean_str, parse_bool, parse_int, row_to_dict

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.gymsaas.models import User
    from app.gymsaas.modules.announcements.models import Announcement

logger = logging.getLogger(__name__)


def serialize_announcement(a: "Announcement") -> dict[str, Any]:
    return row_to_dict(a)


def _audience(value: Any, default: str | None = AUDIENCE_ALL) -> str:
    audience = clean_str(value) or default
    if audience not in AUDIENCES:
        raise BadRequest("Invalid audience. Must be ALL, GYM_OWNER, or MEMBER")
    return audience


def audience_emails(s: "Session", audience: str) -> list[str]:
    """Addresses of active, non-deleted users whose role falls in the audience."""
    from app.gymsaas.models import User

    rows = (
        s.query(User.email)
        .filter(
            User.is_deleted.is_(False),
            User.is_active.is_(True),
            User.role.in_(AUDIENCE_ROLES[audience]),
            User.email.isnot(None),
        )
        .all()
    )
    return [e.strip() for (e,) in rows if e and e.strip()]


def render_announcement(a: "Announcement") -> tuple[str, str, str]:
    subject = f"Announcement: {a.title}"
    text = f"{a.title}\n\n{a.message}\n"
    html = (
        '<div style="font-family: Arial, sans-serif; line-height:1.5;">'
        f'<h2 style="margin:0 0 12px 0;">{escape(a.title)}</h2>'
        f'<p style="margin:0; white-space:pre-line;">{escape(a.message)}</p>'
        "</div>"
    )
    return subject, text, html


def send_announcement_emails(s: "Session", a: "Announcement") -> dict[str, int]:
    emails = audience_emails(s, a.audience)
    subject, text, html = render_announcement(a)
    sent = failed = 0
    for to in emails:
        ok, info = mailer.send_email(to, subject, text, html=html)
        if ok:
            sent += 1
        else:
            failed += 1
            logger.warning("Announcement %s not delivered to %s: %s", a.id, to, info)
    logger.info("Announcement %s emailed: total=%s sent=%s failed=%s", a.id, len(emails), sent, failed)
    return {"total": len(emails), "sent": sent, "failed": failed}


def get_announcement(s: "Session", announcement_id: Any) -> "Announcement":
    from app.gymsaas.modules.announcements.models import Announcement

    if announcement_id in (None, ""):
        raise BadRequest("Announcement ID is required")
    try:
        aid = parse_int(announcement_id)
    except ValueError:
        aid = None
    a = s.get(Announcement, aid) if aid else None
    if a is None or a.is_deleted:
        raise NotFound("Announcement not found")
    return a


def create_announcement(s: "Session", payload: dict, user: "User") -> tuple["Announcement", dict | None]:
    from app.gymsaas.modules.announcements.models import Announcement

    title = clean_str(payload.get("title"))
    message = clean_str(payload.get("message"))
    if not title or not message:
        raise BadRequest("Missing required fields: title, message")

    now = datetime.utcnow()
    a = Announcement(
        title=title,
        message=message,
        audience=_audience(payload.get("audience")),
        is_active=parse_bool(payload.get("is_active"), default=True),
        created_at=now,
        updated_at=now,
    )
    s.add(a)
    s.flush()
    record_event(
        s,
        actor=user,
        action="announcement.create",
        entity_type="Announcement",
        entity_id=str(a.id),
        metadata={"title": title, "audience": a.audience, "is_active": a.is_active},
    )
    report = send_announcement_emails(s, a) if a.is_active else None
    return a, report


def update_announcement(s: "Session", a: "Announcement", payload: dict, user: "User") -> dict | None:
    was_active = a.is_active
    changes: dict[str, Any] = {}
    for key in ("title", "message"):
        if key in payload:
            value = clean_str(payload.get(key))
            if not value:
                raise BadRequest(f"{key} cannot be empty")
            if value != getattr(a, key):
                changes[key] = {"old": getattr(a, key), "new": value}
                setattr(a, key, value)
    if "audience" in payload:
        audience = _audience(payload.get("audience"), default=None)
        if audience != a.audience:
            changes["audience"] = {"old": a.audience, "new": audience}
            a.audience = audience
    if "is_active" in payload:
        active = bool(parse_bool(payload.get("is_active"), default=False))
        if active != a.is_active:
            changes["is_active"] = {"old": a.is_active, "new": active}
            a.is_active = active
    a.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="announcement.edit",
        entity_type="Announcement",
        entity_id=str(a.id),
        metadata={"changes": changes},
    )
    if not was_active and a.is_active:
        return send_announcement_emails(s, a)
    return None


def set_announcement_active(s: "Session", a: "Announcement", is_active: bool, user: "User") -> dict | None:
    was_active = a.is_active
    a.is_active = is_active
    a.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="announcement.activate" if is_active else "announcement.deactivate",
        entity_type="Announcement",
        entity_id=str(a.id),
        metadata={"old": was_active, "new": is_active},
    )
    if not was_active and is_active:
        return send_announcement_emails(s, a)
    return None


def delete_announcement(s: "Session", a: "Announcement", user: "User") -> "Announcement":
    a.is_deleted = True
    a.is_active = False
    a.updated_at = datetime.utcnow()
    record_event(s, actor=user, action="announcement.delete", entity_type="Announcement", entity_id=str(a.id), metadata={"title": a.title})
    return a


def announcements_query(s: "Session", body: dict) -> "Query":
    from app.gymsaas.modules.announcements.models import Announcement

    q = s.query(Announcement).filter(Announcement.is_deleted.is_(False))
    audience = clean_str(body.get("audience"))
    if audience:
        q = q.filter(Announcement.audience == audience)
    active = parse_bool(body.get("is_active"))
    if active is not None:
        q = q.filter(Announcement.is_active.is_(active))
    search = body.get("search")
    if isinstance(search, str) and search.strip():
        like = f"%{search.strip()}%"
        q = q.filter(or_(Announcement.title.ilike(like), Announcement.message.ilike(like)))
    return q.order_by(Announcement.created_at.desc(), Announcement.id.desc())
