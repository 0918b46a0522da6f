from flask import Blueprint, g, jsonify

from app.gymsaas.db import db_session
from app.gymsaas.errors import BadRequest
from app.gymsaas.models import User
from app.gymsaas.modules.announcements.service import (
    announcements_query,
    create_announcement,
    delete_announcement,
    get_announcement,
    serialize_announcement,
    set_announcement_active,
    update_announcement,
)
from app.gymsaas.rbac import require_super_admin
from app.gymsaas.utils import json_body, paginate, parse_bool

bp = Blueprint("announcements", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.post("/createannouncement")
@require_super_admin
def createannouncement():
    s = db_session()
    a, report = create_announcement(s, json_body(), _current_user())
    s.commit()
    return jsonify(
        {"message": "Announcement created successfully", "data": serialize_announcement(a), "emailReport": report}
    ), 201


@bp.post("/updateannouncement")
@require_super_admin
def updateannouncement():
    s = db_session()
    body = json_body()
    a = get_announcement(s, body.get("id"))
    report = update_announcement(s, a, body, _current_user())
    s.commit()
    return jsonify({"message": "Announcement updated successfully", "data": serialize_announcement(a), "emailReport": report})


@bp.post("/activeannouncement")
@require_super_admin
def activeannouncement():
    s = db_session()
    body = json_body()
    is_active = parse_bool(body.get("is_active"))
    if is_active is None:
        raise BadRequest("is_active is required")
    a = get_announcement(s, body.get("id"))
    report = set_announcement_active(s, a, is_active, _current_user())
    s.commit()
    state = "activated" if a.is_active else "deactivated"
    return jsonify({"message": f"Announcement {state} successfully", "data": serialize_announcement(a), "emailReport": report})


@bp.post("/deleteannouncement")
@require_super_admin
def deleteannouncement():
    s = db_session()
    a = get_announcement(s, json_body().get("id"))
    delete_announcement(s, a, _current_user())
    s.commit()
    return jsonify({"message": "Announcement deleted successfully", "data": {"id": a.id}})


@bp.post("/getannouncement")
@require_super_admin
def getannouncement():
    s = db_session()
    a = get_announcement(s, json_body().get("id"))
    return jsonify({"data": serialize_announcement(a)})


@bp.post("/getannouncements")
@require_super_admin
def getannouncements():
    s = db_session()
    body = json_body()
    return jsonify(paginate(announcements_query(s, body), body, serialize=serialize_announcement))
