from flask import Blueprint, g, jsonify

from app.gymsaas.db import db_session
from app.gymsaas.models import User
from app.gymsaas.modules.members.service import (
    create_member,
    delete_member,
    get_member_for,
    members_query,
    serialize_member,
    update_member,
)
from app.gymsaas.rbac import require_admin_or_owner, require_gym_owner
from app.gymsaas.utils import json_body, paginate

bp = Blueprint("members", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.post("/createmember")
@require_gym_owner
def createmember():
    s = db_session()
    member = create_member(s, json_body(), _current_user())
    s.commit()
    return jsonify({"message": "Member created successfully", "data": serialize_member(member)}), 201


@bp.post("/updatemember")
@require_admin_or_owner
def updatemember():
    s = db_session()
    body = json_body()
    user = _current_user()
    member = get_member_for(s, user, body.get("id"))
    update_member(s, member, body, user)
    s.commit()
    return jsonify({"message": "Member updated successfully", "data": serialize_member(member)})


@bp.post("/deletemember")
@require_admin_or_owner
def deletemember():
    s = db_session()
    user = _current_user()
    member = get_member_for(s, user, json_body().get("id"))
    member_id = delete_member(s, member, user)
    s.commit()
    return jsonify({"message": "Member deleted successfully", "data": {"id": member_id}})


@bp.post("/getmember")
@require_admin_or_owner
def getmember():
    s = db_session()
    member = get_member_for(s, _current_user(), json_body().get("id"))
    return jsonify({"data": serialize_member(member)})


@bp.post("/getmembers")
@require_admin_or_owner
def getmembers():
    s = db_session()
    body = json_body()
    q = members_query(s, _current_user(), body)
    return jsonify(paginate(q, body, serialize=serialize_member))
