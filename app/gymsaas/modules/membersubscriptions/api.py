from flask import Blueprint, g, jsonify

from app.gymsaas.db import db_session
from app.gymsaas.models import User
from app.gymsaas.modules.membersubscriptions.service import (
    admin_create,
    admin_renew,
    admin_update,
    get_member_subscription,
    member_subscriptions_query,
    owner_create,
    owner_delete,
    owner_renew,
    owner_update,
    serialize_member_subscription,
)
from app.gymsaas.rbac import require_admin_or_owner, require_gym_owner, require_super_admin
from app.gymsaas.utils import json_body, paginate

bp = Blueprint("membersubscriptions", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


# ---------- Admin ----------
@bp.post("/createmembersubscription")
@require_super_admin
def createmembersubscription():
    s = db_session()
    sub = admin_create(s, json_body(), _current_user())
    s.commit()
    return jsonify({"message": "Member subscription created successfully", "data": serialize_member_subscription(sub)}), 201


@bp.post("/renewmembersubscription")
@require_super_admin
def renewmembersubscription():
    s = db_session()
    sub = admin_renew(s, json_body(), _current_user())
    s.commit()
    return jsonify({"message": "Member subscription renewed successfully", "data": serialize_member_subscription(sub)}), 201


@bp.post("/updatemembersubscription")
@require_super_admin
def updatemembersubscription():
    s = db_session()
    body = json_body()
    user = _current_user()
    sub = get_member_subscription(s, body.get("id"), user)
    admin_update(s, sub, body, user)
    s.commit()
    return jsonify({"message": "Member subscription updated successfully", "data": serialize_member_subscription(sub)})


# ---------- Gym owner ----------
@bp.post("/createmembersubscription-owner")
@require_gym_owner
def createmembersubscription_owner():
    s = db_session()
    sub = owner_create(s, json_body(), _current_user())
    s.commit()
    return jsonify({"message": "Member subscription created successfully", "data": serialize_member_subscription(sub)}), 201


@bp.post("/renewmembersubscription-owner")
@require_gym_owner
def renewmembersubscription_owner():
    s = db_session()
    sub = owner_renew(s, json_body(), _current_user())
    s.commit()
    return jsonify(
        {
            "message": "Member subscription renewed and payment created successfully",
            "data": serialize_member_subscription(sub),
        }
    ), 201


@bp.post("/updatemembersubscription-owner")
@require_gym_owner
def updatemembersubscription_owner():
    s = db_session()
    body = json_body()
    user = _current_user()
    sub = get_member_subscription(s, body.get("id"), user)
    owner_update(s, sub, body, user)
    s.commit()
    return jsonify({"message": "Member subscription updated successfully", "data": serialize_member_subscription(sub)})


@bp.post("/deletemembersubscription-owner")
@require_gym_owner
def deletemembersubscription_owner():
    s = db_session()
    user = _current_user()
    sub = get_member_subscription(s, json_body().get("id"), user)
    owner_delete(s, sub, user)
    s.commit()
    return jsonify({"message": "Member subscription deleted successfully", "data": {"id": sub.id}})


@bp.post("/getmembersubscriptions")
@require_admin_or_owner
def getmembersubscriptions():
    s = db_session()
    body = json_body()
    q = member_subscriptions_query(s, _current_user(), body)
    return jsonify(paginate(q, body, serialize=serialize_member_subscription))
