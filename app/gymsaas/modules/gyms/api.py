from flask import Blueprint, g, jsonify

from app.gymsaas.db import db_session
from app.gymsaas.models import User
from app.gymsaas.modules.gyms.service import (
    create_gym,
    delete_gym,
    get_gym_for,
    gyms_query,
    serialize_gym,
    set_gym_active,
    update_gym,
)
from app.gymsaas.rbac import require_admin_or_owner, require_super_admin
from app.gymsaas.utils import json_body, paginate, parse_bool

bp = Blueprint("gyms", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.post("/creategym")
@require_admin_or_owner
def creategym():
    s = db_session()
    gym = create_gym(s, json_body(), _current_user())
    s.commit()
    return jsonify({"message": "Gym created successfully", "data": serialize_gym(gym)}), 201


@bp.post("/updategym")
@require_admin_or_owner
def updategym():
    s = db_session()
    body = json_body()
    user = _current_user()
    gym = get_gym_for(s, user, body.get("id"))
    update_gym(s, gym, body, user)
    s.commit()
    return jsonify({"message": "Gym updated successfully", "data": serialize_gym(gym)})


@bp.post("/getgym")
@require_admin_or_owner
def getgym():
    s = db_session()
    gym = get_gym_for(s, _current_user(), json_body().get("id"))
    return jsonify({"data": serialize_gym(gym)})


@bp.post("/getgyms")
@require_admin_or_owner
def getgyms():
    s = db_session()
    body = json_body()
    q = gyms_query(s, _current_user(), body)
    return jsonify(paginate(q, body, serialize=serialize_gym))


@bp.post("/activegym")
@require_super_admin
def activegym():
    s = db_session()
    body = json_body()
    user = _current_user()
    gym = get_gym_for(s, user, body.get("id"))
    set_gym_active(s, gym, parse_bool(body.get("is_active")), user)
    s.commit()
    state = "activated" if gym.is_active else "deactivated"
    return jsonify({"message": f"Gym {state} successfully", "data": serialize_gym(gym)})


@bp.post("/deletegym")
@require_admin_or_owner
def deletegym():
    s = db_session()
    user = _current_user()
    gym = get_gym_for(s, user, json_body().get("id"))
    delete_gym(s, gym, user)
    s.commit()
    return jsonify({"message": "Gym deleted successfully", "data": {"id": gym.id}})
