from flask import Blueprint, g, jsonify

from app.gymsaas.db import db_session
from app.gymsaas.models import User
from app.gymsaas.modules.profile.service import serialize_user, update_password, update_profile
from app.gymsaas.rbac import require_admin_or_owner
from app.gymsaas.utils import json_body

bp = Blueprint("profile", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.post("/getprofile")
@require_admin_or_owner
def getprofile():
    return jsonify({"data": serialize_user(_current_user())})


@bp.post("/updateprofile")
@require_admin_or_owner
def updateprofile():
    s = db_session()
    user = update_profile(s, _current_user(), json_body())
    s.commit()
    return jsonify({"message": "Profile updated successfully", "data": serialize_user(user)})


@bp.post("/updatepassword")
@require_admin_or_owner
def updatepassword():
    s = db_session()
    update_password(s, _current_user(), json_body())
    s.commit()
    return jsonify({"message": "Password updated successfully"})
