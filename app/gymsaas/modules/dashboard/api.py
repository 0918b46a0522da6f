from flask import Blueprint, g, jsonify

from app.gymsaas.db import db_session
from app.gymsaas.models import User
from app.gymsaas.modules.dashboard.service import admin_overview, owner_overview
from app.gymsaas.rbac import require_gym_owner, require_super_admin
from app.gymsaas.utils import json_body

bp = Blueprint("dashboard_api", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.post("/overview")
@require_super_admin
def overview():
    return jsonify(admin_overview(db_session(), json_body()))


@bp.post("/owner-overview")
@require_gym_owner
def owner_overview_route():
    return jsonify(owner_overview(db_session(), _current_user().id, json_body()))
