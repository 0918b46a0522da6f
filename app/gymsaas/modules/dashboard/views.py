from flask import Blueprint, g, render_template, request

from app.gymsaas.constants import ROLE_SUPER_ADMIN
from app.gymsaas.db import db_session
from app.gymsaas.modules.dashboard.service import admin_overview, owner_overview
from app.gymsaas.rbac import require_admin_or_owner

bp = Blueprint("dashboard", __name__)


@bp.get("/dashboard")
@require_admin_or_owner
def index():
    s = db_session()
    user = g.current_user
    body = {"from": request.args.get("from"), "to": request.args.get("to")}
    if user.role == ROLE_SUPER_ADMIN:
        return render_template("dashboard/admin.html", overview=admin_overview(s, body), user=user)
    return render_template("dashboard/owner.html", overview=owner_overview(s, user.id, body), user=user)
