from flask import Blueprint, jsonify, request

from app.gymsaas.db import db_session
from app.gymsaas.modules.notifications.service import check_subscriptions
from app.gymsaas.security import verify_cron_request

bp = Blueprint("cron", __name__)


@bp.post("/check-subscriptions")
def check_subscriptions_route():
    if not verify_cron_request(request):
        return jsonify({"message": "Unauthorized"}), 401
    s = db_session()
    result = check_subscriptions(s)
    s.commit()
    return jsonify(result)
