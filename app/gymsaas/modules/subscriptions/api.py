from flask import Blueprint, g, jsonify

from app.gymsaas.db import db_session, get_live
from app.gymsaas.errors import BadRequest, NotFound
from app.gymsaas.models import User
from app.gymsaas.modules.payments.service import serialize_payment
from app.gymsaas.modules.subscriptions.models import OwnerSubscription
from app.gymsaas.modules.subscriptions.service import (
    create_owner_subscription,
    delete_owner_subscription,
    owner_subscriptions_query,
    renew_owner_subscription,
    serialize_owner_subscription,
    set_owner_subscription_active,
    update_owner_subscription,
)
from app.gymsaas.rbac import require_super_admin
from app.gymsaas.utils import json_body, paginate, parse_bool, parse_int, search_term

bp = Blueprint("subscriptions", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _get_subscription(s, body: dict) -> OwnerSubscription:
    if not body.get("id"):
        raise BadRequest("Subscription ID is required")
    sub = get_live(s, OwnerSubscription, body.get("id"))
    if not sub:
        raise NotFound("Subscription not found")
    return sub


@bp.post("/createsubscription")
@require_super_admin
def createsubscription():
    s = db_session()
    sub, payment = create_owner_subscription(s, json_body(), _current_user())
    s.commit()
    data = serialize_owner_subscription(sub)
    data["payment"] = serialize_payment(payment) if payment else None
    return jsonify({"message": "Subscription created successfully", "data": data}), 201


@bp.post("/getsubscriptions")
@require_super_admin
def getsubscriptions():
    s = db_session()
    body = json_body()
    try:
        owner_id = parse_int(body.get("owner_id"))
    except ValueError:
        return jsonify({"error": "owner_id must be an integer"}), 400
    q = owner_subscriptions_query(s, search_term(body), owner_id)
    return jsonify(paginate(q, body, serialize=serialize_owner_subscription))


@bp.post("/updatesubscription")
@require_super_admin
def updatesubscription():
    s = db_session()
    body = json_body()
    sub = _get_subscription(s, body)
    update_owner_subscription(s, sub, body, _current_user())
    s.commit()
    return jsonify({"message": "Subscription updated successfully", "data": serialize_owner_subscription(sub)})


@bp.post("/activesubscription")
@require_super_admin
def activesubscription():
    s = db_session()
    body = json_body()
    sub = _get_subscription(s, body)
    if "is_active" not in body:
        return jsonify({"error": "is_active is required"}), 400
    set_owner_subscription_active(s, sub, bool(parse_bool(body.get("is_active"))), _current_user())
    s.commit()
    state = "activated" if sub.is_active else "deactivated"
    return jsonify({"message": f"Subscription {state} successfully", "data": serialize_owner_subscription(sub)})


@bp.post("/deletesubscription")
@require_super_admin
def deletesubscription():
    s = db_session()
    sub = _get_subscription(s, json_body())
    delete_owner_subscription(s, sub, _current_user())
    s.commit()
    return jsonify({"message": "Subscription deleted successfully", "data": {"id": sub.id}})


@bp.post("/renewsubscription")
@require_super_admin
def renewsubscription():
    s = db_session()
    sub, payment = renew_owner_subscription(s, json_body(), _current_user())
    s.commit()
    data = serialize_owner_subscription(sub)
    data["payment"] = serialize_payment(payment)
    return jsonify({"message": "Owner subscription renewed successfully", "data": data}), 201
