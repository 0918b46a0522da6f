from flask import Blueprint, g, jsonify

from app.gymsaas.db import db_session, get_live
from app.gymsaas.errors import NotFound
from app.gymsaas.models import User
from app.gymsaas.modules.plans.models import Plan
from app.gymsaas.modules.plans.service import (
    create_plan,
    delete_plan,
    plans_query,
    serialize_plan,
    set_plan_active,
    update_plan,
    validate_plan_payload,
)
from app.gymsaas.rbac import require_super_admin
from app.gymsaas.utils import json_body, paginate, parse_bool, search_term

bp = Blueprint("plans", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _get_plan(s, body: dict) -> Plan:
    plan = get_live(s, Plan, body.get("id"))
    if not plan:
        raise NotFound("Plan not found")
    return plan


@bp.post("/createplan")
@require_super_admin
def createplan():
    s = db_session()
    body = json_body()
    errors = validate_plan_payload(body)
    if errors:
        return jsonify({"error": " ".join(errors)}), 400
    plan = create_plan(s, body, _current_user())
    s.commit()
    return jsonify({"message": "Plan created successfully", "data": serialize_plan(plan)}), 201


@bp.post("/updateplan")
@require_super_admin
def updateplan():
    s = db_session()
    body = json_body()
    plan = _get_plan(s, body)
    errors = validate_plan_payload(body, partial=True)
    if errors:
        return jsonify({"error": " ".join(errors)}), 400
    update_plan(s, plan, body, _current_user())
    s.commit()
    return jsonify({"message": "Plan updated successfully", "data": serialize_plan(plan)})


@bp.post("/getplan")
@require_super_admin
def getplan():
    s = db_session()
    plan = _get_plan(s, json_body())
    return jsonify({"data": serialize_plan(plan)})


@bp.post("/getplans")
@require_super_admin
def getplans():
    s = db_session()
    body = json_body()
    q = plans_query(s, search_term(body))
    if "is_active" in body:
        q = q.filter(Plan.is_active.is_(bool(parse_bool(body.get("is_active")))))
    return jsonify(paginate(q, body, serialize=serialize_plan))


@bp.post("/activeplan")
@require_super_admin
def activeplan():
    s = db_session()
    body = json_body()
    plan = _get_plan(s, body)
    if "is_active" not in body:
        return jsonify({"error": "is_active is required"}), 400
    set_plan_active(s, plan, bool(parse_bool(body.get("is_active"))), _current_user())
    s.commit()
    state = "activated" if plan.is_active else "deactivated"
    return jsonify({"message": f"Plan {state} successfully", "data": serialize_plan(plan)})


@bp.post("/deleteplan")
@require_super_admin
def deleteplan():
    s = db_session()
    plan = _get_plan(s, json_body())
    delete_plan(s, plan, _current_user())
    s.commit()
    return jsonify({"message": "Plan deleted successfully", "data": {"id": plan.id}})
