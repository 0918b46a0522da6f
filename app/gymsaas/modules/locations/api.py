from flask import Blueprint, g, jsonify

from app.gymsaas.db import db_session
from app.gymsaas.models import User
from app.gymsaas.modules.locations.service import (
    create_location,
    delete_location,
    get_location_for,
    locations_query,
    serialize_location,
    set_location_active,
    update_location,
)
from app.gymsaas.rbac import require_admin_or_owner
from app.gymsaas.utils import json_body, paginate, parse_bool

bp = Blueprint("locations", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.post("/createlocation")
@require_admin_or_owner
def createlocation():
    s = db_session()
    loc = create_location(s, json_body(), _current_user())
    s.commit()
    return jsonify({"message": "Location created successfully", "data": serialize_location(loc)}), 201


@bp.post("/updatelocation")
@require_admin_or_owner
def updatelocation():
    s = db_session()
    body = json_body()
    user = _current_user()
    loc = get_location_for(s, user, body.get("id"))
    update_location(s, loc, body, user)
    s.commit()
    return jsonify({"message": "Location updated successfully", "data": serialize_location(loc)})


@bp.post("/getlocation")
@require_admin_or_owner
def getlocation():
    s = db_session()
    loc = get_location_for(s, _current_user(), json_body().get("id"))
    return jsonify({"data": serialize_location(loc)})


@bp.post("/getlocations")
@require_admin_or_owner
def getlocations():
    s = db_session()
    body = json_body()
    q = locations_query(s, _current_user(), body)
    return jsonify(paginate(q, body, serialize=serialize_location))


@bp.post("/activelocation")
@require_admin_or_owner
def activelocation():
    s = db_session()
    body = json_body()
    user = _current_user()
    loc = get_location_for(s, user, body.get("id"))
    set_location_active(s, loc, parse_bool(body.get("is_active")), user)
    s.commit()
    state = "activated" if loc.is_active else "deactivated"
    return jsonify({"message": f"Location {state} successfully", "data": serialize_location(loc)})


@bp.post("/deletelocation")
@require_admin_or_owner
def deletelocation():
    s = db_session()
    user = _current_user()
    loc = get_location_for(s, user, json_body().get("id"))
    delete_location(s, loc, user)
    s.commit()
    return jsonify({"message": "Location deleted successfully", "data": {"id": loc.id}})
