from flask import Blueprint, g, jsonify

from app.gymsaas.db import db_session
from app.gymsaas.models import User
from app.gymsaas.modules.equipment.service import (
    create_equipment,
    delete_equipment,
    equipment_query,
    get_equipment_for,
    serialize_equipment,
    update_equipment,
)
from app.gymsaas.rbac import require_gym_owner
from app.gymsaas.utils import json_body, paginate

bp = Blueprint("equipment", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.post("/createequipment")
@require_gym_owner
def createequipment():
    s = db_session()
    equipment = create_equipment(s, json_body(), _current_user())
    s.commit()
    return jsonify({"message": "Equipment created successfully", "data": serialize_equipment(equipment)}), 201


@bp.post("/updateequipment")
@require_gym_owner
def updateequipment():
    s = db_session()
    body = json_body()
    user = _current_user()
    equipment = get_equipment_for(s, user, body.get("id"))
    update_equipment(s, equipment, body, user)
    s.commit()
    return jsonify({"message": "Equipment updated successfully", "data": serialize_equipment(equipment)})


@bp.post("/deleteequipment")
@require_gym_owner
def deleteequipment():
    s = db_session()
    user = _current_user()
    equipment = get_equipment_for(s, user, json_body().get("id"))
    delete_equipment(s, equipment, user)
    s.commit()
    return jsonify({"message": "Equipment deleted successfully", "data": {"id": equipment.id}})


@bp.post("/getequipment")
@require_gym_owner
def getequipment():
    s = db_session()
    equipment = get_equipment_for(s, _current_user(), json_body().get("id"))
    return jsonify({"data": serialize_equipment(equipment)})


@bp.post("/getequipments")
@require_gym_owner
def getequipments():
    s = db_session()
    body = json_body()
    q = equipment_query(s, _current_user(), body)
    return jsonify(paginate(q, body, serialize=serialize_equipment))
