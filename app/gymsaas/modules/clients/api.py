from flask import Blueprint, g, jsonify

from app.gymsaas.db import db_session
from app.gymsaas.models import User
from app.gymsaas.modules.clients.service import (
    clients_query,
    create_client,
    delete_client,
    get_client,
    serialize_client,
    set_client_active,
    update_client,
    validate_client_payload,
)
from app.gymsaas.rbac import require_super_admin
from app.gymsaas.utils import json_body, paginate, parse_bool, search_term

bp = Blueprint("clients", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.post("/createclient")
@require_super_admin
def createclient():
    s = db_session()
    body = json_body()
    errors = validate_client_payload(body)
    if errors:
        return jsonify({"error": " ".join(errors)}), 400
    client = create_client(s, body, _current_user())
    s.commit()
    return jsonify({"message": "Client created successfully", "data": serialize_client(s, client)}), 201


@bp.post("/updateclient")
@require_super_admin
def updateclient():
    s = db_session()
    body = json_body()
    client = get_client(s, body.get("id"))
    update_client(s, client, body, _current_user())
    s.commit()
    return jsonify({"message": "Client updated successfully", "data": serialize_client(s, client)})


@bp.post("/getclient")
@require_super_admin
def getclient():
    s = db_session()
    client = get_client(s, json_body().get("id"))
    return jsonify({"data": serialize_client(s, client)})


@bp.post("/getclients")
@require_super_admin
def getclients():
    s = db_session()
    body = json_body()
    q = clients_query(s, search_term(body), parse_bool(body.get("is_active")))
    return jsonify(paginate(q, body, serialize=lambda c: serialize_client(s, c)))


@bp.post("/activeclient")
@require_super_admin
def activeclient():
    s = db_session()
    body = json_body()
    client = get_client(s, body.get("id"))
    set_client_active(s, client, parse_bool(body.get("is_active")), _current_user())
    s.commit()
    state = "activated" if client.is_active else "deactivated"
    return jsonify({"message": f"Client {state} successfully", "data": serialize_client(s, client)})


@bp.post("/deleteclient")
@require_super_admin
def deleteclient():
    s = db_session()
    client = get_client(s, json_body().get("id"))
    delete_client(s, client, _current_user())
    s.commit()
    return jsonify({"message": "Client deleted successfully", "data": {"id": client.id}})
