from flask import Blueprint, g, jsonify

from app.gymsaas.db import db_session
from app.gymsaas.models import User
from app.gymsaas.modules.todos.service import (
    create_todo,
    delete_todo,
    get_todo_for,
    serialize_todo,
    todos_query,
    update_todo,
)
from app.gymsaas.rbac import require_gym_owner
from app.gymsaas.utils import json_body, paginate

bp = Blueprint("todos", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.post("/createtodo")
@require_gym_owner
def createtodo():
    s = db_session()
    todo = create_todo(s, json_body(), _current_user())
    s.commit()
    return jsonify({"message": "Todo created successfully", "data": serialize_todo(todo)}), 201


@bp.post("/updatetodo")
@require_gym_owner
def updatetodo():
    s = db_session()
    body = json_body()
    user = _current_user()
    todo = get_todo_for(s, user, body.get("id"))
    update_todo(s, todo, body, user)
    s.commit()
    return jsonify({"message": "Todo updated successfully", "data": serialize_todo(todo)})


@bp.post("/deletetodo")
@require_gym_owner
def deletetodo():
    s = db_session()
    user = _current_user()
    todo = get_todo_for(s, user, json_body().get("id"))
    delete_todo(s, todo, user)
    s.commit()
    return jsonify({"message": "Todo deleted successfully", "data": {"id": todo.id}})


@bp.post("/gettodos")
@require_gym_owner
def gettodos():
    s = db_session()
    body = json_body()
    return jsonify(paginate(todos_query(s, _current_user(), body), body, serialize=serialize_todo))
