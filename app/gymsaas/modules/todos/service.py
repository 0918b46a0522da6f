from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.gymsaas.audit import record_event
from app.gymsaas.errors import BadRequest, NotFound
from app.gymsaas.utils import clean_str, parse_bool, parse_int, row_to_dict

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.gymsaas.models import User
    from app.gymsaas.modules.todos.models import Todo


def serialize_todo(todo: "Todo") -> dict[str, Any]:
    return row_to_dict(todo)


def get_todo_for(s: "Session", user: "User", todo_id: Any) -> "Todo":
    """A todo is only visible to the user who wrote it."""
    from app.gymsaas.modules.todos.models import Todo

    if todo_id in (None, ""):
        raise BadRequest("Missing required field: id")
    try:
        tid = parse_int(todo_id)
    except ValueError:
        tid = None
    todo = s.get(Todo, tid) if tid else None
    if todo is None or todo.is_deleted or todo.user_id != user.id:
        raise NotFound("Todo not found")
    return todo


def create_todo(s: "Session", payload: dict, user: "User") -> "Todo":
    from app.gymsaas.modules.todos.models import Todo

    title = clean_str(payload.get("title"))
    description = clean_str(payload.get("description"))
    if not title or not description:
        raise BadRequest("Missing required fields: title, description")

    now = datetime.utcnow()
    todo = Todo(
        user_id=user.id,
        title=title,
        description=description,
        is_completed=False,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    s.add(todo)
    s.flush()
    record_event(s, actor=user, action="todo.create", entity_type="Todo", entity_id=str(todo.id), metadata={"title": title})
    return todo


def update_todo(s: "Session", todo: "Todo", payload: dict, user: "User") -> "Todo":
    changes = {}
    if "title" in payload:
        title = clean_str(payload.get("title"))
        if not title:
            raise BadRequest("title cannot be empty")
        if title != todo.title:
            changes["title"] = {"old": todo.title, "new": title}
            todo.title = title
    if "description" in payload:
        description = clean_str(payload.get("description"))
        if description != todo.description:
            changes["description"] = {"old": todo.description, "new": description}
            todo.description = description
    if "is_completed" in payload:
        done = bool(parse_bool(payload.get("is_completed"), default=False))
        if done != todo.is_completed:
            changes["is_completed"] = {"old": todo.is_completed, "new": done}
            todo.is_completed = done
    todo.updated_at = datetime.utcnow()
    record_event(s, actor=user, action="todo.edit", entity_type="Todo", entity_id=str(todo.id), metadata={"changes": changes})
    return todo


def delete_todo(s: "Session", todo: "Todo", user: "User") -> "Todo":
    todo.is_deleted = True
    todo.updated_at = datetime.utcnow()
    record_event(s, actor=user, action="todo.delete", entity_type="Todo", entity_id=str(todo.id), metadata={"title": todo.title})
    return todo


def todos_query(s: "Session", user: "User", body: dict) -> "Query":
    from app.gymsaas.modules.todos.models import Todo

    q = s.query(Todo).filter(Todo.user_id == user.id, Todo.is_deleted.is_(False))
    if isinstance(body.get("is_completed"), bool):
        q = q.filter(Todo.is_completed.is_(body["is_completed"]))
    return q.order_by(Todo.created_at.desc(), Todo.id.desc())
