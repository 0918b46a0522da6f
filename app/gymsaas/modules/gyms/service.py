from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_

from app.gymsaas.audit import record_event
from app.gymsaas.constants import RESOURCE_GYM, ROLE_GYM_OWNER
from app.gymsaas.errors import BadRequest, NotFound, UnauthorizedGym
from app.gymsaas.modules.subscriptions.limits import ensure_can_add
from app.gymsaas.utils import clean_str, parse_int, row_to_dict

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.gymsaas.models import User
    from app.gymsaas.modules.gyms.models import Gym

ADDRESS_FIELDS = ("address", "city", "state", "zip_code", "country", "phone_number")


def serialize_gym(gym: "Gym") -> dict[str, Any]:
    data = row_to_dict(gym)
    data["owner"] = {
        "id": gym.owner.id,
        "name": gym.owner.full_name,
        "email": gym.owner.email,
        "phone_number": gym.owner.phone_number,
    }
    data["location_count"] = sum(1 for loc in gym.locations if not loc.is_deleted)
    return data


def apply_fields(obj: Any, payload: dict, fields: tuple[str, ...]) -> dict[str, Any]:
    """Copy present text fields onto obj; returns {field: {old, new}} for what changed."""
    changes: dict[str, Any] = {}
    for field in fields:
        if field not in payload:
            continue
        new_value = clean_str(payload.get(field))
        old_value = getattr(obj, field)
        if new_value != old_value:
            changes[field] = {"old": old_value, "new": new_value}
            setattr(obj, field, new_value)
    return changes


def _id(value: Any) -> int | None:
    try:
        return parse_int(value)
    except ValueError:
        return None


def resolve_owner(s: "Session", user: "User", owner_id: Any) -> "User":
    """Owners act for themselves; admins must name a live GYM_OWNER."""
    from app.gymsaas.models import User

    if user.role == ROLE_GYM_OWNER:
        return user
    if owner_id in (None, ""):
        raise BadRequest("Missing required field: owner_id")
    uid = _id(owner_id)
    owner = s.get(User, uid) if uid else None
    if owner is None or owner.is_deleted or owner.role != ROLE_GYM_OWNER:
        raise BadRequest("Invalid owner_id")
    return owner


def get_gym_for(s: "Session", user: "User", gym_id: Any) -> "Gym":
    """Live gym visible to user; another owner's gym is UNAUTHORIZED_GYM."""
    from app.gymsaas.modules.gyms.models import Gym

    if gym_id in (None, ""):
        raise BadRequest("Gym ID is required")
    gid = _id(gym_id)
    gym = s.get(Gym, gid) if gid else None
    if gym is None or gym.is_deleted:
        raise NotFound("Gym not found")
    if user.role == ROLE_GYM_OWNER and gym.owner_id != user.id:
        raise UnauthorizedGym("Gym does not belong to you")
    return gym


def create_gym(s: "Session", payload: dict, user: "User") -> "Gym":
    from app.gymsaas.modules.gyms.models import Gym

    name = clean_str(payload.get("name"))
    if not name:
        raise BadRequest("Missing required field: name")
    owner = resolve_owner(s, user, payload.get("owner_id"))
    ensure_can_add(s, owner.id, RESOURCE_GYM)

    now = datetime.utcnow()
    gym = Gym(owner_id=owner.id, name=name, is_active=True, created_at=now, updated_at=now)
    apply_fields(gym, payload, ADDRESS_FIELDS)
    s.add(gym)
    s.flush()
    record_event(
        s,
        actor=user,
        action="gym.create",
        entity_type="Gym",
        entity_id=str(gym.id),
        metadata={"name": name, "owner_id": owner.id},
    )
    return gym


def update_gym(s: "Session", gym: "Gym", payload: dict, user: "User") -> "Gym":
    changes = apply_fields(gym, payload, ("name",) + ADDRESS_FIELDS)
    if not gym.name:
        raise BadRequest("name cannot be empty")

    # Only admins can move a gym; the new owner must have room for it
    if user.role != ROLE_GYM_OWNER and payload.get("owner_id") not in (None, ""):
        new_owner = resolve_owner(s, user, payload.get("owner_id"))
        if new_owner.id != gym.owner_id:
            ensure_can_add(s, new_owner.id, RESOURCE_GYM)
            changes["owner_id"] = {"old": gym.owner_id, "new": new_owner.id}
            gym.owner_id = new_owner.id
            gym.owner = new_owner

    gym.updated_at = datetime.utcnow()
    record_event(s, actor=user, action="gym.edit", entity_type="Gym", entity_id=str(gym.id), metadata={"changes": changes})
    return gym


def set_gym_active(s: "Session", gym: "Gym", is_active: bool | None, user: "User") -> "Gym":
    old = gym.is_active
    gym.is_active = (not old) if is_active is None else is_active
    gym.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="gym.activate" if gym.is_active else "gym.deactivate",
        entity_type="Gym",
        entity_id=str(gym.id),
        metadata={"old": old, "new": gym.is_active},
    )
    return gym


def delete_gym(s: "Session", gym: "Gym", user: "User") -> "Gym":
    """Soft delete the gym and its locations."""
    now = datetime.utcnow()
    gym.is_deleted = True
    gym.is_active = False
    gym.updated_at = now
    for loc in gym.locations:
        if not loc.is_deleted:
            loc.is_deleted = True
            loc.is_active = False
            loc.updated_at = now
    record_event(s, actor=user, action="gym.delete", entity_type="Gym", entity_id=str(gym.id), metadata={"name": gym.name})
    return gym


def gyms_query(s: "Session", user: "User", body: dict) -> "Query":
    from app.gymsaas.models import User
    from app.gymsaas.modules.gyms.models import Gym

    q = s.query(Gym).join(User, User.id == Gym.owner_id).filter(Gym.is_deleted.is_(False))
    if user.role == ROLE_GYM_OWNER:
        q = q.filter(Gym.owner_id == user.id)
    else:
        owner_id = _id(body.get("owner_id"))
        if owner_id:
            q = q.filter(Gym.owner_id == owner_id)
    search = body.get("search")
    if isinstance(search, str) and search.strip():
        like = f"%{search.strip()}%"
        q = q.filter(
            or_(
                Gym.name.ilike(like),
                Gym.city.ilike(like),
                User.first_name.ilike(like),
                User.last_name.ilike(like),
                User.email.ilike(like),
                User.phone_number.ilike(like),
            )
        )
    return q.order_by(Gym.created_at.desc(), Gym.id.desc())
