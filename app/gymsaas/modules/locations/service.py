from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_

from app.gymsaas.audit import record_event
from app.gymsaas.constants import RESOURCE_LOCATION, ROLE_GYM_OWNER
from app.gymsaas.errors import BadRequest, Forbidden, LimitExceeded, NotFound, SubscriptionInactive, UnauthorizedGym
from app.gymsaas.modules.gyms.service import ADDRESS_FIELDS, apply_fields
from app.gymsaas.modules.subscriptions.limits import check_limit_exceeded, ensure_can_add, validate_owner_subscription
from app.gymsaas.utils import clean_str, parse_int, row_to_dict

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.gymsaas.models import User
    from app.gymsaas.modules.gyms.models import Gym, Location


def serialize_location(loc: "Location") -> dict[str, Any]:
    data = row_to_dict(loc)
    gym = loc.gym
    data["gym"] = {
        "id": gym.id,
        "name": gym.name,
        "owner": {"id": gym.owner.id, "name": gym.owner.full_name, "email": gym.owner.email},
    }
    return data


def _id(value: Any) -> int | None:
    try:
        return parse_int(value)
    except ValueError:
        return None


def _live_gym(s: "Session", gym_id: Any) -> "Gym":
    from app.gymsaas.modules.gyms.models import Gym

    gid = _id(gym_id)
    gym = s.get(Gym, gid) if gid else None
    if gym is None or gym.is_deleted:
        raise BadRequest("Invalid gym_id")
    return gym


def get_location_for(s: "Session", user: "User", location_id: Any) -> "Location":
    from app.gymsaas.modules.gyms.models import Location

    if location_id in (None, ""):
        raise BadRequest("Location ID is required")
    lid = _id(location_id)
    loc = s.get(Location, lid) if lid else None
    if loc is None or loc.is_deleted:
        raise NotFound("Location not found")
    if user.role == ROLE_GYM_OWNER and loc.gym.owner_id != user.id:
        raise UnauthorizedGym("Location does not belong to your gym")
    return loc


def create_location(s: "Session", payload: dict, user: "User") -> "Location":
    from app.gymsaas.modules.gyms.models import Location

    name = clean_str(payload.get("name"))
    if not payload.get("gym_id") or not name:
        raise BadRequest("Missing required fields: gym_id, name")
    gym = _live_gym(s, payload.get("gym_id"))
    if user.role == ROLE_GYM_OWNER and gym.owner_id != user.id:
        raise UnauthorizedGym("Gym does not belong to you")
    ensure_can_add(s, gym.owner_id, RESOURCE_LOCATION)

    now = datetime.utcnow()
    loc = Location(gym_id=gym.id, name=name, is_active=True, created_at=now, updated_at=now)
    apply_fields(loc, payload, ADDRESS_FIELDS)
    s.add(loc)
    s.flush()
    record_event(
        s,
        actor=user,
        action="location.create",
        entity_type="Location",
        entity_id=str(loc.id),
        metadata={"name": name, "gym_id": gym.id},
    )
    return loc


def update_location(s: "Session", loc: "Location", payload: dict, user: "User") -> "Location":
    """Owners edit details only; admins may also move the location to another gym."""
    if not validate_owner_subscription(s, loc.gym.owner_id).is_active:
        raise SubscriptionInactive()

    changes = apply_fields(loc, payload, ("name",) + ADDRESS_FIELDS)
    if not loc.name:
        raise BadRequest("name cannot be empty")

    new_gym_id = _id(payload.get("gym_id"))
    if new_gym_id and new_gym_id != loc.gym_id:
        if user.role == ROLE_GYM_OWNER:
            raise Forbidden("Forbidden – You cannot change the gym for a location")
        gym = _live_gym(s, new_gym_id)
        if gym.owner_id != loc.gym.owner_id:
            check = check_limit_exceeded(s, gym.owner_id, RESOURCE_LOCATION)
            if check.exceeded:
                raise LimitExceeded(
                    RESOURCE_LOCATION,
                    check.current,
                    check.max,
                    message=f"Location limit reached for this owner (max {check.max})",
                )
        changes["gym_id"] = {"old": loc.gym_id, "new": gym.id}
        loc.gym_id = gym.id
        loc.gym = gym

    loc.updated_at = datetime.utcnow()
    record_event(s, actor=user, action="location.edit", entity_type="Location", entity_id=str(loc.id), metadata={"changes": changes})
    return loc


def set_location_active(s: "Session", loc: "Location", is_active: bool | None, user: "User") -> "Location":
    old = loc.is_active
    loc.is_active = (not old) if is_active is None else is_active
    loc.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="location.activate" if loc.is_active else "location.deactivate",
        entity_type="Location",
        entity_id=str(loc.id),
        metadata={"old": old, "new": loc.is_active},
    )
    return loc


def delete_location(s: "Session", loc: "Location", user: "User") -> "Location":
    loc.is_deleted = True
    loc.is_active = False
    loc.updated_at = datetime.utcnow()
    record_event(s, actor=user, action="location.delete", entity_type="Location", entity_id=str(loc.id), metadata={"name": loc.name})
    return loc


def locations_query(s: "Session", user: "User", body: dict) -> "Query":
    from app.gymsaas.modules.gyms.models import Gym, Location

    q = (
        s.query(Location)
        .join(Gym, Gym.id == Location.gym_id)
        .filter(Location.is_deleted.is_(False), Gym.is_deleted.is_(False))
    )
    if user.role == ROLE_GYM_OWNER:
        q = q.filter(Gym.owner_id == user.id)
    else:
        owner_id = _id(body.get("owner_id"))
        if owner_id:
            q = q.filter(Gym.owner_id == owner_id)
    gym_id = _id(body.get("gym_id"))
    if gym_id:
        q = q.filter(Location.gym_id == gym_id)
    search = body.get("search")
    if isinstance(search, str) and search.strip():
        like = f"%{search.strip()}%"
        q = q.filter(or_(Location.name.ilike(like), Location.city.ilike(like), Gym.name.ilike(like)))
    return q.order_by(Location.created_at.desc(), Location.id.desc())
