from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_

from app.gymsaas.audit import record_event
from app.gymsaas.constants import RESOURCE_EQUIPMENT
from app.gymsaas.errors import BadRequest, LimitExceeded, NotFound, UnauthorizedGym
from app.gymsaas.modules.subscriptions.limits import check_limit_exceeded, ensure_can_add
from app.gymsaas.utils import clean_str, isoformat, parse_date, parse_int, row_to_dict

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.gymsaas.models import User
    from app.gymsaas.modules.equipment.models import Equipment
    from app.gymsaas.modules.gyms.models import Gym, Location


VALID_CONDITIONS = ("New", "Good", "Fair", "Poor")
VALID_STATUSES = ("In Use", "Under Maintenance", "Retired", "Available")

TEXT_FIELDS = (
    "category",
    "brand",
    "model_number",
    "serial_number",
    "min_stock_level",
    "condition",
    "status",
    "weight",
    "usage_frequency",
    "equipment_location",
    "purchase_cost",
    "supplier_name",
    "maintenance_notes",
    "image_url",
    "invoice_url",
)
DATE_FIELDS = ("purchase_date", "last_maintenance_date", "next_maintenance_due")


def serialize_equipment(e: "Equipment") -> dict[str, Any]:
    data = row_to_dict(e)
    data["gym"] = {"id": e.gym.id, "name": e.gym.name}
    data["location"] = {"id": e.location.id, "name": e.location.name}
    return data


def _id(value: Any) -> int | None:
    try:
        return parse_int(value)
    except ValueError:
        return None


def _date(value: Any) -> date | None:
    try:
        return parse_date(value)
    except ValueError:
        raise BadRequest("Invalid date format") from None


def validate_equipment_payload(payload: dict, *, partial: bool = False) -> list[str]:
    """Validate equipment creation/update payload. Returns list of errors."""
    errors = []
    if not partial:
        for key in ("name", "type", "quantity", "gym_id", "location_id"):
            if payload.get(key) in (None, ""):
                errors.append(f"{key} is required.")
    else:
        for key in ("name", "type", "quantity"):
            if key in payload and not clean_str(payload.get(key)):
                errors.append(f"{key} cannot be empty.")
    condition = clean_str(payload.get("condition"))
    if condition and condition not in VALID_CONDITIONS:
        errors.append(f"Invalid condition. Must be one of: {', '.join(VALID_CONDITIONS)}")
    status = clean_str(payload.get("status"))
    if status and status not in VALID_STATUSES:
        errors.append(f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}")
    return errors


def _owned_gym(s: "Session", gym_id: Any, user: "User") -> "Gym":
    from app.gymsaas.modules.gyms.models import Gym

    gid = _id(gym_id)
    gym = s.get(Gym, gid) if gid else None
    if gym is None or gym.is_deleted:
        raise NotFound("Gym not found or does not belong to you")
    if gym.owner_id != user.id:
        raise UnauthorizedGym("Gym does not belong to you")
    return gym


def _gym_location(s: "Session", location_id: Any, gym: "Gym") -> "Location":
    from app.gymsaas.modules.gyms.models import Location

    lid = _id(location_id)
    loc = s.get(Location, lid) if lid else None
    if loc is None or loc.is_deleted or loc.gym_id != gym.id:
        raise NotFound("Location not found or does not belong to the gym")
    return loc


def _limit_error(check) -> LimitExceeded:
    return LimitExceeded(
        RESOURCE_EQUIPMENT,
        check.current,
        check.max,
        check.location_id,
        f"Equipment limit exceeded. Maximum {check.max} equipment per location.",
    )


def get_equipment_for(s: "Session", user: "User", equipment_id: Any) -> "Equipment":
    from app.gymsaas.modules.equipment.models import Equipment

    if equipment_id in (None, ""):
        raise BadRequest("Missing required field: id")
    eid = _id(equipment_id)
    equipment = s.get(Equipment, eid) if eid else None
    if equipment is None or equipment.is_deleted or equipment.gym.is_deleted:
        raise NotFound("Equipment not found")
    if equipment.gym.owner_id != user.id:
        raise NotFound("Equipment not found")
    return equipment


def create_equipment(s: "Session", payload: dict, user: "User") -> "Equipment":
    """Add equipment to one of the owner's locations, within the plan's per-location limit."""
    from app.gymsaas.modules.equipment.models import Equipment

    errors = validate_equipment_payload(payload)
    if errors:
        raise BadRequest("; ".join(errors))
    gym = _owned_gym(s, payload.get("gym_id"), user)
    loc = _gym_location(s, payload.get("location_id"), gym)
    ensure_can_add(s, user.id, RESOURCE_EQUIPMENT, loc.id)

    now = datetime.utcnow()
    equipment = Equipment(
        gym_id=gym.id,
        location_id=loc.id,
        name=clean_str(payload.get("name")),
        type=clean_str(payload.get("type")),
        quantity=str(payload.get("quantity")).strip(),
        is_active=True,
        created_at=now,
        updated_at=now,
        created_by_user_id=user.id,
        updated_by_user_id=user.id,
    )
    for key in TEXT_FIELDS:
        setattr(equipment, key, clean_str(payload.get(key)))
    for key in DATE_FIELDS:
        setattr(equipment, key, _date(payload.get(key)))
    s.add(equipment)
    s.flush()

    record_event(
        s,
        actor=user,
        action="equipment.create",
        entity_type="Equipment",
        entity_id=str(equipment.id),
        metadata={"name": equipment.name, "type": equipment.type, "location_id": loc.id},
    )
    return equipment


def update_equipment(s: "Session", equipment: "Equipment", payload: dict, user: "User") -> "Equipment":
    """Update existing equipment. Moving it to another location re-checks that location's limit."""
    errors = validate_equipment_payload(payload, partial=True)
    if errors:
        raise BadRequest("; ".join(errors))

    changes = {}
    gym = equipment.gym
    new_gym_id = _id(payload.get("gym_id"))
    if new_gym_id and new_gym_id != equipment.gym_id:
        gym = _owned_gym(s, new_gym_id, user)

    new_loc_id = _id(payload.get("location_id")) or equipment.location_id
    if new_loc_id != equipment.location_id or gym.id != equipment.gym_id:
        loc = _gym_location(s, new_loc_id, gym)
        if loc.id != equipment.location_id:
            check = check_limit_exceeded(s, user.id, RESOURCE_EQUIPMENT, loc.id)
            if check.exceeded:
                raise _limit_error(check)
        if gym.id != equipment.gym_id:
            changes["gym_id"] = {"old": equipment.gym_id, "new": gym.id}
            equipment.gym_id = gym.id
            equipment.gym = gym
        if loc.id != equipment.location_id:
            changes["location_id"] = {"old": equipment.location_id, "new": loc.id}
            equipment.location_id = loc.id
            equipment.location = loc

    for key in ("name", "type", "quantity"):
        if key in payload:
            new = str(payload.get(key)).strip()
            if new != getattr(equipment, key):
                changes[key] = {"old": getattr(equipment, key), "new": new}
                setattr(equipment, key, new)

    for key in TEXT_FIELDS:
        if key not in payload:
            continue
        new = clean_str(payload.get(key))
        if new != getattr(equipment, key):
            changes[key] = {"old": getattr(equipment, key), "new": new}
            setattr(equipment, key, new)

    for key in DATE_FIELDS:
        if key not in payload:
            continue
        new = _date(payload.get(key))
        if new != getattr(equipment, key):
            changes[key] = {"old": isoformat(getattr(equipment, key)), "new": isoformat(new)}
            setattr(equipment, key, new)

    equipment.updated_at = datetime.utcnow()
    equipment.updated_by_user_id = user.id

    record_event(
        s,
        actor=user,
        action="equipment.edit",
        entity_type="Equipment",
        entity_id=str(equipment.id),
        metadata={"changes": changes},
    )
    return equipment


def delete_equipment(s: "Session", equipment: "Equipment", user: "User") -> "Equipment":
    equipment.is_deleted = True
    equipment.is_active = False
    equipment.updated_at = datetime.utcnow()
    equipment.updated_by_user_id = user.id
    record_event(
        s,
        actor=user,
        action="equipment.delete",
        entity_type="Equipment",
        entity_id=str(equipment.id),
        metadata={"name": equipment.name},
    )
    return equipment


def equipment_query(s: "Session", user: "User", body: dict) -> "Query":
    from app.gymsaas.modules.equipment.models import Equipment
    from app.gymsaas.modules.gyms.models import Gym

    q = (
        s.query(Equipment)
        .join(Gym, Gym.id == Equipment.gym_id)
        .filter(Equipment.is_deleted.is_(False), Gym.owner_id == user.id, Gym.is_deleted.is_(False))
    )
    for key, col in (("gym_id", Equipment.gym_id), ("location_id", Equipment.location_id)):
        value = _id(body.get(key))
        if value:
            q = q.filter(col == value)
    search = body.get("search")
    if isinstance(search, str) and search.strip():
        like = f"%{search.strip()}%"
        q = q.filter(or_(Equipment.name.ilike(like), Equipment.type.ilike(like)))
    return q.order_by(Equipment.id.desc())
