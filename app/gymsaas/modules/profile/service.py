from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from werkzeug.security import check_password_hash, generate_password_hash

from app.gymsaas.audit import record_event
from app.gymsaas.constants import MIN_PASSWORD_LENGTH
from app.gymsaas.errors import BadRequest, Unauthorized
from app.gymsaas.utils import clean_str, parse_date, row_to_dict

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.gymsaas.models import User

# Editable personal fields shared by the profile page and client management
PERSON_FIELDS = (
    "first_name",
    "last_name",
    "phone_number",
    "address",
    "city",
    "state",
    "zip_code",
    "country",
    "cnic",
    "profile_picture",
)


def serialize_user(user: "User") -> dict[str, Any]:
    data = row_to_dict(user, exclude=("password_hash",))
    data["name"] = user.full_name
    return data


def apply_person_fields(user: "User", payload: dict) -> dict[str, Any]:
    """Copy present person fields onto user. Returns the {field: {old, new}} changes."""
    changes: dict[str, Any] = {}
    for field in PERSON_FIELDS:
        if field not in payload:
            continue
        new_value = clean_str(payload.get(field))
        if field in ("first_name", "last_name"):
            if not new_value:
                raise BadRequest(f"{field} cannot be empty")
        old_value = getattr(user, field)
        if new_value != old_value:
            changes[field] = {"old": old_value, "new": new_value}
            setattr(user, field, new_value)
    if "date_of_birth" in payload:
        try:
            dob = parse_date(payload.get("date_of_birth"))
        except ValueError:
            raise BadRequest("Invalid date_of_birth") from None
        if dob != user.date_of_birth:
            changes["date_of_birth"] = {"old": user.date_of_birth, "new": dob}
            user.date_of_birth = dob
    return changes


def validate_password(password: str | None) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise BadRequest(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def set_password(user: "User", password: str) -> None:
    validate_password(password)
    user.password_hash = generate_password_hash(password)


def update_profile(s: "Session", user: "User", payload: dict) -> "User":
    email = clean_str(payload.get("email"))
    if email and email.lower() != (user.email or "").lower():
        raise BadRequest("Email cannot be changed")
    changes = apply_person_fields(user, payload)
    user.updated_at = datetime.utcnow()
    record_event(s, actor=user, action="profile.edit", entity_type="User", entity_id=str(user.id), metadata={"changes": changes})
    return user


def update_password(s: "Session", user: "User", payload: dict) -> "User":
    current = payload.get("current_password") or ""
    new = payload.get("new_password") or ""
    if not current or not new:
        raise BadRequest("current_password and new_password are required")
    if not check_password_hash(user.password_hash, current):
        raise Unauthorized("Current password is incorrect")
    set_password(user, new)
    user.updated_at = datetime.utcnow()
    record_event(s, actor=user, action="profile.password_change", entity_type="User", entity_id=str(user.id))
    return user
