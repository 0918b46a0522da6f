from __future__ import annotations

import secrets
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, or_
from werkzeug.security import generate_password_hash

from app.gymsaas.audit import record_event
from app.gymsaas.constants import RESOURCE_MEMBER, ROLE_GYM_OWNER, ROLE_MEMBER
from app.gymsaas.errors import (
    BadRequest,
    Conflict,
    Forbidden,
    LimitExceeded,
    NotFound,
    SubscriptionInactive,
    UnauthorizedGym,
)
from app.gymsaas.modules.profile.service import apply_person_fields, serialize_user
from app.gymsaas.modules.subscriptions.helpers import remaining_days
from app.gymsaas.modules.subscriptions.limits import check_limit_exceeded, ensure_can_add, validate_owner_subscription
from app.gymsaas.utils import clean_str, isoformat, parse_int, row_to_dict

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.gymsaas.models import User
    from app.gymsaas.modules.gyms.models import Location
    from app.gymsaas.modules.members.models import Member


def _id(value: Any) -> int | None:
    try:
        return parse_int(value)
    except ValueError:
        return None


def current_member_subscription(member: "Member"):
    live = [sub for sub in member.subscriptions if sub.is_active and not sub.is_deleted]
    return max(live, key=lambda sub: (sub.created_at, sub.id)) if live else None


def serialize_member(member: "Member") -> dict[str, Any]:
    data = row_to_dict(member)
    data["user"] = serialize_user(member.user)
    data["gym"] = {"id": member.gym.id, "name": member.gym.name}
    data["location"] = {"id": member.location.id, "name": member.location.name}
    sub = current_member_subscription(member)
    data["subscription"] = None
    if sub is not None:
        data["subscription"] = {
            "id": sub.id,
            "price": sub.price,
            "billing_model": sub.billing_model,
            "start_date": isoformat(sub.start_date),
            "end_date": isoformat(sub.end_date),
            "is_expired": sub.is_expired,
            "remaining_days": remaining_days(sub.end_date),
        }
    return data


def get_member_for(s: "Session", user: "User", member_id: Any) -> "Member":
    from app.gymsaas.modules.members.models import Member

    if member_id in (None, ""):
        raise BadRequest("Member ID is required")
    mid = _id(member_id)
    member = s.get(Member, mid) if mid else None
    if member is None or member.is_deleted:
        raise NotFound("Member not found")
    if user.role == ROLE_GYM_OWNER and member.gym.owner_id != user.id:
        raise UnauthorizedGym("Member does not belong to your gym")
    return member


def _live_location(s: "Session", location_id: Any) -> "Location | None":
    from app.gymsaas.modules.gyms.models import Location

    lid = _id(location_id)
    loc = s.get(Location, lid) if lid else None
    if loc is None or loc.is_deleted:
        return None
    return loc


def _member_limit_error(check) -> LimitExceeded:
    return LimitExceeded(
        RESOURCE_MEMBER,
        check.current,
        check.max,
        check.location_id,
        f"Member limit reached for this location (max {check.max} per location)",
    )


def _user_by_email(s: "Session", email: str, exclude_id: int | None = None) -> "User | None":
    """Any user holding the address, removed ones included; emails are unique across the table."""
    from app.gymsaas.models import User

    q = s.query(User).filter(func.lower(User.email) == email.lower())
    if exclude_id:
        q = q.filter(User.id != exclude_id)
    return q.first()


def _restore_person(person: "User", now: datetime) -> None:
    person.is_deleted = False
    person.is_active = True
    person.role = ROLE_MEMBER
    person.updated_at = now


def create_member(s: "Session", payload: dict, owner: "User") -> "Member":
    """
    Enroll a person at one of the owner's locations. An existing user may be reused
    via user_id; otherwise a MEMBER user is created with a random password. A person
    whose membership was deleted earlier is re-enrolled on their old records.
    """
    from app.gymsaas.models import User
    from app.gymsaas.modules.gyms.models import Gym
    from app.gymsaas.modules.members.models import Member

    missing = [k for k in ("gym_id", "location_id", "first_name", "last_name") if not payload.get(k)]
    if missing:
        raise BadRequest("Missing required fields: gym_id, location_id, first_name, last_name")

    gid = _id(payload.get("gym_id"))
    gym = s.get(Gym, gid) if gid else None
    if gym is None or gym.is_deleted or gym.owner_id != owner.id:
        raise UnauthorizedGym("Gym does not belong to you")
    loc = _live_location(s, payload.get("location_id"))
    if loc is None or loc.gym_id != gym.id:
        raise BadRequest("Invalid location_id or location does not belong to the selected gym")

    ensure_can_add(s, owner.id, RESOURCE_MEMBER, loc.id)

    now = datetime.utcnow()
    email = clean_str(payload.get("email"))
    user_id = _id(payload.get("user_id"))
    if user_id:
        person = s.get(User, user_id)
        if person is None or person.is_deleted:
            raise NotFound("User not found")
        if email and email.lower() != (person.email or "").lower():
            if _user_by_email(s, email, exclude_id=person.id) is not None:
                raise Conflict("User with this email already exists")
            person.email = email.lower()
        person.role = ROLE_MEMBER
        person.updated_at = now
    else:
        if not email:
            raise BadRequest("Email is required when creating a new member")
        person = _user_by_email(s, email)
        if person is not None and not person.is_deleted:
            raise Conflict("User with this email already exists")
        if person is not None:
            _restore_person(person, now)
        else:
            person = User(
                email=email.lower(),
                role=ROLE_MEMBER,
                # members do not sign in until they reset it
                password_hash=generate_password_hash(secrets.token_urlsafe(12)),
                is_active=True,
                created_at=now,
                updated_at=now,
            )
            s.add(person)
    apply_person_fields(person, payload)
    s.flush()

    member = s.query(Member).filter(Member.user_id == person.id).first()
    if member is not None and not member.is_deleted:
        raise Conflict("User is already a member")
    if member is None:
        member = Member(user_id=person.id)
        s.add(member)
    member.is_deleted = False
    member.gym_id = gym.id
    member.gym = gym
    member.location_id = loc.id
    member.location = loc
    member.joined_at = now
    member.updated_at = now
    s.flush()
    record_event(
        s,
        actor=owner,
        action="member.create",
        entity_type="Member",
        entity_id=str(member.id),
        metadata={"user_id": person.id, "gym_id": gym.id, "location_id": loc.id},
    )
    return member


def update_member(s: "Session", member: "Member", payload: dict, user: "User") -> "Member":
    """Edit the member's person fields or move them; a move re-checks the target location's limit."""
    from app.gymsaas.modules.gyms.models import Gym, Location

    owner_id = member.gym.owner_id
    if not validate_owner_subscription(s, owner_id).is_active:
        raise SubscriptionInactive()

    changes: dict[str, Any] = {}
    is_owner = user.role == ROLE_GYM_OWNER

    new_gym_id = _id(payload.get("gym_id"))
    new_loc_id = _id(payload.get("location_id"))
    target_gym = member.gym
    if new_gym_id and new_gym_id != member.gym_id:
        if is_owner:
            raise Forbidden("Forbidden – You cannot change the gym for a member")
        target_gym = s.get(Gym, new_gym_id)
        if target_gym is None or target_gym.is_deleted:
            raise BadRequest("Invalid gym_id")
        if not new_loc_id:
            first = (
                s.query(Location)
                .filter(Location.gym_id == target_gym.id, Location.is_deleted.is_(False))
                .order_by(Location.created_at.asc(), Location.id.asc())
                .first()
            )
            if first is None:
                raise BadRequest("New gym has no locations. Please create a location first.")
            new_loc_id = first.id

    if new_loc_id and new_loc_id != member.location_id:
        loc = _live_location(s, new_loc_id)
        if loc is None:
            raise BadRequest("Invalid location_id")
        if loc.gym_id != target_gym.id:
            if is_owner:
                raise Forbidden("Location does not belong to your gym")
            raise BadRequest("Invalid location_id or location does not belong to the selected gym")
        check = check_limit_exceeded(s, target_gym.owner_id, RESOURCE_MEMBER, loc.id)
        if check.exceeded:
            raise _member_limit_error(check)
        if target_gym.id != member.gym_id:
            changes["gym_id"] = {"old": member.gym_id, "new": target_gym.id}
            member.gym_id = target_gym.id
            member.gym = target_gym
        changes["location_id"] = {"old": member.location_id, "new": loc.id}
        member.location_id = loc.id
        member.location = loc

    person = member.user
    email = clean_str(payload.get("email"))
    if email and email.lower() != (person.email or "").lower():
        if _user_by_email(s, email, exclude_id=person.id) is not None:
            raise Conflict("User with this email already exists")
        changes["email"] = {"old": person.email, "new": email.lower()}
        person.email = email.lower()
    changes.update(apply_person_fields(person, payload))

    now = datetime.utcnow()
    person.updated_at = now
    member.updated_at = now
    record_event(s, actor=user, action="member.edit", entity_type="Member", entity_id=str(member.id), metadata={"changes": changes})
    return member


def delete_member(s: "Session", member: "Member", user: "User") -> int:
    """Soft delete the member, the person and their subscriptions; payments stay as revenue history."""
    now = datetime.utcnow()
    person = member.user
    person.is_deleted = True
    person.is_active = False
    person.updated_at = now
    member.is_deleted = True
    member.updated_at = now
    closed = 0
    for sub in member.subscriptions:
        if sub.is_deleted:
            continue
        sub.is_deleted = True
        sub.is_active = False
        sub.updated_at = now
        closed += 1
    record_event(
        s,
        actor=user,
        action="member.delete",
        entity_type="Member",
        entity_id=str(member.id),
        metadata={"user_id": person.id, "email": person.email, "subscriptions_closed": closed},
    )
    return member.id


def members_query(s: "Session", user: "User", body: dict) -> "Query":
    from app.gymsaas.models import User
    from app.gymsaas.modules.gyms.models import Gym
    from app.gymsaas.modules.members.models import Member

    q = (
        s.query(Member)
        .join(User, User.id == Member.user_id)
        .join(Gym, Gym.id == Member.gym_id)
        .filter(Member.is_deleted.is_(False))
    )
    if user.role == ROLE_GYM_OWNER:
        q = q.filter(Gym.owner_id == user.id, Gym.is_deleted.is_(False))
    for key, col in (("gym_id", Member.gym_id), ("location_id", Member.location_id)):
        value = _id(body.get(key))
        if value:
            q = q.filter(col == value)
    search = body.get("search")
    if isinstance(search, str) and search.strip():
        like = f"%{search.strip()}%"
        q = q.filter(
            or_(
                User.first_name.ilike(like),
                User.last_name.ilike(like),
                User.email.ilike(like),
                User.phone_number.ilike(like),
            )
        )
    return q.order_by(Member.joined_at.desc(), Member.id.desc())
