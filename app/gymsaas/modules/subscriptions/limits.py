"""
Plan-limit enforcement for gym owners.

Gyms and locations are capped per owner; members and equipment are capped per
location. An owner without an active, unexpired subscription gets all limits at
zero and may not add anything (`ensure_can_add` raises SubscriptionInactive).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select

from app.gymsaas.constants import (
    PER_LOCATION_RESOURCES,
    RESOURCE_EQUIPMENT,
    RESOURCE_GYM,
    RESOURCE_LOCATION,
    RESOURCE_MEMBER,
)
from app.gymsaas.errors import BadRequest, LimitExceeded, SubscriptionInactive

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.gymsaas.modules.subscriptions.models import OwnerSubscription

logger = logging.getLogger(__name__)

_LIMIT_FIELDS = {
    RESOURCE_GYM: "max_gyms",
    RESOURCE_LOCATION: "max_locations",
    RESOURCE_MEMBER: "max_members",
    RESOURCE_EQUIPMENT: "max_equipment",
}


@dataclass
class SubscriptionStatus:
    is_active: bool
    limits: dict[str, int]
    counts: dict[str, int]
    subscription: "OwnerSubscription | None" = None

    def to_dict(self) -> dict[str, Any]:
        sub = self.subscription
        return {
            "isActive": self.is_active,
            "limits": self.limits,
            "currentCounts": self.counts,
            "subscription": None
            if sub is None
            else {
                "id": sub.id,
                "end_date": sub.end_date.isoformat(),
                "billing_model": sub.billing_model,
                "plan": {"id": sub.plan.id, "name": sub.plan.name, **self.limits},
            },
        }


@dataclass
class LimitCheck:
    exceeded: bool
    current: int
    max: int
    resource_type: str
    location_id: int | None = None


def active_owner_subscription(s: "Session", owner_id: int) -> "OwnerSubscription | None":
    """Latest active, unexpired, non-deleted subscription of the owner."""
    from app.gymsaas.modules.subscriptions.models import OwnerSubscription

    return (
        s.query(OwnerSubscription)
        .filter(
            OwnerSubscription.owner_id == owner_id,
            OwnerSubscription.is_deleted.is_(False),
            OwnerSubscription.is_active.is_(True),
            OwnerSubscription.is_expired.is_(False),
        )
        .order_by(OwnerSubscription.created_at.desc(), OwnerSubscription.id.desc())
        .first()
    )


def owner_resource_counts(s: "Session", owner_id: int) -> dict[str, int]:
    from app.gymsaas.modules.equipment.models import Equipment
    from app.gymsaas.modules.gyms.models import Gym, Location
    from app.gymsaas.modules.members.models import Member

    live_gyms = select(Gym.id).where(Gym.owner_id == owner_id, Gym.is_deleted.is_(False))
    gyms = s.query(func.count(Gym.id)).filter(Gym.owner_id == owner_id, Gym.is_deleted.is_(False)).scalar()
    locations = (
        s.query(func.count(Location.id))
        .filter(Location.is_deleted.is_(False), Location.gym_id.in_(live_gyms))
        .scalar()
    )
    members = (
        s.query(func.count(Member.id))
        .filter(Member.is_deleted.is_(False), Member.gym_id.in_(live_gyms))
        .scalar()
    )
    equipment = (
        s.query(func.count(Equipment.id))
        .filter(Equipment.is_deleted.is_(False), Equipment.gym_id.in_(live_gyms))
        .scalar()
    )
    return {"gyms": gyms or 0, "locations": locations or 0, "members": members or 0, "equipment": equipment or 0}


def validate_owner_subscription(s: "Session", owner_id: int) -> SubscriptionStatus:
    counts = owner_resource_counts(s, owner_id)
    sub = active_owner_subscription(s, owner_id)
    if sub is None or sub.plan is None:
        return SubscriptionStatus(
            is_active=False,
            limits={name: 0 for name in _LIMIT_FIELDS.values()},
            counts=counts,
        )
    plan = sub.plan
    return SubscriptionStatus(
        is_active=True,
        limits={name: getattr(plan, name) for name in _LIMIT_FIELDS.values()},
        counts=counts,
        subscription=sub,
    )


def _owned_location(s: "Session", owner_id: int, location_id: int):
    from app.gymsaas.modules.gyms.models import Gym, Location

    return (
        s.query(Location)
        .join(Gym, Gym.id == Location.gym_id)
        .filter(
            Location.id == location_id,
            Location.is_deleted.is_(False),
            Gym.owner_id == owner_id,
            Gym.is_deleted.is_(False),
        )
        .one_or_none()
    )


def check_limit_exceeded(
    s: "Session",
    owner_id: int,
    resource_type: str,
    location_id: int | None = None,
    *,
    status: SubscriptionStatus | None = None,
) -> LimitCheck:
    """
    Would adding one more resource break the owner's plan?

    Without an active subscription nothing is reported as exceeded; callers that
    must refuse inactive owners use `ensure_can_add`.
    """
    from app.gymsaas.modules.equipment.models import Equipment
    from app.gymsaas.modules.members.models import Member

    if resource_type not in _LIMIT_FIELDS:
        raise ValueError(f"Unknown resource type {resource_type!r}")

    status = status or validate_owner_subscription(s, owner_id)
    if not status.is_active:
        return LimitCheck(exceeded=False, current=0, max=0, resource_type=resource_type)

    maximum = status.limits[_LIMIT_FIELDS[resource_type]]
    if resource_type not in PER_LOCATION_RESOURCES:
        current = status.counts["gyms" if resource_type == RESOURCE_GYM else "locations"]
        return LimitCheck(exceeded=current >= maximum, current=current, max=maximum, resource_type=resource_type)

    if not location_id:
        raise BadRequest(f"location_id is required for {resource_type} limit validation")
    if _owned_location(s, owner_id, location_id) is None:
        raise BadRequest("Location not found or does not belong to owner")

    if resource_type == RESOURCE_MEMBER:
        current = (
            s.query(func.count(Member.id))
            .filter(Member.location_id == location_id, Member.is_deleted.is_(False))
            .scalar()
            or 0
        )
    else:
        current = (
            s.query(func.count(Equipment.id))
            .filter(Equipment.location_id == location_id, Equipment.is_deleted.is_(False))
            .scalar()
            or 0
        )
    return LimitCheck(
        exceeded=current >= maximum,
        current=current,
        max=maximum,
        resource_type=resource_type,
        location_id=location_id,
    )


def _limit_message(check: LimitCheck) -> str:
    if check.resource_type in PER_LOCATION_RESOURCES:
        return f"{check.resource_type.capitalize()} limit reached for this location (max {check.max} per location)"
    return f"{check.resource_type.capitalize()} limit reached for this owner (max {check.max})"


def ensure_can_add(s: "Session", owner_id: int, resource_type: str, location_id: int | None = None) -> SubscriptionStatus:
    """
    Gate for every create that consumes plan capacity.
    Raises SubscriptionInactive (403) or LimitExceeded (409); returns the status otherwise.
    """
    status = validate_owner_subscription(s, owner_id)
    if not status.is_active:
        logger.info("Owner %s has no active subscription; refusing new %s", owner_id, resource_type)
        raise SubscriptionInactive()
    check = check_limit_exceeded(s, owner_id, resource_type, location_id, status=status)
    if check.exceeded:
        logger.info(
            "Limit exceeded owner=%s resource=%s current=%s max=%s location=%s",
            owner_id, resource_type, check.current, check.max, location_id,
        )
        raise LimitExceeded(resource_type, check.current, check.max, check.location_id, _limit_message(check))
    return status
