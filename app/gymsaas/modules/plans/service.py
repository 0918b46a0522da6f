from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import String, cast, or_

from app.gymsaas.audit import record_event
from app.gymsaas.errors import Conflict
from app.gymsaas.utils import clean_str, parse_int, row_to_dict

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.gymsaas.models import User
    from app.gymsaas.modules.plans.models import Plan

_INT_FIELDS = ("monthly_price", "yearly_price", "max_gyms", "max_locations", "max_members", "max_equipment")


def serialize_plan(plan: "Plan") -> dict[str, Any]:
    return row_to_dict(plan)


def validate_plan_payload(payload: dict, *, partial: bool = False) -> list[str]:
    """Validate plan create/update payload. Returns list of errors."""
    errors = []
    if not partial or "name" in payload:
        if not clean_str(payload.get("name")):
            errors.append("Plan name is required.")
    for key in _INT_FIELDS:
        if partial and key not in payload:
            continue
        raw = payload.get(key)
        if raw is None or raw == "":
            if not partial:
                errors.append(f"{key} is required.")
            continue
        try:
            value = parse_int(raw)
        except ValueError:
            errors.append(f"{key} must be a whole number.")
            continue
        if value is None or value < 0:
            errors.append(f"{key} must be zero or greater.")
    return errors


def create_plan(s: "Session", payload: dict, user: "User") -> "Plan":
    from app.gymsaas.modules.plans.models import Plan

    now = datetime.utcnow()
    plan = Plan(
        name=clean_str(payload.get("name")),
        is_active=payload.get("is_active", True) is not False,
        created_at=now,
        updated_at=now,
        **{key: parse_int(payload.get(key)) for key in _INT_FIELDS},
    )
    s.add(plan)
    s.flush()
    record_event(
        s,
        actor=user,
        action="plan.create",
        entity_type="Plan",
        entity_id=str(plan.id),
        metadata={"name": plan.name, "monthly_price": plan.monthly_price, "yearly_price": plan.yearly_price},
    )
    return plan


def update_plan(s: "Session", plan: "Plan", payload: dict, user: "User") -> "Plan":
    changes = {}
    if "name" in payload:
        new_name = clean_str(payload.get("name"))
        if new_name != plan.name:
            changes["name"] = {"old": plan.name, "new": new_name}
            plan.name = new_name
    for key in _INT_FIELDS:
        if key not in payload:
            continue
        new_value = parse_int(payload.get(key))
        if new_value != getattr(plan, key):
            changes[key] = {"old": getattr(plan, key), "new": new_value}
            setattr(plan, key, new_value)

    plan.updated_at = datetime.utcnow()
    record_event(s, actor=user, action="plan.edit", entity_type="Plan", entity_id=str(plan.id), metadata={"changes": changes})
    return plan


def active_subscription_count(s: "Session", plan: "Plan") -> int:
    from app.gymsaas.modules.subscriptions.models import OwnerSubscription

    return (
        s.query(OwnerSubscription)
        .filter(
            OwnerSubscription.plan_id == plan.id,
            OwnerSubscription.is_active.is_(True),
            OwnerSubscription.is_deleted.is_(False),
            OwnerSubscription.is_expired.is_(False),
        )
        .count()
    )


def set_plan_active(s: "Session", plan: "Plan", is_active: bool, user: "User") -> "Plan":
    """Plans in use cannot be switched off; owners would lose their tier mid-term."""
    if not is_active and plan.is_active:
        in_use = active_subscription_count(s, plan)
        if in_use:
            raise Conflict(f"Cannot deactivate plan: {in_use} active subscription(s) use it")
    old = plan.is_active
    plan.is_active = is_active
    plan.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="plan.activate" if is_active else "plan.deactivate",
        entity_type="Plan",
        entity_id=str(plan.id),
        metadata={"old": old, "new": is_active},
    )
    return plan


def delete_plan(s: "Session", plan: "Plan", user: "User") -> "Plan":
    in_use = active_subscription_count(s, plan)
    if in_use:
        raise Conflict(f"Cannot delete plan: {in_use} active subscription(s) use it")
    plan.is_deleted = True
    plan.is_active = False
    plan.updated_at = datetime.utcnow()
    record_event(s, actor=user, action="plan.delete", entity_type="Plan", entity_id=str(plan.id), metadata={"name": plan.name})
    return plan


def plans_query(s: "Session", search: str = "") -> "Query":
    """Non-deleted plans, newest first; numeric search also matches prices."""
    from app.gymsaas.modules.plans.models import Plan

    q = s.query(Plan).filter(Plan.is_deleted.is_(False))
    if search:
        like = f"%{search}%"
        conds = [Plan.name.ilike(like)]
        if search.isdigit():
            conds.append(cast(Plan.monthly_price, String).ilike(like))
            conds.append(cast(Plan.yearly_price, String).ilike(like))
        q = q.filter(or_(*conds))
    return q.order_by(Plan.created_at.desc(), Plan.id.desc())
