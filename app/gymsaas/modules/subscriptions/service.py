"""
Owner subscriptions: a gym owner's term on a platform plan.

Creating, renewing or re-activating a subscription deactivates every other
active subscription of the same owner, so at most one is active at a time.
"""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_

from app.gymsaas.audit import record_event
from app.gymsaas.constants import BILLING_MODELS, BILLING_MONTHLY, ROLE_GYM_OWNER, SUBSCRIPTION_OWNER
from app.gymsaas.errors import BadRequest, NotFound
from app.gymsaas.modules.subscriptions.helpers import (
    calculate_end_date,
    deactivate_owner_subscriptions,
    get_plan_price,
    remaining_days,
    resolve_term,
)
from app.gymsaas.utils import clean_str, int_field, isoformat, parse_bool, parse_datetime, parse_int, row_to_dict

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.gymsaas.models import User
    from app.gymsaas.modules.payments.models import Payment
    from app.gymsaas.modules.plans.models import Plan
    from app.gymsaas.modules.subscriptions.models import OwnerSubscription


def serialize_owner_subscription(sub: "OwnerSubscription") -> dict[str, Any]:
    data = row_to_dict(sub)
    data["remaining_days"] = remaining_days(sub.end_date)
    data["plan"] = None
    if sub.plan is not None:
        data["plan"] = {
            "id": sub.plan.id,
            "name": sub.plan.name,
            "monthly_price": sub.plan.monthly_price,
            "yearly_price": sub.plan.yearly_price,
            "max_gyms": sub.plan.max_gyms,
            "max_locations": sub.plan.max_locations,
            "max_members": sub.plan.max_members,
            "max_equipment": sub.plan.max_equipment,
        }
    data["owner"] = {
        "id": sub.owner.id,
        "name": sub.owner.full_name,
        "first_name": sub.owner.first_name,
        "last_name": sub.owner.last_name,
        "email": sub.owner.email,
        "phone_number": sub.owner.phone_number,
    }
    return data


def billing_model_from(payload: dict, default: str | None = BILLING_MONTHLY) -> str:
    model = clean_str(payload.get("billing_model")) or default
    if model not in BILLING_MODELS:
        raise BadRequest("Invalid billing_model. Must be MONTHLY or YEARLY")
    return model


def date_from(payload: dict, key: str) -> datetime | None:
    try:
        return parse_datetime(payload.get(key))
    except ValueError:
        raise BadRequest(f"Invalid {key}") from None


def active_plan(s: "Session", plan_id: Any) -> "Plan":
    from app.gymsaas.modules.plans.models import Plan

    try:
        pid = parse_int(plan_id)
    except ValueError:
        pid = None
    plan = s.get(Plan, pid) if pid else None
    if plan is None or plan.is_deleted or not plan.is_active:
        raise BadRequest("Invalid plan_id")
    return plan


def gym_owner(s: "Session", owner_id: Any) -> "User":
    from app.gymsaas.models import User

    try:
        uid = parse_int(owner_id)
    except ValueError:
        uid = None
    owner = s.get(User, uid) if uid else None
    if owner is None or owner.is_deleted or owner.role != ROLE_GYM_OWNER:
        raise NotFound("Gym owner not found")
    return owner


def has_payment_fields(payload: dict) -> bool:
    return any(payload.get(k) not in (None, "") for k in ("amount", "payment_method", "transaction_id"))


def start_owner_subscription(
    s: "Session",
    *,
    owner: "User",
    plan: "Plan",
    billing_model: str,
    user: "User | None",
    start: datetime | None = None,
    end: datetime | None = None,
    previous_end: datetime | None = None,
) -> "OwnerSubscription":
    """
    Deactivate the owner's current subscriptions and open a new term.
    previous_end rolls the unused days of the prior term onto the new end date.
    """
    from app.gymsaas.modules.subscriptions.models import OwnerSubscription

    now = datetime.utcnow()
    start = start or now
    if end is None:
        end = resolve_term(start, billing_model, previous_end, now=now)
    if end <= start:
        raise BadRequest("end_date must be after start_date")

    deactivate_owner_subscriptions(s, owner.id, now=now)
    sub = OwnerSubscription(
        owner_id=owner.id,
        plan_id=plan.id,
        billing_model=billing_model,
        start_date=start,
        end_date=end,
        is_expired=False,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    s.add(sub)
    s.flush()
    record_event(
        s,
        actor=user,
        action="owner_subscription.create",
        entity_type="OwnerSubscription",
        entity_id=str(sub.id),
        metadata={
            "owner_id": owner.id,
            "plan_id": plan.id,
            "billing_model": billing_model,
            "start_date": start,
            "end_date": end,
            "rolled_over_from": previous_end,
        },
    )
    return sub


def create_owner_subscription(s: "Session", payload: dict, user: "User") -> tuple["OwnerSubscription", "Payment | None"]:
    from app.gymsaas.modules.payments.service import record_payment

    owner = gym_owner(s, payload.get("owner_id"))
    plan = active_plan(s, payload.get("plan_id"))
    model = billing_model_from(payload)
    sub = start_owner_subscription(
        s,
        owner=owner,
        plan=plan,
        billing_model=model,
        user=user,
        start=date_from(payload, "start_date"),
        end=date_from(payload, "end_date"),
    )
    payment = None
    if has_payment_fields(payload):
        payment = record_payment(
            s,
            subscription=sub,
            subscription_type=SUBSCRIPTION_OWNER,
            payload=payload,
            user=user,
            default_amount=get_plan_price(plan, model),
        )
    return sub, payment


def update_owner_subscription(s: "Session", sub: "OwnerSubscription", payload: dict, user: "User") -> "OwnerSubscription":
    """
    Partial update. When start_date or billing_model change and no end_date is given,
    the end date is recomputed from the new start and model.
    """
    changes: dict[str, Any] = {}

    def _set(field: str, value: Any) -> None:
        old = getattr(sub, field)
        if old != value:
            changes[field] = {"old": old, "new": value}
            setattr(sub, field, value)

    if "billing_model" in payload:
        _set("billing_model", billing_model_from(payload, default=None))
    if "plan_id" in payload:
        _set("plan_id", active_plan(s, payload.get("plan_id")).id)
    for flag in ("is_expired", "is_deleted"):
        if flag in payload:
            _set(flag, bool(parse_bool(payload.get(flag))))
    if "is_active" in payload:
        is_active = bool(parse_bool(payload.get("is_active")))
        if is_active and not sub.is_active:
            deactivate_owner_subscriptions(s, sub.owner_id)
        _set("is_active", is_active)
    if "start_date" in payload:
        start = date_from(payload, "start_date")
        if start is None:
            raise BadRequest("Invalid start_date")
        _set("start_date", start)
    if "end_date" in payload:
        end = date_from(payload, "end_date")
        if end is None:
            raise BadRequest("Invalid end_date")
        _set("end_date", end)
    elif "start_date" in payload or "billing_model" in payload:
        _set("end_date", calculate_end_date(sub.start_date, sub.billing_model))

    if sub.end_date <= sub.start_date:
        raise BadRequest("end_date must be after start_date")

    sub.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="owner_subscription.edit",
        entity_type="OwnerSubscription",
        entity_id=str(sub.id),
        metadata={"changes": changes},
    )
    return sub


def set_owner_subscription_active(s: "Session", sub: "OwnerSubscription", is_active: bool, user: "User") -> "OwnerSubscription":
    old = sub.is_active
    if is_active and not old:
        deactivate_owner_subscriptions(s, sub.owner_id)
    sub.is_active = is_active
    sub.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="owner_subscription.activate" if is_active else "owner_subscription.deactivate",
        entity_type="OwnerSubscription",
        entity_id=str(sub.id),
        metadata={"old": old, "new": is_active},
    )
    return sub


def delete_owner_subscription(s: "Session", sub: "OwnerSubscription", user: "User") -> "OwnerSubscription":
    sub.is_deleted = True
    sub.is_active = False
    sub.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="owner_subscription.delete",
        entity_type="OwnerSubscription",
        entity_id=str(sub.id),
        metadata={"owner_id": sub.owner_id},
    )
    return sub


def renew_owner_subscription(s: "Session", payload: dict, user: "User") -> tuple["OwnerSubscription", "Payment"]:
    """
    Renew on the same plan, starting at renew_date (or now). The previous term's
    remaining days roll over; a payment is always recorded.
    """
    from app.gymsaas.modules.payments.service import record_payment, resolve_payment_method
    from app.gymsaas.modules.subscriptions.models import OwnerSubscription

    owner_id = int_field(payload, "owner_id")
    sub_id = int_field(payload, "subscription_id")
    if not owner_id and not sub_id:
        raise BadRequest("Missing required field: owner_id (or subscription_id)")
    if payload.get("billing_model") not in (None, ""):
        billing_model_from(payload)
    if not payload.get("payment_method"):
        raise BadRequest("Missing required field: payment_method")
    resolve_payment_method(payload)

    if sub_id:
        existing = s.get(OwnerSubscription, sub_id)
    else:
        existing = (
            s.query(OwnerSubscription)
            .filter(
                OwnerSubscription.owner_id == owner_id,
                OwnerSubscription.is_deleted.is_(False),
                OwnerSubscription.is_active.is_(True),
            )
            .order_by(OwnerSubscription.created_at.desc(), OwnerSubscription.id.desc())
            .first()
        )
    if existing is None or existing.is_deleted:
        raise NotFound("Active subscription not found")
    if owner_id and existing.owner_id != owner_id:
        raise BadRequest("owner_id does not match subscription owner")

    model = billing_model_from(payload, default=existing.billing_model)
    start = date_from(payload, "renew_date") or datetime.utcnow()
    sub = start_owner_subscription(
        s,
        owner=existing.owner,
        plan=existing.plan,
        billing_model=model,
        user=user,
        start=start,
        previous_end=existing.end_date,
    )
    payment = record_payment(
        s,
        subscription=sub,
        subscription_type=SUBSCRIPTION_OWNER,
        payload=payload,
        user=user,
        default_amount=get_plan_price(existing.plan, model),
    )
    return sub, payment


def owner_subscriptions_query(s: "Session", search: str = "", owner_id: int | None = None) -> "Query":
    from app.gymsaas.models import User
    from app.gymsaas.modules.plans.models import Plan
    from app.gymsaas.modules.subscriptions.models import OwnerSubscription

    q = (
        s.query(OwnerSubscription)
        .join(User, User.id == OwnerSubscription.owner_id)
        .join(Plan, Plan.id == OwnerSubscription.plan_id)
        .filter(OwnerSubscription.is_deleted.is_(False))
    )
    if owner_id:
        q = q.filter(OwnerSubscription.owner_id == owner_id)
    if search:
        like = f"%{search}%"
        q = q.filter(
            or_(
                User.first_name.ilike(like),
                User.last_name.ilike(like),
                User.email.ilike(like),
                User.phone_number.ilike(like),
                Plan.name.ilike(like),
            )
        )
    return q.order_by(OwnerSubscription.created_at.desc(), OwnerSubscription.id.desc())


def subscription_summary(sub: "OwnerSubscription | None") -> dict[str, Any] | None:
    """Compact form used in client listings."""
    if sub is None:
        return None
    return {
        "id": sub.id,
        "plan": {"id": sub.plan.id, "name": sub.plan.name} if sub.plan else None,
        "billing_model": sub.billing_model,
        "start_date": isoformat(sub.start_date),
        "end_date": isoformat(sub.end_date),
        "is_active": sub.is_active,
        "is_expired": sub.is_expired,
        "remaining_days": remaining_days(sub.end_date),
    }
