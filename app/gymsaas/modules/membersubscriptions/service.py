"""
Member subscriptions: a member's paid term at their gym.

The admin flavour is billing-model based (MONTHLY/YEARLY); the owner flavour
is month-count based or uses explicit custom dates. Renewals in both roll the
unused days of the current term onto the new one.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_

from app.gymsaas.audit import record_event
from app.gymsaas.constants import BILLING_MONTHLY, ROLE_GYM_OWNER, SUBSCRIPTION_MEMBER
from app.gymsaas.errors import BadRequest, Forbidden, NotFound
from app.gymsaas.modules.payments.service import record_payment, resolve_payment_method, serialize_payment
from app.gymsaas.modules.subscriptions.helpers import (
    add_months,
    calculate_end_date,
    deactivate_member_subscriptions,
    remaining_days,
    resolve_term,
)
from app.gymsaas.modules.subscriptions.service import billing_model_from, date_from, has_payment_fields
from app.gymsaas.utils import parse_bool, parse_int, row_to_dict

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.gymsaas.models import User
    from app.gymsaas.modules.members.models import Member
    from app.gymsaas.modules.subscriptions.models import MemberSubscription


def serialize_member_subscription(sub: "MemberSubscription", *, with_payments: bool = True) -> dict[str, Any]:
    data = row_to_dict(sub)
    data["remaining_days"] = remaining_days(sub.end_date)
    member = sub.member
    data["member"] = {
        "id": member.id,
        "user": {
            "id": member.user.id,
            "name": member.user.full_name,
            "email": member.user.email,
            "phone_number": member.user.phone_number,
        },
        "gym": {"id": member.gym.id, "name": member.gym.name},
        "location": {"id": member.location.id, "name": member.location.name},
    }
    if with_payments:
        data["payments"] = [serialize_payment(p) for p in sub.payments]
    return data


def _id(value: Any) -> int | None:
    try:
        return parse_int(value)
    except ValueError:
        return None


def _price(raw: Any) -> int:
    try:
        price = parse_int(raw)
    except ValueError:
        raise BadRequest("Invalid price") from None
    if price is None or price <= 0:
        raise BadRequest("Invalid price")
    return price


def get_member(s: "Session", member_id: Any, user: "User") -> "Member":
    from app.gymsaas.modules.members.models import Member

    mid = _id(member_id)
    member = s.get(Member, mid) if mid else None
    if member is None or member.is_deleted:
        raise NotFound("Member not found")
    if user.role == ROLE_GYM_OWNER and member.gym.owner_id != user.id:
        raise Forbidden("Forbidden – Member does not belong to your gym")
    return member


def get_member_subscription(s: "Session", sub_id: Any, user: "User") -> "MemberSubscription":
    from app.gymsaas.modules.subscriptions.models import MemberSubscription

    if sub_id in (None, ""):
        raise BadRequest("Member subscription ID is required")
    sid = _id(sub_id)
    sub = s.get(MemberSubscription, sid) if sid else None
    if sub is None or sub.is_deleted:
        raise NotFound("Member subscription not found")
    if user.role == ROLE_GYM_OWNER and sub.member.gym.owner_id != user.id:
        raise Forbidden("Forbidden – Member subscription does not belong to your gym")
    return sub


def current_subscription(s: "Session", member_id: int) -> "MemberSubscription | None":
    from app.gymsaas.modules.subscriptions.models import MemberSubscription

    return (
        s.query(MemberSubscription)
        .filter(
            MemberSubscription.member_id == member_id,
            MemberSubscription.is_deleted.is_(False),
            MemberSubscription.is_active.is_(True),
        )
        .order_by(MemberSubscription.created_at.desc(), MemberSubscription.id.desc())
        .first()
    )


def owner_term(payload: dict, *, now: datetime | None = None) -> tuple[datetime, datetime]:
    """
    Term for the owner flavour: either explicit custom dates (end after start) or
    `months` calendar months from now.
    """
    if parse_bool(payload.get("use_custom_dates")):
        if not payload.get("start_date") or not payload.get("end_date"):
            raise BadRequest("Missing required fields: start_date and end_date (when use_custom_dates is true)")
        try:
            start = date_from(payload, "start_date")
            end = date_from(payload, "end_date")
        except BadRequest:
            raise BadRequest("Invalid date format") from None
        if end <= start:
            raise BadRequest("End date must be after start date")
        return start, end
    try:
        months = parse_int(payload.get("months"))
    except ValueError:
        months = None
    if not months or months <= 0:
        raise BadRequest("Missing or invalid field: months (when use_custom_dates is false)")
    start = now or datetime.utcnow()
    return start, add_months(start, months)


def _open_term(
    s: "Session",
    member: "Member",
    *,
    price: int,
    billing_model: str,
    start: datetime,
    end: datetime,
    user: "User",
    action: str,
) -> "MemberSubscription":
    from app.gymsaas.modules.subscriptions.models import MemberSubscription

    now = datetime.utcnow()
    sub = MemberSubscription(
        member_id=member.id,
        price=price,
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
        action=action,
        entity_type="MemberSubscription",
        entity_id=str(sub.id),
        metadata={"member_id": member.id, "price": price, "billing_model": billing_model, "start_date": start, "end_date": end},
    )
    return sub


def _require_admin_fields(payload: dict) -> None:
    if not payload.get("member_id") or not payload.get("price") or not payload.get("billing_model"):
        raise BadRequest("Missing required fields: member_id, price, billing_model")


# ---------- Admin flavour ----------
def admin_create(s: "Session", payload: dict, user: "User") -> "MemberSubscription":
    _require_admin_fields(payload)
    model = billing_model_from(payload)
    member = get_member(s, payload.get("member_id"), user)
    start = date_from(payload, "start_date") or datetime.utcnow()
    sub = _open_term(
        s,
        member,
        price=_price(payload.get("price")),
        billing_model=model,
        start=start,
        end=calculate_end_date(start, model),
        user=user,
        action="member_subscription.create",
    )
    if has_payment_fields(payload):
        record_payment(s, subscription=sub, subscription_type=SUBSCRIPTION_MEMBER, payload=payload, user=user)
    return sub


def admin_renew(s: "Session", payload: dict, user: "User") -> "MemberSubscription":
    _require_admin_fields(payload)
    model = billing_model_from(payload)
    member = get_member(s, payload.get("member_id"), user)
    existing = current_subscription(s, member.id)
    now = datetime.utcnow()
    end = resolve_term(now, model, existing.end_date if existing else None, now=now)
    if existing is not None:
        existing.is_active = False
        existing.updated_at = now
    sub = _open_term(
        s,
        member,
        price=_price(payload.get("price")),
        billing_model=model,
        start=now,
        end=end,
        user=user,
        action="member_subscription.renew",
    )
    if has_payment_fields(payload):
        record_payment(s, subscription=sub, subscription_type=SUBSCRIPTION_MEMBER, payload=payload, user=user)
    return sub


def admin_update(s: "Session", sub: "MemberSubscription", payload: dict, user: "User") -> "MemberSubscription":
    """A new start_date recomputes the end date from the (possibly new) billing model."""
    changes: dict[str, Any] = {}
    if "price" in payload:
        changes["price"] = {"old": sub.price, "new": _price(payload.get("price"))}
        sub.price = changes["price"]["new"]
    if "billing_model" in payload:
        model = billing_model_from(payload, default=None)
        changes["billing_model"] = {"old": sub.billing_model, "new": model}
        sub.billing_model = model
    if "start_date" in payload:
        start = date_from(payload, "start_date")
        if start is None:
            raise BadRequest("Invalid start_date")
        changes["start_date"] = {"old": sub.start_date, "new": start}
        sub.start_date = start
        sub.end_date = calculate_end_date(start, sub.billing_model)
    for flag in ("is_active", "is_expired"):
        if flag in payload:
            value = bool(parse_bool(payload.get(flag)))
            changes[flag] = {"old": getattr(sub, flag), "new": value}
            setattr(sub, flag, value)
    sub.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="member_subscription.edit",
        entity_type="MemberSubscription",
        entity_id=str(sub.id),
        metadata={"changes": changes},
    )
    return sub


# ---------- Owner flavour ----------
def owner_create(s: "Session", payload: dict, user: "User") -> "MemberSubscription":
    if not payload.get("member_id") or not payload.get("price"):
        raise BadRequest("Missing required fields: member_id, price")
    member = get_member(s, payload.get("member_id"), user)
    start, end = owner_term(payload)
    return _open_term(
        s,
        member,
        price=_price(payload.get("price")),
        billing_model=BILLING_MONTHLY,
        start=start,
        end=end,
        user=user,
        action="member_subscription.create",
    )


def owner_renew(s: "Session", payload: dict, user: "User") -> "MemberSubscription":
    """Renew with rollover and always record the payment (amount = price, CASH by default)."""
    if not payload.get("member_id") or not payload.get("price"):
        raise BadRequest("Missing required fields: member_id, price")
    member = get_member(s, payload.get("member_id"), user)
    price = _price(payload.get("price"))
    existing = current_subscription(s, member.id)
    start, end = owner_term(payload)
    if existing is not None:
        left = remaining_days(existing.end_date)
        if left > 0:
            end += timedelta(days=left)
    resolve_payment_method(payload)

    deactivate_member_subscriptions(s, member.id)
    sub = _open_term(
        s,
        member,
        price=price,
        billing_model=BILLING_MONTHLY,
        start=start,
        end=end,
        user=user,
        action="member_subscription.renew",
    )
    record_payment(
        s,
        subscription=sub,
        subscription_type=SUBSCRIPTION_MEMBER,
        payload={**payload, "amount": price},
        user=user,
    )
    return sub


def owner_update(s: "Session", sub: "MemberSubscription", payload: dict, user: "User") -> "MemberSubscription":
    changes: dict[str, Any] = {}
    if payload.get("price") not in (None, ""):
        changes["price"] = {"old": sub.price, "new": _price(payload.get("price"))}
        sub.price = changes["price"]["new"]
    if "use_custom_dates" in payload:
        start, end = owner_term(payload)
    else:
        start = date_from(payload, "start_date") if "start_date" in payload else sub.start_date
        end = date_from(payload, "end_date") if "end_date" in payload else sub.end_date
        if start is None or end is None:
            raise BadRequest("Invalid date format")
        if end <= start:
            raise BadRequest("End date must be after start date")
    if start != sub.start_date:
        changes["start_date"] = {"old": sub.start_date, "new": start}
        sub.start_date = start
    if end != sub.end_date:
        changes["end_date"] = {"old": sub.end_date, "new": end}
        sub.end_date = end
    sub.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="member_subscription.edit",
        entity_type="MemberSubscription",
        entity_id=str(sub.id),
        metadata={"changes": changes},
    )
    return sub


def owner_delete(s: "Session", sub: "MemberSubscription", user: "User") -> "MemberSubscription":
    sub.is_deleted = True
    sub.is_active = False
    sub.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="member_subscription.delete",
        entity_type="MemberSubscription",
        entity_id=str(sub.id),
        metadata={"member_id": sub.member_id},
    )
    return sub


def member_subscriptions_query(s: "Session", user: "User", body: dict) -> "Query":
    from app.gymsaas.models import User
    from app.gymsaas.modules.gyms.models import Gym
    from app.gymsaas.modules.members.models import Member
    from app.gymsaas.modules.subscriptions.models import MemberSubscription

    q = (
        s.query(MemberSubscription)
        .join(Member, Member.id == MemberSubscription.member_id)
        .join(Gym, Gym.id == Member.gym_id)
        .join(User, User.id == Member.user_id)
        .filter(MemberSubscription.is_deleted.is_(False))
    )
    if user.role == ROLE_GYM_OWNER:
        q = q.filter(Gym.owner_id == user.id, Gym.is_deleted.is_(False))
    for key, col in (("member_id", Member.id), ("gym_id", Member.gym_id), ("location_id", Member.location_id)):
        value = _id(body.get(key))
        if value:
            q = q.filter(col == value)
    search = body.get("search")
    if isinstance(search, str) and search.strip():
        like = f"%{search.strip()}%"
        q = q.filter(or_(User.first_name.ilike(like), User.last_name.ilike(like), User.email.ilike(like)))
    return q.order_by(MemberSubscription.created_at.desc(), MemberSubscription.id.desc())
