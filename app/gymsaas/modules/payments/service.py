from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_

from app.gymsaas.audit import record_event
from app.gymsaas.constants import (
    PAYMENT_BANK_TRANSFER,
    PAYMENT_CASH,
    PAYMENT_METHODS,
    SUBSCRIPTION_MEMBER,
    SUBSCRIPTION_OWNER,
    SUBSCRIPTION_TYPES,
)
from app.gymsaas.errors import BadRequest, Forbidden, NotFound
from app.gymsaas.modules.subscriptions.helpers import generate_cash_transaction_id
from app.gymsaas.utils import clean_str, int_field, isoformat, parse_datetime, parse_int, row_to_dict

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.gymsaas.models import User
    from app.gymsaas.modules.payments.models import Payment
    from app.gymsaas.modules.subscriptions.models import MemberSubscription, OwnerSubscription


def serialize_payment(p: "Payment") -> dict[str, Any]:
    data = row_to_dict(p)
    if p.owner_subscription is not None:
        sub = p.owner_subscription
        data["owner_subscription"] = {
            "id": sub.id,
            "billing_model": sub.billing_model,
            "start_date": isoformat(sub.start_date),
            "end_date": isoformat(sub.end_date),
            "plan": {"id": sub.plan.id, "name": sub.plan.name} if sub.plan else None,
            "owner": {
                "id": sub.owner.id,
                "name": sub.owner.full_name,
                "email": sub.owner.email,
                "phone_number": sub.owner.phone_number,
            },
        }
    if p.member_subscription is not None:
        sub = p.member_subscription
        member = sub.member
        data["member_subscription"] = {
            "id": sub.id,
            "billing_model": sub.billing_model,
            "start_date": isoformat(sub.start_date),
            "end_date": isoformat(sub.end_date),
            "member": {
                "id": member.id,
                "name": member.user.full_name,
                "email": member.user.email,
                "gym": {"id": member.gym.id, "name": member.gym.name},
                "location": {"id": member.location.id, "name": member.location.name},
            },
        }
    return data


def resolve_payment_method(payload: dict) -> tuple[str, str]:
    """
    Payment method and transaction reference.
    CASH gets a generated reference when none is supplied; BANK_TRANSFER must carry one.
    """
    method = clean_str(payload.get("payment_method")) or PAYMENT_CASH
    if method not in PAYMENT_METHODS:
        raise BadRequest("Invalid payment_method. Must be CASH or BANK_TRANSFER")
    txn = clean_str(payload.get("transaction_id"))
    if method == PAYMENT_BANK_TRANSFER and not txn:
        raise BadRequest("transaction_id is required for BANK_TRANSFER")
    return method, txn or generate_cash_transaction_id()


def resolve_amount(raw: Any, default: int | None = None) -> int:
    """Explicit amount or the default (plan or subscription price); must be positive."""
    try:
        amount = parse_int(raw)
    except ValueError:
        raise BadRequest("Invalid amount") from None
    if amount is None:
        amount = default
    if amount is None or amount <= 0:
        raise BadRequest("Invalid amount")
    return amount


def record_payment(
    s: "Session",
    *,
    subscription: "OwnerSubscription | MemberSubscription",
    subscription_type: str,
    payload: dict,
    user: "User | None",
    default_amount: int | None = None,
) -> "Payment":
    """Record one payment against an owner or member subscription. Caller commits."""
    from app.gymsaas.modules.payments.models import Payment

    if subscription_type not in SUBSCRIPTION_TYPES:
        raise BadRequest("Invalid subscription_type. Must be OWNER or MEMBER")
    amount = resolve_amount(payload.get("amount"), default_amount)
    method, txn = resolve_payment_method(payload)
    try:
        paid_at = parse_datetime(payload.get("payment_date")) or datetime.utcnow()
    except ValueError:
        raise BadRequest("Invalid payment_date") from None

    payment = Payment(
        owner_subscription_id=subscription.id if subscription_type == SUBSCRIPTION_OWNER else None,
        member_subscription_id=subscription.id if subscription_type == SUBSCRIPTION_MEMBER else None,
        subscription_type=subscription_type,
        amount=amount,
        payment_method=method,
        transaction_id=txn,
        payment_date=paid_at,
        notes=clean_str(payload.get("notes")),
        created_at=datetime.utcnow(),
    )
    s.add(payment)
    s.flush()
    record_event(
        s,
        actor=user,
        action="payment.create",
        entity_type="Payment",
        entity_id=str(payment.id),
        metadata={
            "subscription_type": subscription_type,
            "subscription_id": subscription.id,
            "amount": amount,
            "payment_method": method,
        },
    )
    return payment


def create_payment(s: "Session", payload: dict, user: "User") -> "Payment":
    """Standalone payment entry; owners may only pay against their own members' subscriptions."""
    from app.gymsaas.modules.subscriptions.models import MemberSubscription, OwnerSubscription

    subscription_type = clean_str(payload.get("subscription_type"))
    if payload.get("amount") in (None, "") or not payload.get("payment_method") or not subscription_type:
        raise BadRequest("Missing required fields: amount, payment_method, subscription_type")
    if subscription_type not in SUBSCRIPTION_TYPES:
        raise BadRequest("Invalid subscription_type. Must be OWNER or MEMBER")

    if subscription_type == SUBSCRIPTION_OWNER:
        sub_id = payload.get("owner_subscription_id")
        if not sub_id:
            raise BadRequest("owner_subscription_id is required for OWNER subscription type")
        sid = int_field(payload, "owner_subscription_id")
        sub = s.get(OwnerSubscription, sid) if sid else None
        if sub is None or sub.is_deleted:
            raise NotFound("Owner subscription not found")
        if not user.is_super_admin and sub.owner_id != user.id:
            raise Forbidden("Forbidden – You can only create payments for your own subscriptions")
    else:
        sub_id = payload.get("member_subscription_id")
        if not sub_id:
            raise BadRequest("member_subscription_id is required for MEMBER subscription type")
        sid = int_field(payload, "member_subscription_id")
        sub = s.get(MemberSubscription, sid) if sid else None
        if sub is None or sub.is_deleted:
            raise NotFound("Member subscription not found")
        if not user.is_super_admin and sub.member.gym.owner_id != user.id:
            raise Forbidden("Forbidden – You can only create payments for your members' subscriptions")

    return record_payment(s, subscription=sub, subscription_type=subscription_type, payload=payload, user=user)


def payments_query(s: "Session", user: "User", body: dict) -> "Query":
    """
    Admins see owner (platform) payments; owners see payments of members in their gyms.
    Optional filters: gym_id, location_id, member_id (owners), owner_id (admins).
    """
    from app.gymsaas.models import User as UserModel
    from app.gymsaas.modules.gyms.models import Gym
    from app.gymsaas.modules.members.models import Member
    from app.gymsaas.modules.payments.models import Payment
    from app.gymsaas.modules.plans.models import Plan
    from app.gymsaas.modules.subscriptions.models import MemberSubscription, OwnerSubscription

    search = (body.get("search") or "").strip() if isinstance(body.get("search"), str) else ""
    like = f"%{search}%"

    if user.is_super_admin:
        q = (
            s.query(Payment)
            .join(OwnerSubscription, OwnerSubscription.id == Payment.owner_subscription_id)
            .join(UserModel, UserModel.id == OwnerSubscription.owner_id)
            .join(Plan, Plan.id == OwnerSubscription.plan_id)
            .filter(Payment.subscription_type == SUBSCRIPTION_OWNER)
        )
        owner_id = int_field(body, "owner_id")
        if owner_id:
            q = q.filter(OwnerSubscription.owner_id == owner_id)
        if search:
            q = q.filter(
                or_(
                    UserModel.first_name.ilike(like),
                    UserModel.last_name.ilike(like),
                    UserModel.email.ilike(like),
                    Plan.name.ilike(like),
                    Payment.transaction_id.ilike(like),
                )
            )
    else:
        q = (
            s.query(Payment)
            .join(MemberSubscription, MemberSubscription.id == Payment.member_subscription_id)
            .join(Member, Member.id == MemberSubscription.member_id)
            .join(Gym, Gym.id == Member.gym_id)
            .join(UserModel, UserModel.id == Member.user_id)
            .filter(Payment.subscription_type == SUBSCRIPTION_MEMBER, Gym.owner_id == user.id)
        )
        for key, col in (("gym_id", Member.gym_id), ("location_id", Member.location_id), ("member_id", Member.id)):
            value = int_field(body, key)
            if value:
                q = q.filter(col == value)
        if search:
            q = q.filter(
                or_(
                    UserModel.first_name.ilike(like),
                    UserModel.last_name.ilike(like),
                    UserModel.email.ilike(like),
                    Payment.transaction_id.ilike(like),
                )
            )
    return q.order_by(Payment.payment_date.desc(), Payment.id.desc())


def get_payment_for_invoice(s: "Session", payment_id: Any, user: "User") -> "Payment":
    from app.gymsaas.modules.payments.models import Payment

    try:
        pid = parse_int(payment_id)
    except ValueError:
        pid = None
    if not pid:
        raise BadRequest("payment_id is required")
    payment = s.get(Payment, pid)
    if payment is None:
        raise NotFound("Payment not found")
    if not user.is_super_admin:
        sub = payment.member_subscription
        if payment.subscription_type != SUBSCRIPTION_MEMBER or sub is None or sub.member.gym.owner_id != user.id:
            raise Forbidden("Forbidden – You can only generate invoices for your members' payments")
    return payment
