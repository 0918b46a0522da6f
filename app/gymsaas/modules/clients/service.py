"""
Clients are GYM_OWNER users managed by the platform admin, optionally opened
with a first subscription and payment in the same transaction.
"""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, or_

from app.gymsaas.audit import record_event
from app.gymsaas.constants import ROLE_GYM_OWNER, SUBSCRIPTION_OWNER
from app.gymsaas.errors import BadRequest, Conflict, NotFound
from app.gymsaas.modules.profile.service import apply_person_fields, serialize_user, set_password
from app.gymsaas.modules.subscriptions.helpers import deactivate_owner_subscriptions, get_plan_price
from app.gymsaas.modules.subscriptions.limits import active_owner_subscription
from app.gymsaas.modules.subscriptions.service import (
    active_plan,
    billing_model_from,
    start_owner_subscription,
    subscription_summary,
)
from app.gymsaas.utils import clean_str, parse_bool, parse_int

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.gymsaas.models import User

_REQUIRED = ("first_name", "last_name", "phone_number", "email", "password")


def serialize_client(s: "Session", client: "User") -> dict[str, Any]:
    from app.gymsaas.modules.gyms.models import Gym

    data = serialize_user(client)
    data["subscription"] = subscription_summary(active_owner_subscription(s, client.id))
    data["gym_count"] = (
        s.query(func.count(Gym.id)).filter(Gym.owner_id == client.id, Gym.is_deleted.is_(False)).scalar() or 0
    )
    return data


def validate_client_payload(payload: dict) -> list[str]:
    missing = [k for k in _REQUIRED if not clean_str(payload.get(k))]
    if missing:
        return ["Missing required fields: " + ", ".join(missing)]
    return []


def _ensure_email_free(s: "Session", email: str, *, exclude_id: int | None = None) -> None:
    from app.gymsaas.models import User

    q = s.query(User).filter(func.lower(User.email) == email.lower())
    if exclude_id:
        q = q.filter(User.id != exclude_id)
    if q.first() is not None:
        raise Conflict("A user with this email already exists")


def _maybe_subscribe(s: "Session", client: "User", payload: dict, user: "User", *, renewal: bool) -> None:
    """Open a new term when plan_id and billing_model are both supplied."""
    from app.gymsaas.modules.payments.service import record_payment

    if not (payload.get("plan_id") and payload.get("billing_model")):
        return
    plan = active_plan(s, payload.get("plan_id"))
    model = billing_model_from(payload)
    previous = active_owner_subscription(s, client.id) if renewal else None
    sub = start_owner_subscription(
        s,
        owner=client,
        plan=plan,
        billing_model=model,
        user=user,
        previous_end=previous.end_date if previous else None,
    )
    if payload.get("amount") not in (None, "") and payload.get("payment_method"):
        record_payment(
            s,
            subscription=sub,
            subscription_type=SUBSCRIPTION_OWNER,
            payload=payload,
            user=user,
            default_amount=get_plan_price(plan, model),
        )


def create_client(s: "Session", payload: dict, user: "User") -> "User":
    from app.gymsaas.models import User

    email = clean_str(payload.get("email")).lower()
    _ensure_email_free(s, email)

    now = datetime.utcnow()
    client = User(email=email, role=ROLE_GYM_OWNER, is_active=True, created_at=now, updated_at=now)
    apply_person_fields(client, payload)
    set_password(client, payload.get("password") or "")
    s.add(client)
    s.flush()
    record_event(
        s,
        actor=user,
        action="client.create",
        entity_type="User",
        entity_id=str(client.id),
        metadata={"email": email, "name": client.full_name},
    )
    _maybe_subscribe(s, client, payload, user, renewal=False)
    return client


def update_client(s: "Session", client: "User", payload: dict, user: "User") -> "User":
    """
    Profile edit, optional password reset and optional plan change. With is_renewal the
    remaining days of the current term are rolled onto the new one.
    """
    changes = apply_person_fields(client, payload)
    email = clean_str(payload.get("email"))
    if email and email.lower() != (client.email or "").lower():
        _ensure_email_free(s, email, exclude_id=client.id)
        changes["email"] = {"old": client.email, "new": email.lower()}
        client.email = email.lower()
    if payload.get("password"):
        set_password(client, payload["password"])
        changes["password"] = "changed"
    client.updated_at = datetime.utcnow()
    record_event(s, actor=user, action="client.edit", entity_type="User", entity_id=str(client.id), metadata={"changes": changes})

    _maybe_subscribe(s, client, payload, user, renewal=bool(parse_bool(payload.get("is_renewal"))))
    return client


def set_client_active(s: "Session", client: "User", is_active: bool | None, user: "User") -> "User":
    old = client.is_active
    client.is_active = (not old) if is_active is None else is_active
    client.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="client.activate" if client.is_active else "client.deactivate",
        entity_type="User",
        entity_id=str(client.id),
        metadata={"old": old, "new": client.is_active},
    )
    return client


def delete_client(s: "Session", client: "User", user: "User") -> "User":
    """Soft delete the owner and end their subscriptions. Gyms stay for the record."""
    now = datetime.utcnow()
    client.is_deleted = True
    client.is_active = False
    client.updated_at = now
    ended = deactivate_owner_subscriptions(s, client.id, now=now)
    record_event(
        s,
        actor=user,
        action="client.delete",
        entity_type="User",
        entity_id=str(client.id),
        metadata={"email": client.email, "subscriptions_deactivated": ended},
    )
    return client


def get_client(s: "Session", client_id: Any) -> "User":
    from app.gymsaas.models import User

    if client_id in (None, ""):
        raise BadRequest("Client ID is required")
    try:
        uid = parse_int(client_id)
    except ValueError:
        uid = None
    client = s.get(User, uid) if uid else None
    if client is None or client.is_deleted or client.role != ROLE_GYM_OWNER:
        raise NotFound("Client not found")
    return client


def clients_query(s: "Session", search: str = "", is_active: bool | None = None) -> "Query":
    from app.gymsaas.models import User

    q = s.query(User).filter(User.role == ROLE_GYM_OWNER, User.is_deleted.is_(False))
    if is_active is not None:
        q = q.filter(User.is_active.is_(is_active))
    if search:
        like = f"%{search}%"
        q = q.filter(
            or_(
                User.first_name.ilike(like),
                User.last_name.ilike(like),
                User.email.ilike(like),
                User.phone_number.ilike(like),
                User.cnic.ilike(like),
            )
        )
    return q.order_by(User.created_at.desc(), User.id.desc())
