"""
Billing-period arithmetic shared by owner and member subscriptions.

All datetimes are naive UTC, matching the stored columns.
"""
from __future__ import annotations

import math
import secrets
import time
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from dateutil.relativedelta import relativedelta

from app.gymsaas.constants import BILLING_MODELS, BILLING_MONTHLY

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.gymsaas.modules.plans.models import Plan

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _check_model(billing_model: str) -> None:
    if billing_model not in BILLING_MODELS:
        raise ValueError(f"Invalid billing model {billing_model!r}. Must be MONTHLY or YEARLY")


def calculate_end_date(start: datetime, billing_model: str) -> datetime:
    """
    One billing term after start. Month arithmetic clamps to the last day of a
    shorter month (Jan 31 + 1 month = Feb 28/29).
    """
    _check_model(billing_model)
    if billing_model == BILLING_MONTHLY:
        return start + relativedelta(months=1)
    return start + relativedelta(years=1)


def calculate_end_date_with_remaining_days(start: datetime, billing_model: str, remaining: int) -> datetime:
    """End of a renewed term with the unused days of the previous term rolled over."""
    end = calculate_end_date(start, billing_model)
    if remaining > 0:
        end += timedelta(days=remaining)
    return end


def add_months(start: datetime, months: int) -> datetime:
    return start + relativedelta(months=months)


def remaining_days(end: datetime, now: datetime | None = None) -> int:
    """Whole days left until end, rounded up; 0 once the term is over."""
    now = now or datetime.utcnow()
    days = math.ceil((end - now).total_seconds() / 86400)
    return days if days > 0 else 0


def days_until(end: datetime | date, today: date | None = None) -> int:
    """Calendar-day distance from today to the end date (negative when past)."""
    today = today or datetime.utcnow().date()
    end_day = end.date() if isinstance(end, datetime) else end
    return (end_day - today).days


def is_subscription_expired(end: datetime, now: datetime | None = None) -> bool:
    return (now or datetime.utcnow()) > end


def get_plan_price(plan: "Plan", billing_model: str) -> int:
    _check_model(billing_model)
    return plan.monthly_price if billing_model == BILLING_MONTHLY else plan.yearly_price


def resolve_term(start: datetime, billing_model: str, previous_end: datetime | None, *, now: datetime | None = None) -> datetime:
    """End date for a new term, rolling over what is left of previous_end (if any) as of now."""
    left = remaining_days(previous_end, now=now) if previous_end else 0
    if left > 0:
        return calculate_end_date_with_remaining_days(start, billing_model, left)
    return calculate_end_date(start, billing_model)


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_BASE36[r])
    return "".join(reversed(out))


def generate_cash_transaction_id() -> str:
    """Reference for cash payments, e.g. CASH-lxq3k2a1-4f9zq0."""
    stamp = _base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"CASH-{stamp}-{suffix}"


def deactivate_owner_subscriptions(s: "Session", owner_id: int, *, now: datetime | None = None) -> int:
    """Mark every active, non-deleted subscription of the owner inactive. Returns rows touched."""
    from app.gymsaas.modules.subscriptions.models import OwnerSubscription

    return (
        s.query(OwnerSubscription)
        .filter(
            OwnerSubscription.owner_id == owner_id,
            OwnerSubscription.is_active.is_(True),
            OwnerSubscription.is_deleted.is_(False),
        )
        .update({"is_active": False, "updated_at": now or datetime.utcnow()}, synchronize_session="fetch")
    )


def deactivate_member_subscriptions(s: "Session", member_id: int, *, now: datetime | None = None) -> int:
    from app.gymsaas.modules.subscriptions.models import MemberSubscription

    return (
        s.query(MemberSubscription)
        .filter(
            MemberSubscription.member_id == member_id,
            MemberSubscription.is_active.is_(True),
            MemberSubscription.is_deleted.is_(False),
        )
        .update({"is_active": False, "updated_at": now or datetime.utcnow()}, synchronize_session="fetch")
    )


def update_expired_subscriptions(s: "Session", *, now: datetime | None = None) -> tuple[int, int]:
    """
    Flag subscriptions whose end date has passed as expired and inactive.
    Returns (owner_rows, member_rows).
    """
    from app.gymsaas.modules.subscriptions.models import MemberSubscription, OwnerSubscription

    now = now or datetime.utcnow()
    counts = []
    for model in (OwnerSubscription, MemberSubscription):
        counts.append(
            s.query(model)
            .filter(model.end_date < now, model.is_expired.is_(False), model.is_deleted.is_(False))
            .update({"is_expired": True, "is_active": False, "updated_at": now}, synchronize_session="fetch")
        )
    return counts[0], counts[1]

