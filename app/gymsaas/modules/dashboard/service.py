"""
Dashboard overviews.

The admin overview covers the whole platform (owner subscriptions and owner
payments); the owner overview covers one owner's gyms (member subscriptions
and member payments). Both accept an optional chart range `from`/`to` that
defaults to the current month and is capped to the last 12 months of it.
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import TYPE_CHECKING, Any, Iterable

from dateutil.relativedelta import relativedelta
from sqlalchemy import func, select

from app.gymsaas.constants import (
    CHART_MAX_MONTHS,
    DASHBOARD_TABLE_ROWS,
    ROLE_GYM_OWNER,
    SUBSCRIPTION_MEMBER,
    SUBSCRIPTION_OWNER,
)
from app.gymsaas.utils import isoformat, parse_datetime

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session


def start_of_month(d: datetime) -> datetime:
    return datetime(d.year, d.month, 1)


def start_of_day(d: datetime) -> datetime:
    return datetime(d.year, d.month, d.day)


def month_label(d: datetime) -> str:
    return d.strftime("%b %Y")


def chart_range(body: dict, now: datetime) -> tuple[datetime, datetime]:
    """Requested chart window; unparseable bounds fall back to the defaults."""

    def _parse(key: str) -> datetime | None:
        try:
            return parse_datetime(body.get(key))
        except ValueError:
            return None

    requested_from = _parse("from")
    requested_to = _parse("to")
    chart_from = start_of_day(requested_from) if requested_from else start_of_month(now)
    chart_to = requested_to or now
    if chart_to > now:
        chart_to = now
    if chart_from > chart_to:
        chart_from, chart_to = start_of_day(chart_to), chart_from
    return chart_from, chart_to


def month_keys(chart_from: datetime, chart_to: datetime) -> list[datetime]:
    months = []
    m = start_of_month(chart_from)
    end = start_of_month(chart_to)
    while m <= end:
        months.append(m)
        m += relativedelta(months=1)
    return months[-CHART_MAX_MONTHS:]


def bucket_by_month(months: list[datetime], rows: Iterable[tuple[datetime, int]], field: str) -> list[dict[str, Any]]:
    """One entry per month with the summed values of the rows falling in it."""
    totals: Counter = Counter()
    for when, value in rows:
        if when is not None:
            totals[(when.year, when.month)] += value or 0
    return [{"month": month_label(m), field: totals[(m.year, m.month)]} for m in months]


def growth_pct(this_month: int, last_month: int) -> float | None:
    if last_month <= 0:
        return None
    return (this_month - last_month) / last_month * 100


def _sum(q: "Query") -> int:
    return int(q.scalar() or 0)


def _last_payment(payments) -> tuple[int | None, str | None]:
    # relationship is ordered newest first
    if not payments:
        return None, None
    return payments[0].amount, isoformat(payments[0].payment_date)


# ---------- Admin ----------
def _owner_sub_row(sub) -> dict[str, Any]:
    amount, paid_at = _last_payment(sub.payments)
    return {
        "id": sub.id,
        "ownerName": sub.owner.full_name or "-",
        "ownerEmail": sub.owner.email or "-",
        "planName": sub.plan.name if sub.plan else "-",
        "billingModel": sub.billing_model or "-",
        "startDate": isoformat(sub.start_date),
        "endDate": isoformat(sub.end_date),
        "isActive": bool(sub.is_active),
        "isExpired": bool(sub.is_expired),
        "lastPaymentAmount": amount,
        "lastPaymentDate": paid_at,
    }


def admin_overview(s: "Session", body: dict, *, now: datetime | None = None) -> dict[str, Any]:
    from app.gymsaas.models import User
    from app.gymsaas.modules.gyms.models import Gym, Location
    from app.gymsaas.modules.payments.models import Payment
    from app.gymsaas.modules.subscriptions.models import OwnerSubscription

    now = now or datetime.utcnow()
    this_month = start_of_month(now)
    last_month = this_month - relativedelta(months=1)
    chart_from, chart_to = chart_range(body, now)
    months = month_keys(chart_from, chart_to)

    def revenue(start: datetime, end: datetime, *, inclusive: bool = True) -> int:
        q = s.query(func.sum(Payment.amount)).filter(
            Payment.subscription_type == SUBSCRIPTION_OWNER,
            Payment.payment_date >= start,
        )
        q = q.filter(Payment.payment_date <= end if inclusive else Payment.payment_date < end)
        return _sum(q)

    revenue_this = revenue(this_month, now)
    revenue_last = revenue(last_month, this_month, inclusive=False)

    payments = (
        s.query(Payment.payment_date, Payment.amount)
        .filter(
            Payment.subscription_type == SUBSCRIPTION_OWNER,
            Payment.payment_date >= chart_from,
            Payment.payment_date <= chart_to,
        )
        .all()
    )
    clients = (
        s.query(User.created_at)
        .filter(
            User.role == ROLE_GYM_OWNER,
            User.is_deleted.is_(False),
            User.created_at >= chart_from,
            User.created_at <= chart_to,
        )
        .all()
    )

    live = s.query(OwnerSubscription).filter(OwnerSubscription.is_deleted.is_(False))
    active = live.filter(OwnerSubscription.is_active.is_(True), OwnerSubscription.is_expired.is_(False))
    expired = live.filter(OwnerSubscription.is_expired.is_(True))

    return {
        "totals": {
            "totalClients": s.query(User).filter(User.role == ROLE_GYM_OWNER, User.is_deleted.is_(False)).count(),
            "totalGyms": s.query(Gym).filter(Gym.is_deleted.is_(False)).count(),
            "totalLocations": s.query(Location).filter(Location.is_deleted.is_(False)).count(),
            "activeOwnerSubscriptions": active.count(),
            "expiredOwnerSubscriptions": expired.count(),
            "revenueThisMonth": revenue_this,
            "revenueLastMonth": revenue_last,
            "revenueGrowthPct": growth_pct(revenue_this, revenue_last),
        },
        "charts": {
            "revenueByMonth": bucket_by_month(months, payments, "revenue"),
            "newClientsByMonth": bucket_by_month(months, ((c, 1) for (c,) in clients), "clients"),
        },
        "tables": {
            "activeSubscriptions": [
                _owner_sub_row(sub)
                for sub in active.order_by(OwnerSubscription.end_date.asc()).limit(DASHBOARD_TABLE_ROWS)
            ],
            "expiredSubscriptions": [
                _owner_sub_row(sub)
                for sub in expired.order_by(OwnerSubscription.end_date.desc()).limit(DASHBOARD_TABLE_ROWS)
            ],
        },
    }


# ---------- Gym owner ----------
def _member_sub_row(sub) -> dict[str, Any]:
    amount, paid_at = _last_payment(sub.payments)
    person = sub.member.user
    return {
        "id": sub.id,
        "memberName": person.full_name or "-",
        "memberEmail": person.email or "-",
        "price": sub.price or 0,
        "billingModel": sub.billing_model or "-",
        "startDate": isoformat(sub.start_date),
        "endDate": isoformat(sub.end_date),
        "isActive": bool(sub.is_active),
        "isExpired": bool(sub.is_expired),
        "lastPaymentAmount": amount,
        "lastPaymentDate": paid_at,
    }


def _payment_row(p) -> dict[str, Any]:
    person = p.member_subscription.member.user
    return {
        "id": p.id,
        "memberName": person.full_name or "-",
        "amount": p.amount or 0,
        "paymentMethod": p.payment_method or "-",
        "paymentDate": isoformat(p.payment_date),
        "subscriptionType": p.subscription_type or "-",
    }


def owner_overview(s: "Session", owner_id: int, body: dict, *, now: datetime | None = None) -> dict[str, Any]:
    from app.gymsaas.modules.equipment.models import Equipment
    from app.gymsaas.modules.gyms.models import Gym, Location
    from app.gymsaas.modules.members.models import Member
    from app.gymsaas.modules.payments.models import Payment
    from app.gymsaas.modules.subscriptions.models import MemberSubscription

    now = now or datetime.utcnow()
    this_month = start_of_month(now)
    last_month = this_month - relativedelta(months=1)
    chart_from, chart_to = chart_range(body, now)
    months = month_keys(chart_from, chart_to)

    owned_gyms = select(Gym.id).where(Gym.owner_id == owner_id, Gym.is_deleted.is_(False))
    owned_subs = (
        select(MemberSubscription.id)
        .join(Member, Member.id == MemberSubscription.member_id)
        .where(Member.gym_id.in_(owned_gyms))
    )

    def member_payments(q: "Query") -> "Query":
        return q.filter(
            Payment.subscription_type == SUBSCRIPTION_MEMBER,
            Payment.member_subscription_id.in_(owned_subs),
        )

    def revenue(start: datetime, end: datetime, *, inclusive: bool = True) -> int:
        q = member_payments(s.query(func.sum(Payment.amount))).filter(Payment.payment_date >= start)
        q = q.filter(Payment.payment_date <= end if inclusive else Payment.payment_date < end)
        return _sum(q)

    revenue_this = revenue(this_month, now)
    revenue_last = revenue(last_month, this_month, inclusive=False)

    payments = (
        member_payments(s.query(Payment.payment_date, Payment.amount))
        .filter(Payment.payment_date >= chart_from, Payment.payment_date <= chart_to)
        .all()
    )
    joined = (
        s.query(Member.joined_at)
        .filter(
            Member.gym_id.in_(owned_gyms),
            Member.is_deleted.is_(False),
            Member.joined_at >= chart_from,
            Member.joined_at <= chart_to,
        )
        .all()
    )

    live = (
        s.query(MemberSubscription)
        .join(Member, Member.id == MemberSubscription.member_id)
        .filter(Member.gym_id.in_(owned_gyms), MemberSubscription.is_deleted.is_(False))
    )
    active = live.filter(MemberSubscription.is_active.is_(True), MemberSubscription.is_expired.is_(False))
    expired = live.filter(MemberSubscription.is_expired.is_(True))
    recent = (
        member_payments(s.query(Payment))
        .order_by(Payment.payment_date.desc(), Payment.id.desc())
        .limit(DASHBOARD_TABLE_ROWS)
    )

    return {
        "totals": {
            "totalMembers": s.query(Member)
            .filter(Member.gym_id.in_(owned_gyms), Member.is_deleted.is_(False))
            .count(),
            "totalGyms": s.query(Gym).filter(Gym.owner_id == owner_id, Gym.is_deleted.is_(False)).count(),
            "totalLocations": s.query(Location)
            .filter(Location.gym_id.in_(owned_gyms), Location.is_deleted.is_(False))
            .count(),
            "totalEquipment": s.query(Equipment)
            .filter(Equipment.gym_id.in_(owned_gyms), Equipment.is_deleted.is_(False))
            .count(),
            "activeMemberSubscriptions": active.count(),
            "expiredMemberSubscriptions": expired.count(),
            "revenueThisMonth": revenue_this,
            "revenueLastMonth": revenue_last,
            "revenueGrowthPct": growth_pct(revenue_this, revenue_last),
        },
        "charts": {
            "revenueByMonth": bucket_by_month(months, payments, "revenue"),
            "newMembersByMonth": bucket_by_month(months, ((j, 1) for (j,) in joined), "members"),
        },
        "tables": {
            "activeSubscriptions": [
                _member_sub_row(sub)
                for sub in active.order_by(MemberSubscription.end_date.asc()).limit(DASHBOARD_TABLE_ROWS)
            ],
            "expiredSubscriptions": [
                _member_sub_row(sub)
                for sub in expired.order_by(MemberSubscription.end_date.desc()).limit(DASHBOARD_TABLE_ROWS)
            ],
            "recentPayments": [_payment_row(p) for p in recent],
        },
    }
