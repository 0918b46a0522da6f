from datetime import date, datetime, timedelta

import pytest

from app.gymsaas.modules.subscriptions.helpers import (
    add_months,
    calculate_end_date,
    calculate_end_date_with_remaining_days,
    days_until,
    generate_cash_transaction_id,
    get_plan_price,
    is_subscription_expired,
    remaining_days,
    resolve_term,
)
from app.gymsaas.modules.plans.models import Plan


def test_monthly_end_date_clamps_to_month_end():
    assert calculate_end_date(datetime(2024, 1, 31), "MONTHLY") == datetime(2024, 2, 29)
    assert calculate_end_date(datetime(2023, 1, 31), "MONTHLY") == datetime(2023, 2, 28)


def test_yearly_end_date():
    assert calculate_end_date(datetime(2024, 2, 29, 10, 30), "YEARLY") == datetime(2025, 2, 28, 10, 30)


def test_unknown_billing_model_raises():
    with pytest.raises(ValueError):
        calculate_end_date(datetime(2024, 1, 1), "WEEKLY")


def test_remaining_days_rounds_up_and_floors_at_zero():
    now = datetime(2024, 5, 1, 12, 0)
    assert remaining_days(now + timedelta(days=3, hours=1), now=now) == 4
    assert remaining_days(now + timedelta(days=3), now=now) == 3
    assert remaining_days(now - timedelta(days=2), now=now) == 0


def test_rollover_adds_unused_days():
    start = datetime(2024, 3, 1)
    assert calculate_end_date_with_remaining_days(start, "MONTHLY", 5) == datetime(2024, 4, 6)
    assert calculate_end_date_with_remaining_days(start, "MONTHLY", 0) == datetime(2024, 4, 1)


def test_resolve_term_uses_previous_end():
    now = datetime(2024, 3, 1)
    assert resolve_term(now, "MONTHLY", now + timedelta(days=10), now=now) == datetime(2024, 4, 11)
    assert resolve_term(now, "MONTHLY", now - timedelta(days=10), now=now) == datetime(2024, 4, 1)
    assert resolve_term(now, "YEARLY", None, now=now) == datetime(2025, 3, 1)


def test_add_months_and_days_until():
    assert add_months(datetime(2024, 10, 31), 4) == datetime(2025, 2, 28)
    assert days_until(datetime(2024, 5, 3, 23, 59), date(2024, 5, 1)) == 2
    assert days_until(date(2024, 4, 30), date(2024, 5, 1)) == -1


def test_is_subscription_expired():
    now = datetime(2024, 5, 1)
    assert is_subscription_expired(now - timedelta(seconds=1), now=now) is True
    assert is_subscription_expired(now, now=now) is False


def test_plan_price_by_model():
    plan = Plan(name="Gold", monthly_price=1500, yearly_price=15000)
    assert get_plan_price(plan, "MONTHLY") == 1500
    assert get_plan_price(plan, "YEARLY") == 15000


def test_cash_transaction_id_shape():
    a = generate_cash_transaction_id()
    b = generate_cash_transaction_id()
    assert a.startswith("CASH-")
    assert len(a.split("-")) == 3
    assert len(a.split("-")[2]) == 6
    assert a != b
