from app.gymsaas.db import session_scope
from app.gymsaas.modules.subscriptions.models import OwnerSubscription

PLAN = {
    "name": "Gold",
    "monthly_price": 5000,
    "yearly_price": 50000,
    "max_gyms": 2,
    "max_locations": 4,
    "max_members": 100,
    "max_equipment": 50,
}


def _create_plan(client, **overrides):
    r = client.post("/api/plans/createplan", json={**PLAN, **overrides})
    assert r.status_code == 201, r.json
    return r.json["data"]


def _create_client(client, plan_id, **extra):
    r = client.post(
        "/api/clients/createclient",
        json={
            "first_name": "Omar",
            "last_name": "Khan",
            "phone_number": "0300-1234567",
            "email": "omar@example.com",
            "password": "secret-123",
            "plan_id": plan_id,
            "billing_model": "MONTHLY",
            **extra,
        },
    )
    assert r.status_code == 201, r.json
    return r.json["data"]


def test_plan_validation(client, login):
    login()
    r = client.post("/api/plans/createplan", json={"name": "Broken", "monthly_price": -1})
    assert r.status_code == 400
    assert "monthly_price must be zero or greater." in r.json["error"]


def test_client_with_subscription_and_payment(client, login):
    login()
    plan = _create_plan(client)
    created = _create_client(client, plan["id"], amount=5000, payment_method="CASH")
    assert created["role"] == "GYM_OWNER"
    assert created["subscription"]["plan"]["name"] == "Gold"
    assert created["subscription"]["is_active"] is True

    r = client.post("/api/payments/getpayments", json={})
    assert r.status_code == 200
    assert r.json["totalCount"] == 1
    payment = r.json["data"][0]
    assert payment["amount"] == 5000
    assert payment["subscription_type"] == "OWNER"

    r = client.post(
        "/api/clients/createclient",
        json={"first_name": "A", "last_name": "B", "phone_number": "1", "email": "OMAR@example.com", "password": "secret-123"},
    )
    assert r.status_code == 409


def test_plan_in_use_cannot_be_deleted_or_deactivated(client, login):
    login()
    plan = _create_plan(client)
    _create_client(client, plan["id"])

    r = client.post("/api/plans/deleteplan", json={"id": plan["id"]})
    assert r.status_code == 409
    r = client.post("/api/plans/activeplan", json={"id": plan["id"], "is_active": False})
    assert r.status_code == 409

    unused = _create_plan(client, name="Silver")
    r = client.post("/api/plans/deleteplan", json={"id": unused["id"]})
    assert r.status_code == 200
    r = client.post("/api/plans/getplans", json={})
    assert [p["name"] for p in r.json["data"]] == ["Gold"]


def test_renew_rolls_over_remaining_days(app, client, login, make_owner):
    ids = make_owner(end_in_days=20)
    login()
    r = client.post(
        "/api/subscription/renewsubscription",
        json={"owner_id": ids["owner_id"], "payment_method": "BANK_TRANSFER", "transaction_id": "TRX-9"},
    )
    assert r.status_code == 201, r.json
    data = r.json["data"]
    # a fresh month plus the 20 days left on the old term
    assert data["remaining_days"] >= 48
    assert data["payment"]["amount"] == 1000
    assert data["payment"]["transaction_id"] == "TRX-9"

    with session_scope(app) as s:
        old = s.get(OwnerSubscription, ids["subscription_id"])
        assert old.is_active is False
        live = s.query(OwnerSubscription).filter(OwnerSubscription.is_active.is_(True)).all()
        assert [sub.id for sub in live] == [data["id"]]


def test_renew_requires_payment_method(client, login, make_owner):
    ids = make_owner()
    login()
    r = client.post("/api/subscription/renewsubscription", json={"owner_id": ids["owner_id"]})
    assert r.status_code == 400


def test_create_subscription_with_custom_dates(client, login, make_owner):
    ids = make_owner()
    login()
    r = client.post(
        "/api/subscription/createsubscription",
        json={
            "owner_id": ids["owner_id"],
            "plan_id": ids["plan_id"],
            "billing_model": "YEARLY",
            "start_date": "2026-01-01",
            "end_date": "2026-12-31",
        },
    )
    assert r.status_code == 201, r.json
    assert r.json["data"]["end_date"].startswith("2026-12-31")
    assert r.json["data"]["payment"] is None

    r = client.post("/api/subscription/getsubscriptions", json={"owner_id": ids["owner_id"]})
    subs = r.json["data"]
    assert len(subs) == 2
    assert sum(1 for sub in subs if sub["is_active"]) == 1


def test_invoice_pdf(client, login, make_owner):
    login()
    plan = _create_plan(client)
    _create_client(client, plan["id"], amount=5000, payment_method="CASH")
    payment_id = client.post("/api/payments/getpayments", json={}).json["data"][0]["id"]

    r = client.post("/api/payments/generateinvoice", json={"payment_id": payment_id})
    assert r.status_code == 200
    assert r.mimetype == "application/pdf"
    assert r.data.startswith(b"%PDF")

    r = client.post("/api/payments/generateinvoice", json={"payment_id": 9999})
    assert r.status_code == 404

    owner = make_owner()
    login(owner["email"])
    r = client.post("/api/payments/generateinvoice", json={"payment_id": payment_id})
    assert r.status_code == 403
