from app.gymsaas.db import session_scope
from app.gymsaas.models import User
from app.gymsaas.modules.payments.models import Payment
from app.gymsaas.modules.subscriptions.models import MemberSubscription


def _create_member(client, ids, email="jane@example.com"):
    r = client.post(
        "/api/members/createmember",
        json={
            "gym_id": ids["gym_id"],
            "location_id": ids["location_id"],
            "first_name": "Jane",
            "last_name": "Doe",
            "email": email,
            "phone_number": "555-0111",
        },
    )
    assert r.status_code == 201, r.json
    return r.json["data"]


def test_create_list_and_update_member(client, login, make_owner):
    ids = make_owner()
    login(ids["email"])
    member = _create_member(client, ids)
    assert member["user"]["role"] == "MEMBER"
    assert member["gym"]["id"] == ids["gym_id"]
    assert member["subscription"] is None

    r = client.post("/api/members/getmembers", json={"search": "jane", "page": 1, "limit": 10})
    assert r.status_code == 200
    assert r.json["totalCount"] == 1
    assert r.json["pageCount"] == 1

    r = client.post("/api/members/updatemember", json={"id": member["id"], "first_name": "Janet"})
    assert r.status_code == 200
    assert r.json["data"]["user"]["first_name"] == "Janet"


def test_duplicate_member_email_conflicts(client, login, make_owner):
    ids = make_owner()
    login(ids["email"])
    _create_member(client, ids)
    r = client.post(
        "/api/members/createmember",
        json={
            "gym_id": ids["gym_id"],
            "location_id": ids["location_id"],
            "first_name": "Other",
            "last_name": "Jane",
            "email": "JANE@example.com",
        },
    )
    assert r.status_code == 409


def test_owner_cannot_see_other_owners_member(client, login, make_owner):
    mine = make_owner()
    other = make_owner("other@example.com")
    login(other["email"])
    theirs = _create_member(client, other)

    login(mine["email"])
    r = client.post("/api/members/getmember", json={"id": theirs["id"]})
    assert r.status_code == 403
    assert r.json["error"] == "UNAUTHORIZED_GYM"

    r = client.post("/api/members/getmembers", json={})
    assert r.json["totalCount"] == 0


def test_owner_member_subscription_create_and_renew(app, client, login, make_owner):
    ids = make_owner()
    login(ids["email"])
    member = _create_member(client, ids)

    r = client.post(
        "/api/membersubscriptions/createmembersubscription-owner",
        json={"member_id": member["id"], "price": 3000, "months": 1},
    )
    assert r.status_code == 201, r.json
    first = r.json["data"]
    assert first["billing_model"] == "MONTHLY"
    assert first["payments"] == []

    r = client.post(
        "/api/membersubscriptions/renewmembersubscription-owner",
        json={"member_id": member["id"], "price": 3000, "months": 1},
    )
    assert r.status_code == 201, r.json
    assert r.json["message"] == "Member subscription renewed and payment created successfully"
    renewed = r.json["data"]
    # one new month plus the unused days of the first term
    assert renewed["remaining_days"] >= 56
    assert len(renewed["payments"]) == 1
    payment = renewed["payments"][0]
    assert payment["amount"] == 3000
    assert payment["payment_method"] == "CASH"
    assert payment["transaction_id"].startswith("CASH-")

    with session_scope(app) as s:
        old = s.get(MemberSubscription, first["id"])
        assert old.is_active is False


def test_owner_subscription_with_custom_dates_validates_order(client, login, make_owner):
    ids = make_owner()
    login(ids["email"])
    member = _create_member(client, ids)
    r = client.post(
        "/api/membersubscriptions/createmembersubscription-owner",
        json={
            "member_id": member["id"],
            "price": 100,
            "use_custom_dates": True,
            "start_date": "2026-05-10",
            "end_date": "2026-05-01",
        },
    )
    assert r.status_code == 400
    assert r.json["error"] == "End date must be after start date"


def test_bank_transfer_renewal_needs_transaction_id(client, login, make_owner):
    ids = make_owner()
    login(ids["email"])
    member = _create_member(client, ids)
    r = client.post(
        "/api/membersubscriptions/renewmembersubscription-owner",
        json={"member_id": member["id"], "price": 500, "months": 1, "payment_method": "BANK_TRANSFER"},
    )
    assert r.status_code == 400
    assert "transaction_id" in r.json["error"]


def test_delete_member_keeps_payment_history(app, client, login, make_owner):
    ids = make_owner()
    login(ids["email"])
    member = _create_member(client, ids)
    client.post(
        "/api/membersubscriptions/createmembersubscription-owner",
        json={"member_id": member["id"], "price": 100, "months": 2},
    )
    r = client.post(
        "/api/membersubscriptions/renewmembersubscription-owner",
        json={"member_id": member["id"], "price": 100, "months": 1},
    )
    assert r.status_code == 201, r.json

    r = client.post("/api/members/deletemember", json={"id": member["id"]})
    assert r.status_code == 200

    with session_scope(app) as s:
        person = s.get(User, member["user"]["id"])
        assert person.is_deleted is True
        subs = s.query(MemberSubscription).all()
        assert len(subs) == 2
        assert all(sub.is_deleted and not sub.is_active for sub in subs)
        assert s.query(Payment).count() == 1

    r = client.post("/api/payments/getpayments", json={})
    assert r.json["totalCount"] == 1
    r = client.post("/api/members/getmember", json={"id": member["id"]})
    assert r.status_code == 404
    r = client.post("/api/members/getmembers", json={})
    assert r.json["totalCount"] == 0
    r = client.post("/api/membersubscriptions/getmembersubscriptions", json={})
    assert r.json["totalCount"] == 0


def test_deleted_member_can_rejoin_with_same_email(app, client, login, make_owner):
    ids = make_owner()
    login(ids["email"])
    member = _create_member(client, ids)
    client.post("/api/members/deletemember", json={"id": member["id"]})

    rejoined = _create_member(client, ids)
    assert rejoined["user"]["id"] == member["user"]["id"]
    assert rejoined["user"]["is_active"] is True
    assert rejoined["subscription"] is None

    r = client.post("/api/members/getmembers", json={})
    assert r.json["totalCount"] == 1

    with session_scope(app) as s:
        person = s.get(User, member["user"]["id"])
        assert person.is_deleted is False
        assert s.query(User).filter(User.email == "jane@example.com").count() == 1

    # the live member still blocks a duplicate
    r = client.post(
        "/api/members/createmember",
        json={
            "gym_id": ids["gym_id"],
            "location_id": ids["location_id"],
            "first_name": "Jane",
            "last_name": "Again",
            "email": "jane@example.com",
        },
    )
    assert r.status_code == 409


def test_deleted_member_frees_location_slot(client, login, make_owner):
    ids = make_owner(max_members=1)
    login(ids["email"])
    member = _create_member(client, ids)
    client.post("/api/members/deletemember", json={"id": member["id"]})
    _create_member(client, ids, email="next@example.com")
