from app.gymsaas.constants import RESOURCE_EQUIPMENT, RESOURCE_GYM, RESOURCE_MEMBER
from app.gymsaas.db import session_scope
from app.gymsaas.modules.subscriptions.limits import check_limit_exceeded, validate_owner_subscription


def _member(ids, n):
    return {
        "gym_id": ids["gym_id"],
        "location_id": ids["location_id"],
        "first_name": "Mem",
        "last_name": f"Ber{n}",
        "email": f"member{n}@example.com",
    }


def test_validate_owner_subscription_reports_plan_limits(app, make_owner):
    ids = make_owner(max_members=7)
    with session_scope(app) as s:
        status = validate_owner_subscription(s, ids["owner_id"])
        assert status.is_active is True
        assert status.limits["max_members"] == 7
        assert status.counts == {"gyms": 1, "locations": 1, "members": 0, "equipment": 0}


def test_inactive_owner_has_zero_limits(app, make_owner):
    ids = make_owner(active=False)
    with session_scope(app) as s:
        status = validate_owner_subscription(s, ids["owner_id"])
        assert status.is_active is False
        assert set(status.limits.values()) == {0}
        check = check_limit_exceeded(s, ids["owner_id"], RESOURCE_GYM)
        assert check.exceeded is False


def test_gym_limit_is_per_owner(app, make_owner):
    ids = make_owner(max_gyms=1)
    with session_scope(app) as s:
        check = check_limit_exceeded(s, ids["owner_id"], RESOURCE_GYM)
        assert check.exceeded is True
        assert (check.current, check.max) == (1, 1)


def test_member_limit_returns_409(client, login, make_owner):
    ids = make_owner(max_members=2)
    login(ids["email"])
    for n in range(2):
        r = client.post("/api/members/createmember", json=_member(ids, n))
        assert r.status_code == 201, r.json

    r = client.post("/api/members/createmember", json=_member(ids, 9))
    assert r.status_code == 409
    body = r.json
    assert body["error"] == "LIMIT_EXCEEDED"
    assert body["resourceType"] == RESOURCE_MEMBER
    assert body["current"] == 2
    assert body["max"] == 2
    assert body["locationId"] == ids["location_id"]


def test_equipment_limit_returns_409(client, login, make_owner):
    ids = make_owner(max_equipment=1)
    login(ids["email"])
    payload = {"name": "Treadmill", "type": "Cardio", "quantity": 2, "gym_id": ids["gym_id"], "location_id": ids["location_id"]}
    r = client.post("/api/equipment/createequipment", json=payload)
    assert r.status_code == 201, r.json

    r = client.post("/api/equipment/createequipment", json={**payload, "name": "Rower"})
    assert r.status_code == 409
    assert r.json["error"] == "LIMIT_EXCEEDED"
    assert r.json["resourceType"] == RESOURCE_EQUIPMENT


def test_expired_owner_cannot_add(client, login, make_owner):
    ids = make_owner(active=False)
    login(ids["email"])
    r = client.post("/api/members/createmember", json=_member(ids, 1))
    assert r.status_code == 403
    assert r.json["error"] == "SUBSCRIPTION_EXPIRED"

    r = client.post("/api/gyms/creategym", json={"name": "Second"})
    assert r.status_code == 403


def test_location_limit(client, login, make_owner):
    ids = make_owner(max_locations=2)
    login(ids["email"])
    r = client.post("/api/locations/createlocation", json={"gym_id": ids["gym_id"], "name": "North"})
    assert r.status_code == 201, r.json
    r = client.post("/api/locations/createlocation", json={"gym_id": ids["gym_id"], "name": "South"})
    assert r.status_code == 409
    assert r.json["resourceType"] == "location"
