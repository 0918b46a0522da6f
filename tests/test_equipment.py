from app.gymsaas.db import session_scope
from app.gymsaas.modules.gyms.models import Location


def _payload(ids, **extra):
    return {
        "name": "Treadmill",
        "type": "Cardio",
        "quantity": "3",
        "gym_id": ids["gym_id"],
        "location_id": ids["location_id"],
        **extra,
    }


def test_create_get_update_delete_equipment(client, login, make_owner):
    ids = make_owner()
    login(ids["email"])

    r = client.post(
        "/api/equipment/createequipment",
        json=_payload(ids, condition="New", status="In Use", purchase_date="2026-01-15"),
    )
    assert r.status_code == 201, r.json
    eq = r.json["data"]
    assert eq["quantity"] == "3"
    assert eq["purchase_date"] == "2026-01-15"

    r = client.post("/api/equipment/updateequipment", json={"id": eq["id"], "status": "Under Maintenance"})
    assert r.status_code == 200
    assert r.json["data"]["status"] == "Under Maintenance"

    r = client.post("/api/equipment/getequipments", json={"search": "tread"})
    assert r.json["totalCount"] == 1

    r = client.post("/api/equipment/deleteequipment", json={"id": eq["id"]})
    assert r.status_code == 200
    r = client.post("/api/equipment/getequipment", json={"id": eq["id"]})
    assert r.status_code == 404


def test_equipment_validation(client, login, make_owner):
    ids = make_owner()
    login(ids["email"])
    r = client.post("/api/equipment/createequipment", json={"name": "Bench"})
    assert r.status_code == 400
    assert "type is required." in r.json["error"]

    r = client.post("/api/equipment/createequipment", json=_payload(ids, condition="Broken"))
    assert r.status_code == 400
    assert "Invalid condition" in r.json["error"]


def test_equipment_in_foreign_gym_is_rejected(client, login, make_owner):
    mine = make_owner()
    other = make_owner("other@example.com")
    login(mine["email"])
    r = client.post(
        "/api/equipment/createequipment",
        json=_payload(mine, gym_id=other["gym_id"], location_id=other["location_id"]),
    )
    assert r.status_code == 403
    assert r.json["error"] == "UNAUTHORIZED_GYM"


def test_moving_equipment_checks_target_location_limit(app, client, login, make_owner):
    ids = make_owner(max_equipment=1)
    with session_scope(app) as s:
        second = Location(gym_id=ids["gym_id"], name="Annex")
        s.add(second)
        s.flush()
        second_id = second.id
    login(ids["email"])

    r = client.post("/api/equipment/createequipment", json=_payload(ids))
    first = r.json["data"]
    r = client.post("/api/equipment/createequipment", json=_payload(ids, name="Rack", location_id=second_id))
    assert r.status_code == 201, r.json

    r = client.post("/api/equipment/updateequipment", json={"id": first["id"], "location_id": second_id})
    assert r.status_code == 409
    assert r.json["message"] == "Equipment limit exceeded. Maximum 1 equipment per location."
