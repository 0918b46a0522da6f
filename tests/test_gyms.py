from conftest import PASSWORD


def test_owner_creates_gym_within_limit(client, login, make_owner):
    ids = make_owner(max_gyms=2)
    login(ids["email"])
    r = client.post("/api/gyms/creategym", json={"name": "Second Gym", "city": "Karachi"})
    assert r.status_code == 201, r.json
    assert r.json["data"]["owner_id"] == ids["owner_id"]

    r = client.post("/api/gyms/creategym", json={"name": "Third Gym"})
    assert r.status_code == 409
    assert r.json["error"] == "LIMIT_EXCEEDED"
    assert r.json["resourceType"] == "gym"


def test_admin_must_name_owner(client, login, make_owner):
    ids = make_owner()
    login()
    r = client.post("/api/gyms/creategym", json={"name": "Orphan"})
    assert r.status_code == 400

    r = client.post("/api/gyms/creategym", json={"name": "Adopted", "owner_id": ids["owner_id"]})
    assert r.status_code == 201

    r = client.post("/api/gyms/getgyms", json={"owner_id": ids["owner_id"]})
    assert r.json["totalCount"] == 2


def test_owner_cannot_touch_foreign_gym(client, login, make_owner):
    mine = make_owner()
    other = make_owner("other@example.com")
    login(mine["email"])
    r = client.post("/api/gyms/updategym", json={"id": other["gym_id"], "name": "Mine now"})
    assert r.status_code == 403
    assert r.json["error"] == "UNAUTHORIZED_GYM"

    r = client.post("/api/gyms/activegym", json={"id": mine["gym_id"]})
    assert r.status_code == 403


def test_admin_toggles_gym_active(client, login, make_owner):
    ids = make_owner()
    login()
    r = client.post("/api/gyms/activegym", json={"id": ids["gym_id"]})
    assert r.status_code == 200
    assert r.json["data"]["is_active"] is False
    r = client.post("/api/gyms/activegym", json={"id": ids["gym_id"], "is_active": True})
    assert r.json["data"]["is_active"] is True


def test_deleting_gym_hides_its_locations(client, login, make_owner):
    ids = make_owner()
    login(ids["email"])
    r = client.post("/api/gyms/deletegym", json={"id": ids["gym_id"]})
    assert r.status_code == 200

    r = client.post("/api/locations/getlocation", json={"id": ids["location_id"]})
    assert r.status_code == 404
    r = client.post("/api/gyms/getgyms", json={})
    assert r.json["totalCount"] == 0


def test_owner_cannot_move_location_between_gyms(client, login, make_owner):
    ids = make_owner()
    login(ids["email"])
    r = client.post("/api/gyms/creategym", json={"name": "Second Gym"})
    second_gym = r.json["data"]["id"]
    r = client.post("/api/locations/updatelocation", json={"id": ids["location_id"], "gym_id": second_gym})
    assert r.status_code == 403


def test_profile_update_and_password_change(client, login, make_owner):
    ids = make_owner()
    login(ids["email"])

    r = client.post("/api/profile/updateprofile", json={"city": "Multan", "email": "new@example.com"})
    assert r.status_code == 400

    r = client.post("/api/profile/updateprofile", json={"city": "Multan"})
    assert r.status_code == 200
    assert r.json["data"]["city"] == "Multan"
    assert "password_hash" not in r.json["data"]

    r = client.post("/api/profile/updatepassword", json={"current_password": "bad", "new_password": "another-pw"})
    assert r.status_code == 401

    r = client.post("/api/profile/updatepassword", json={"current_password": PASSWORD, "new_password": "another-pw"})
    assert r.status_code == 200
    client.post("/api/auth/logout", json={})
    login(ids["email"], "another-pw")
