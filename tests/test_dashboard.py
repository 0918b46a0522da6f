from datetime import datetime

from app.gymsaas.modules.dashboard.service import chart_range, growth_pct, month_keys, month_label


def test_growth_pct():
    assert growth_pct(150, 100) == 50.0
    assert growth_pct(50, 0) is None


def test_chart_range_defaults_to_current_month():
    now = datetime(2026, 10, 19, 15, 0)
    start, end = chart_range({}, now)
    assert start == datetime(2026, 10, 1)
    assert end == now


def test_month_keys_cover_range():
    keys = month_keys(datetime(2026, 1, 15), datetime(2026, 3, 2))
    assert [month_label(k) for k in keys] == ["Jan 2026", "Feb 2026", "Mar 2026"]


def test_admin_overview(client, login, make_owner):
    make_owner()
    login()
    r = client.post("/api/dashboard/overview", json={})
    assert r.status_code == 200
    totals = r.json["totals"]
    assert totals["totalClients"] == 1
    assert totals["totalGyms"] == 1
    assert "revenueByMonth" in r.json["charts"]

    r = client.get("/dashboard")
    assert r.status_code == 200


def test_owner_overview_counts_own_resources(client, login, make_owner):
    ids = make_owner()
    make_owner("other@example.com")
    login(ids["email"])
    client.post(
        "/api/equipment/createequipment",
        json={"name": "Bike", "type": "Cardio", "quantity": 1, "gym_id": ids["gym_id"], "location_id": ids["location_id"]},
    )

    r = client.post("/api/dashboard/owner-overview", json={})
    assert r.status_code == 200
    totals = r.json["totals"]
    assert totals["totalGyms"] == 1
    assert totals["totalLocations"] == 1
    assert totals["totalEquipment"] == 1
    assert totals["totalMembers"] == 0

    r = client.post("/api/dashboard/overview", json={})
    assert r.status_code == 403

    r = client.get("/dashboard")
    assert r.status_code == 200
