from conftest import ADMIN_EMAIL, PASSWORD


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True
    assert r.json["service"] == "Gym SaaS"

    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.data == b"ok"


def test_public_index_renders(client):
    r = client.get("/")
    assert r.status_code == 200


def test_api_requires_login(client):
    r = client.post("/api/plans/getplans", json={})
    assert r.status_code == 401
    assert r.json["message"] == "Unauthorized"


def test_dashboard_redirects_anonymous_to_login(client):
    r = client.get("/dashboard", follow_redirects=False)
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]


def test_form_login_and_dashboard(client):
    r = client.post("/auth/login", data={"email": ADMIN_EMAIL, "password": PASSWORD}, follow_redirects=False)
    assert r.status_code == 302

    r = client.get("/dashboard")
    assert r.status_code == 200


def test_form_login_rejects_bad_password(client):
    r = client.post("/auth/login", data={"email": ADMIN_EMAIL, "password": "nope"}, follow_redirects=False)
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]

    r = client.get("/dashboard", follow_redirects=False)
    assert r.status_code == 302


def test_api_login_session_and_logout(client, login):
    body = login()
    assert body["data"]["user"]["role"] == "SUPER_ADMIN"
    assert body["csrf_token"]

    r = client.post("/api/auth/session", json={})
    assert r.status_code == 200
    assert r.json["data"]["user"]["email"] == ADMIN_EMAIL

    r = client.post("/api/auth/logout", json={})
    assert r.status_code == 200

    r = client.post("/api/auth/session", json={})
    assert r.status_code == 401


def test_api_login_invalid_credentials(client):
    r = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": "wrong"})
    assert r.status_code == 401
    assert r.json["error"] == "Invalid credentials"


def test_login_rate_limited_after_repeated_failures(client):
    for _ in range(5):
        client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": "wrong"})
    r = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": PASSWORD})
    assert r.status_code == 429


def test_owner_session_selects_first_gym(client, login, make_owner):
    ids = make_owner()
    body = login(ids["email"])
    data = body["data"]
    assert data["selected_gym_id"] == ids["gym_id"]
    assert data["selected_location_id"] == ids["location_id"]
    assert data["subscription_active"] is True
    assert data["subscription_limits"]["limits"]["max_members"] == 5


def test_owner_cannot_reach_admin_endpoints(client, login, make_owner):
    ids = make_owner()
    login(ids["email"])
    r = client.post("/api/plans/getplans", json={})
    assert r.status_code == 403


def test_select_rejects_foreign_gym(client, login, make_owner):
    mine = make_owner()
    other = make_owner("other@example.com")
    login(mine["email"])

    r = client.post("/api/auth/select", json={"gym_id": other["gym_id"]})
    assert r.status_code == 403
    assert r.json["error"] == "UNAUTHORIZED_GYM"

    r = client.post("/api/auth/select", json={"gym_id": mine["gym_id"], "location_id": mine["location_id"]})
    assert r.status_code == 200
    assert r.json["data"]["selected_gym_id"] == mine["gym_id"]


def test_non_numeric_paging_and_ids_are_bad_requests(client, login, make_owner):
    ids = make_owner()
    login()
    r = client.post("/api/plans/getplans", json={"page": "abc"})
    assert r.status_code == 400
    assert r.json["error"] == "page must be a whole number"

    r = client.post("/api/plans/getplans", json={"page": 1, "limit": "ten"})
    assert r.status_code == 400

    r = client.post("/api/payments/getpayments", json={"owner_id": "x"})
    assert r.status_code == 400

    r = client.post("/api/subscription/renewsubscription", json={"owner_id": "x"})
    assert r.status_code == 400

    r = client.post(
        "/api/payments/createpayment",
        json={"subscription_type": "OWNER", "owner_subscription_id": "abc", "amount": 10, "payment_method": "CASH"},
    )
    assert r.status_code == 400
    assert r.json["error"] == "owner_subscription_id must be a whole number"

    login(ids["email"])
    r = client.post("/api/payments/getpayments", json={"gym_id": "nope"})
    assert r.status_code == 400
