import pytest

from conftest import ADMIN_EMAIL, PASSWORD


@pytest.fixture()
def csrf_client(app):
    app.config["CSRF_ENABLED"] = True
    return app.test_client()


def test_api_write_without_token_is_rejected(csrf_client):
    r = csrf_client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": PASSWORD})
    assert r.status_code == 200

    r = csrf_client.post("/api/plans/getplans", json={})
    assert r.status_code == 400
    assert "CSRF" in r.json["error"]


def test_api_write_with_token_header_is_accepted(csrf_client):
    r = csrf_client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": PASSWORD})
    token = r.json["csrf_token"]

    r = csrf_client.post("/api/plans/getplans", json={}, headers={"X-CSRF-Token": token})
    assert r.status_code == 200


def test_cron_endpoint_is_exempt(csrf_client):
    r = csrf_client.post("/api/cron/check-subscriptions", headers={"Authorization": "Bearer cron-secret"})
    assert r.status_code == 200
