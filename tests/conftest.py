from datetime import datetime, timedelta

import pytest
from werkzeug.security import generate_password_hash

from app.gymsaas import create_app
from app.gymsaas.auth import _login_attempts
from app.gymsaas.constants import BILLING_MONTHLY, ROLE_GYM_OWNER, ROLE_SUPER_ADMIN
from app.gymsaas.db import session_scope
from app.gymsaas.models import Base, User
from app.gymsaas.modules.gyms.models import Gym, Location
from app.gymsaas.modules.plans.models import Plan
from app.gymsaas.modules.subscriptions.models import OwnerSubscription

ADMIN_EMAIL = "admin@example.com"
PASSWORD = "pw-123456"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("CSRF_ENABLED", "0")
    monkeypatch.setenv("MAIL_ENABLED", "0")
    monkeypatch.setenv("CRON_SECRET", "cron-secret")
    _login_attempts.clear()

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        s.add(
            User(
                email=ADMIN_EMAIL,
                password_hash=generate_password_hash(PASSWORD),
                role=ROLE_SUPER_ADMIN,
                first_name="Ada",
                last_name="Admin",
                is_active=True,
            )
        )
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def outbox(app):
    return app.extensions["mail_outbox"]


@pytest.fixture()
def login(client):
    def _login(email=ADMIN_EMAIL, password=PASSWORD):
        r = client.post("/api/auth/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.json
        return r.json

    return _login


@pytest.fixture()
def make_owner(app):
    """
    Seed a gym owner with a plan, one gym, one location and (unless active=False)
    a live monthly subscription. Returns the ids.
    """

    def _make(
        email="owner@example.com",
        *,
        active=True,
        max_gyms=2,
        max_locations=3,
        max_members=5,
        max_equipment=5,
        end_in_days=20,
    ):
        now = datetime.utcnow()
        with session_scope(app) as s:
            plan = Plan(
                name=f"Plan for {email}",
                monthly_price=1000,
                yearly_price=10000,
                max_gyms=max_gyms,
                max_locations=max_locations,
                max_members=max_members,
                max_equipment=max_equipment,
            )
            owner = User(
                email=email,
                password_hash=generate_password_hash(PASSWORD),
                role=ROLE_GYM_OWNER,
                first_name="Olive",
                last_name="Owner",
                phone_number="555-0100",
                is_active=True,
            )
            s.add_all([plan, owner])
            s.flush()
            gym = Gym(owner_id=owner.id, name="Iron Temple", city="Lahore")
            s.add(gym)
            s.flush()
            loc = Location(gym_id=gym.id, name="Main Branch")
            s.add(loc)
            s.flush()
            sub = OwnerSubscription(
                owner_id=owner.id,
                plan_id=plan.id,
                billing_model=BILLING_MONTHLY,
                start_date=now - timedelta(days=10),
                end_date=now + timedelta(days=end_in_days),
                is_active=active,
            )
            s.add(sub)
            s.flush()
            return {
                "owner_id": owner.id,
                "email": email,
                "plan_id": plan.id,
                "gym_id": gym.id,
                "location_id": loc.id,
                "subscription_id": sub.id,
            }

    return _make
