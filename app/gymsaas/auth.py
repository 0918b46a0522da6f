from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, flash, g, jsonify, redirect, render_template, request, session, url_for
from werkzeug.security import check_password_hash

from app.gymsaas.audit import record_event
from app.gymsaas.constants import ROLE_GYM_OWNER, ROLES
from app.gymsaas.db import db_session
from app.gymsaas.models import User
from app.gymsaas.rbac import require_role
from app.gymsaas.security import ensure_csrf_token
from app.gymsaas.utils import json_body, parse_int

bp = Blueprint("auth", __name__)
api_bp = Blueprint("auth_api", __name__)

_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def load_current_user() -> None:
    """
    Loads g.current_user from the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    if request.path.startswith(("/static/", "/health", "/healthz")):
        g.current_user = None
        return

    user_id = session.get("user_id")
    if not user_id:
        g.current_user = None
        return

    s = db_session()
    user = s.get(User, int(user_id))
    if not user or not user.is_active or user.is_deleted:
        _clear_login()
        g.current_user = None
        return
    g.current_user = user


def _clear_login() -> None:
    for key in ("user_id", "selected_gym_id", "selected_location_id"):
        session.pop(key, None)


def default_selection(s, user: User) -> tuple[int | None, int | None]:
    """First active gym of an owner (oldest first) and its first active location."""
    from app.gymsaas.modules.gyms.models import Gym, Location

    if user.role != ROLE_GYM_OWNER:
        return None, None
    gym = (
        s.query(Gym)
        .filter(Gym.owner_id == user.id, Gym.is_deleted.is_(False), Gym.is_active.is_(True))
        .order_by(Gym.created_at.asc(), Gym.id.asc())
        .first()
    )
    if gym is None:
        return None, None
    location = (
        s.query(Location)
        .filter(Location.gym_id == gym.id, Location.is_deleted.is_(False), Location.is_active.is_(True))
        .order_by(Location.created_at.asc(), Location.id.asc())
        .first()
    )
    return gym.id, location.id if location else None


def authenticate(s, email: str, password: str) -> User | None:
    user = (
        s.query(User)
        .filter(User.email == email, User.is_deleted.is_(False), User.is_active.is_(True))
        .one_or_none()
    )
    if not user or not user.password_hash or not check_password_hash(user.password_hash, password):
        return None
    return user


def _login(s, user: User) -> None:
    session.clear()
    session.permanent = True
    session["user_id"] = user.id
    gym_id, location_id = default_selection(s, user)
    session["selected_gym_id"] = gym_id
    session["selected_location_id"] = location_id


def session_info(s, user: User) -> dict:
    """What the dashboard needs to render navigation and the subscription banner."""
    from app.gymsaas.modules.subscriptions.limits import validate_owner_subscription

    if user.role == ROLE_GYM_OWNER and not session.get("selected_gym_id"):
        gym_id, location_id = default_selection(s, user)
        session["selected_gym_id"] = gym_id
        session["selected_location_id"] = location_id

    info = {
        "user": {
            "id": user.id,
            "email": user.email,
            "name": user.full_name,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "role": user.role,
        },
        "selected_gym_id": session.get("selected_gym_id"),
        "selected_location_id": session.get("selected_location_id"),
        "subscription_active": None,
        "subscription_limits": None,
    }
    if user.role == ROLE_GYM_OWNER:
        status = validate_owner_subscription(s, user.id)
        info["subscription_active"] = status.is_active
        info["subscription_limits"] = status.to_dict()
    return info


# ---------- Dashboard (form) login ----------
@bp.get("/login")
def login_get():
    nxt = (request.args.get("next") or "").strip()
    return render_template("auth/login.html", next=nxt)


@bp.post("/login")
def login_post():
    email = (request.form.get("email") or "").strip().lower()
    password = request.form.get("password") or ""
    nxt = (request.form.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        flash("Too many login attempts. Please wait 5 minutes.", "danger")
        return redirect(url_for("auth.login_get"))
    _record_attempt(ip)

    s = db_session()
    user = authenticate(s, email, password)
    if not user:
        record_event(s, actor=None, action="auth.login_failed", entity_type="User", entity_id=email, reason="Invalid credentials")
        s.commit()
        flash("Invalid credentials.", "danger")
        return redirect(url_for("auth.login_get"))

    _login(s, user)
    _login_attempts[ip].clear()
    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
    s.commit()
    # Optional "next" redirect (only allow local paths to avoid open redirects).
    if nxt.startswith("/") and not nxt.startswith("//"):
        return redirect(nxt)
    return redirect(url_for("dashboard.index"))


@bp.get("/logout")
def logout():
    s = db_session()
    user = getattr(g, "current_user", None)
    if user:
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(user.id))
        s.commit()
    session.clear()
    return redirect(url_for("routes.index"))


# ---------- JSON API ----------
@api_bp.post("/login")
def api_login():
    body = json_body()
    email = (body.get("email") or "").strip().lower()
    password = body.get("password") or ""
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        return jsonify({"error": "Too many login attempts. Please wait 5 minutes."}), 429
    _record_attempt(ip)

    s = db_session()
    user = authenticate(s, email, password)
    if not user:
        record_event(s, actor=None, action="auth.login_failed", entity_type="User", entity_id=email, reason="Invalid credentials")
        s.commit()
        current_app.logger.info("Failed API login for %s from %s", email, ip)
        return jsonify({"error": "Invalid credentials"}), 401

    _login(s, user)
    _login_attempts[ip].clear()
    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
    s.commit()
    return jsonify({"message": "Logged in", "data": session_info(s, user), "csrf_token": ensure_csrf_token()})


@api_bp.post("/logout")
def api_logout():
    s = db_session()
    user = getattr(g, "current_user", None)
    if user:
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(user.id))
        s.commit()
    session.clear()
    return jsonify({"message": "Logged out"})


@api_bp.post("/session")
@require_role(*ROLES)
def api_session():
    s = db_session()
    return jsonify({"data": session_info(s, g.current_user), "csrf_token": ensure_csrf_token()})


@api_bp.post("/select")
@require_role(ROLE_GYM_OWNER)
def api_select():
    """Switch the gym/location the owner dashboard is scoped to."""
    from app.gymsaas.modules.gyms.models import Gym, Location

    s = db_session()
    user: User = g.current_user
    body = json_body()
    try:
        gym_id = parse_int(body.get("gym_id"))
        location_id = parse_int(body.get("location_id"))
    except ValueError:
        return jsonify({"error": "gym_id and location_id must be integers"}), 400

    gym = s.get(Gym, gym_id) if gym_id else None
    if not gym or gym.is_deleted or gym.owner_id != user.id:
        return jsonify({"error": "UNAUTHORIZED_GYM", "message": "Gym does not belong to you"}), 403
    if location_id:
        location = s.get(Location, location_id)
        if not location or location.is_deleted or location.gym_id != gym.id:
            return jsonify({"error": "Invalid location_id or location does not belong to the selected gym"}), 400
    session["selected_gym_id"] = gym.id
    session["selected_location_id"] = location_id
    return jsonify({"message": "Selection updated", "data": session_info(s, user)})
