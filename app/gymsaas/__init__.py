import logging
import os
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, g, jsonify, render_template, request, session
from werkzeug.exceptions import HTTPException

from app.gymsaas.auth import api_bp as auth_api_bp, bp as auth_bp, load_current_user
from app.gymsaas.config import load_config
from app.gymsaas.db import init_db, teardown_db_session
from app.gymsaas.errors import ApiError
from app.gymsaas.modules.announcements.api import bp as announcements_bp
from app.gymsaas.modules.clients.api import bp as clients_bp
from app.gymsaas.modules.dashboard.api import bp as dashboard_api_bp
from app.gymsaas.modules.dashboard.views import bp as dashboard_bp
from app.gymsaas.modules.equipment.api import bp as equipment_bp
from app.gymsaas.modules.gyms.api import bp as gyms_bp
from app.gymsaas.modules.locations.api import bp as locations_bp
from app.gymsaas.modules.members.api import bp as members_bp
from app.gymsaas.modules.membersubscriptions.api import bp as membersubscriptions_bp
from app.gymsaas.modules.notifications.api import bp as cron_bp
from app.gymsaas.modules.payments.api import bp as payments_bp
from app.gymsaas.modules.plans.api import bp as plans_bp
from app.gymsaas.modules.profile.api import bp as profile_bp
from app.gymsaas.modules.subscriptions.api import bp as subscriptions_bp
from app.gymsaas.modules.todos.api import bp as todos_bp
from app.gymsaas.routes import bp as routes_bp

logger = logging.getLogger(__name__)

# POSTs that carry no session token yet (or come from the scheduler)
CSRF_EXEMPT_ENDPOINTS = frozenset(
    {
        "auth_api.api_login",
        "auth_api.api_logout",
        "cron.check_subscriptions_route",
    }
)


def _is_api() -> bool:
    return request.path.startswith("/api/")


def _rollback() -> None:
    s = getattr(g, "db_session", None)
    if s is not None:
        s.rollback()


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True
    app.extensions["mail_outbox"] = []

    from app.gymsaas.security import ensure_csrf_token, validate_csrf

    @app.context_processor
    def _inject_csrf() -> dict:
        return {"csrf_token": ensure_csrf_token()}

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%Y-%m-%d") -> str:
        if value is None:
            return "-"
        if hasattr(value, "strftime"):
            return value.strftime(format)
        return str(value)

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(("/static/", "/health", "/healthz")):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            endpoint = request.endpoint or ""
            if endpoint.startswith("auth.") or endpoint in CSRF_EXEMPT_ENDPOINTS:
                return None
            if not validate_csrf(request):
                if _is_api():
                    return jsonify({"error": "CSRF token missing or invalid."}), 400
                return render_template("errors/400.html", message="CSRF token missing or invalid."), 400

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
        if not app.config.get("CRON_SECRET"):
            app.logger.warning("CRON_SECRET is not set; only the scheduler header can trigger the daily check.")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(auth_api_bp, url_prefix="/api/auth")
    app.register_blueprint(clients_bp, url_prefix="/api/clients")
    app.register_blueprint(plans_bp, url_prefix="/api/plans")
    app.register_blueprint(subscriptions_bp, url_prefix="/api/subscription")
    app.register_blueprint(gyms_bp, url_prefix="/api/gyms")
    app.register_blueprint(locations_bp, url_prefix="/api/locations")
    app.register_blueprint(members_bp, url_prefix="/api/members")
    app.register_blueprint(membersubscriptions_bp, url_prefix="/api/membersubscriptions")
    app.register_blueprint(payments_bp, url_prefix="/api/payments")
    app.register_blueprint(equipment_bp, url_prefix="/api/equipment")
    app.register_blueprint(todos_bp, url_prefix="/api/todos")
    app.register_blueprint(profile_bp, url_prefix="/api/profile")
    app.register_blueprint(announcements_bp, url_prefix="/api/announcements")
    app.register_blueprint(dashboard_api_bp, url_prefix="/api/dashboard")
    app.register_blueprint(cron_bp, url_prefix="/api/cron")

    app.before_request(load_current_user)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(ApiError)
    def _api_error(e: ApiError):
        _rollback()
        if e.status_code >= 500:
            app.logger.error("API error on %s: %s", request.path, e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):
        if _is_api():
            return jsonify({"message": e.description or e.name}), e.code
        if e.code == 403:
            missing = getattr(g, "missing_role", None)
            if missing:
                app.logger.warning("Forbidden: missing_role=%s request_id=%s", missing, getattr(g, "request_id", None))
            return render_template("errors/403.html", missing_role=missing), 403
        if e.code in (400, 404):
            return render_template(f"errors/{e.code}.html", message=e.description), e.code
        return e

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):
        _rollback()
        app.logger.exception("Unhandled error (request_id=%s)", getattr(g, "request_id", None))
        if _is_api():
            return jsonify({"error": str(e) or "Internal server error"}), 500
        return render_template("errors/500.html"), 500

    logger.info("create_app() complete; app ready to serve")

    return app
