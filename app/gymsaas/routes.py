from flask import Blueprint, current_app, g, redirect, render_template, url_for

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    if getattr(g, "current_user", None):
        return redirect(url_for("dashboard.index"))
    return render_template("public/index.html")


@bp.get("/health")
def health():
    return {"ok": True, "service": current_app.config.get("PLATFORM_NAME") or "gymsaas"}


@bp.get("/healthz")
def healthz():
    # liveness only; the database is not touched
    return "ok", 200
