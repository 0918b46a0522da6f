import hmac
import secrets

from flask import Request, current_app, session


def ensure_csrf_token() -> str:
    """Ensure a CSRF token exists in the session and return it."""
    token = session.get("csrf_token")
    if not token:
        token = secrets.token_urlsafe(32)
        session["csrf_token"] = token
    return token


def validate_csrf(req: Request) -> bool:
    """Validate CSRF token from header, form, or JSON body."""
    if not current_app.config.get("CSRF_ENABLED", True):
        return True
    token = req.headers.get("X-CSRF-Token") or req.form.get("csrf_token")
    if not token and req.is_json:
        json_data = req.get_json(silent=True)
        if isinstance(json_data, dict):
            token = json_data.get("csrf_token")
    expected = session.get("csrf_token")
    return bool(token and expected and hmac.compare_digest(str(token), str(expected)))


def verify_cron_request(req: Request) -> bool:
    """
    The daily job may be triggered by the platform scheduler header or a bearer secret.
    An unset CRON_SECRET never matches; an empty CRON_PLATFORM_HEADER disables the header path.
    """
    header = current_app.config.get("CRON_PLATFORM_HEADER") or ""
    if header and req.headers.get(header) == "1":
        return True
    secret = current_app.config.get("CRON_SECRET") or ""
    if not secret:
        current_app.logger.warning("CRON_SECRET not set; rejecting bearer-authenticated cron call")
        return False
    auth = req.headers.get("Authorization") or ""
    return hmac.compare_digest(auth, f"Bearer {secret}")
