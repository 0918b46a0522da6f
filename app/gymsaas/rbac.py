from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, g, jsonify, redirect, request, url_for

from app.gymsaas.constants import ROLE_GYM_OWNER, ROLE_SUPER_ADMIN
from app.gymsaas.models import User


def user_has_role(user: User | None, *roles: str) -> bool:
    if not user or not user.is_active or user.is_deleted:
        return False
    return user.role in roles


def _wants_json() -> bool:
    return request.path.startswith("/api/") or request.is_json


def require_role(*roles: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            if not user or not user.is_active:
                if _wants_json():
                    return jsonify({"message": "Unauthorized"}), 401
                nxt = request.full_path or request.path
                # Avoid trailing '?' from full_path when there is no query string.
                if nxt.endswith("?"):
                    nxt = nxt[:-1]
                return redirect(url_for("auth.login_get", next=nxt))
            if not user_has_role(user, *roles):
                g.missing_role = "/".join(roles)
                if _wants_json():
                    return jsonify({"message": "Forbidden"}), 403
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator


require_super_admin = require_role(ROLE_SUPER_ADMIN)
require_gym_owner = require_role(ROLE_GYM_OWNER)
require_admin_or_owner = require_role(ROLE_SUPER_ADMIN, ROLE_GYM_OWNER)
