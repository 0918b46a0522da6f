from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Any

from flask import request
from sqlalchemy.orm import Query

from app.gymsaas.constants import DEFAULT_PAGE_LIMIT
from app.gymsaas.errors import BadRequest


def json_body() -> dict:
    """Request JSON as a dict; form posts from the dashboard are accepted too."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    if request.form:
        return request.form.to_dict()
    return {}


def clean_str(value: Any) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_date(s: Any) -> date | None:
    """Parse YYYY-MM-DD (or a full ISO timestamp) into a date."""
    dt = parse_datetime(s)
    return dt.date() if dt else None


def parse_datetime(s: Any) -> datetime | None:
    """
    Parse an ISO-8601 date or timestamp. A trailing "Z" is accepted; aware values are
    converted to naive UTC to match the stored columns. Raises ValueError on garbage.
    """
    if s is None:
        return None
    if isinstance(s, datetime):
        value = s
    elif isinstance(s, date):
        return datetime(s.year, s.month, s.day)
    else:
        s = str(s).strip()
        if not s:
            return None
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        value = datetime.fromisoformat(s)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_int(s: Any) -> int | None:
    """Parse an integer from JSON numbers or strings. Raises ValueError on garbage."""
    if s is None or isinstance(s, bool):
        return None
    if isinstance(s, int):
        return s
    if isinstance(s, float):
        return int(s)
    s = str(s).strip()
    if not s:
        return None
    return int(float(s)) if "." in s else int(s)


def int_field(body: dict, key: str) -> int | None:
    """parse_int for a request body key; garbage is a 400, not a crash."""
    try:
        return parse_int(body.get(key))
    except (ValueError, OverflowError):
        raise BadRequest(f"{key} must be a whole number") from None


def parse_bool(value: Any, default: bool | None = None) -> bool | None:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def isoformat(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def row_to_dict(obj: Any, *, exclude: tuple[str, ...] = ()) -> dict[str, Any]:
    """Column values of an ORM row with dates rendered as ISO strings."""
    out: dict[str, Any] = {}
    for col in obj.__table__.columns:
        if col.key in exclude:
            continue
        value = getattr(obj, col.key)
        out[col.key] = isoformat(value) if isinstance(value, (date, datetime)) else value
    return out


def paginate(q: Query, body: dict, *, serialize) -> dict[str, Any]:
    """
    List envelope shared by every get* endpoint.

    Without page/limit and without a search term the full list is returned as a single page.
    """
    page = int_field(body, "page")
    limit = int_field(body, "limit")
    search = search_term(body)

    if page is None and limit is None and not search:
        rows = q.all()
        return {"data": [serialize(r) for r in rows], "totalCount": len(rows), "pageCount": 1}

    page = max(page or 1, 1)
    limit = max(limit or DEFAULT_PAGE_LIMIT, 1)
    total = q.order_by(None).count()
    rows = q.offset((page - 1) * limit).limit(limit).all()
    return {
        "data": [serialize(r) for r in rows],
        "totalCount": total,
        "pageCount": math.ceil(total / limit) if total else 0,
    }


def search_term(body: dict) -> str:
    value = body.get("search")
    return value.strip() if isinstance(value, str) else ""
