import json
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.gymsaas.models import AuditEvent, User


def _encode(metadata: dict[str, Any] | None) -> str | None:
    # datetimes in change sets are stored as their str()
    return json.dumps(metadata, sort_keys=True, default=str) if metadata else None


def record_event(
    s: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Add one row to the audit trail; the caller's commit persists it.

    The daily job and scripts call this outside a request, so request_id and
    client_ip are only filled in when there is one.
    """
    rid, ip = request_id, None
    if has_request_context():
        rid = rid or getattr(g, "request_id", None)
        ip = request.remote_addr
    ev = AuditEvent(
        request_id=rid,
        actor_user_id=getattr(actor, "id", None),
        actor_user_email=getattr(actor, "email", None),
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=_encode(metadata),
        client_ip=ip,
    )
    s.add(ev)
    return ev
