import json
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.webadmin.models import AuditEvent, User


def _clip(column: str, value: str | None) -> str | None:
    # login failures carry the raw submitted email, which may exceed the column
    if value is None:
        return None
    limit = AuditEvent.__table__.c[column].type.length
    return value[:limit] if limit else value


def record_event(
    s: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuditEvent:
    """
    Append an AuditEvent to ``s`` (the caller commits).

    Inside a request the event carries ``g.request_id`` and the client IP.
    ``actor=None`` records an anonymous event such as a failed login.
    """
    in_request = has_request_context()
    ev = AuditEvent(
        request_id=getattr(g, "request_id", None) if in_request else None,
        client_ip=_clip("client_ip", request.remote_addr) if in_request else None,
        actor_user_id=actor.id if actor else None,
        actor_user_email=actor.email if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=_clip("entity_id", entity_id),
        reason=_clip("reason", reason),
        metadata_json=json.dumps(metadata, sort_keys=True, default=str) if metadata else None,
    )
    s.add(ev)
    return ev
