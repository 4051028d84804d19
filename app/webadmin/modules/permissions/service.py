from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.webadmin.audit import record_event
from app.webadmin.errors import predefined_error
from app.webadmin.models import PERMISSION_ACTIONS, PERMISSION_TYPES
from app.webadmin.utils import check_max_lengths, clean_str, iso

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.webadmin.models import Permission, User

REQUIRED_FIELDS = ("code", "name", "description", "module", "moduleName", "action")

# JSON key -> model attribute
FIELD_MAP = {
    "code": "code",
    "name": "name",
    "description": "description",
    "module": "module",
    "moduleName": "module_name",
    "action": "action",
    "resource": "resource",
    "icon": "icon",
    "path": "path",
    "type": "type",
}
OPTIONAL_FIELDS = ("resource", "icon", "path")
MAX_LENGTHS = {
    "code": ("Code", 128),
    "name": ("Name", 100),
    "description": ("Description", 200),
    "module": ("Module", 50),
    "moduleName": ("Module name", 100),
    "resource": ("Resource", 50),
    "icon": ("Icon", 64),
    "path": ("Path", 255),
}


def serialize_permission(p: "Permission") -> dict[str, Any]:
    return {
        "id": p.id,
        "code": p.code,
        "name": p.name,
        "description": p.description,
        "module": p.module,
        "moduleName": p.module_name,
        "action": p.action,
        "resource": p.resource,
        "icon": p.icon,
        "path": p.path,
        "type": p.type,
        "isActive": p.is_active,
        "createdAt": iso(p.created_at),
        "updatedAt": iso(p.updated_at),
    }


def validate_permission_payload(payload: dict, *, partial: bool = False) -> dict[str, str]:
    errors: dict[str, str] = {}
    for key in REQUIRED_FIELDS:
        if partial and key not in payload:
            continue
        if not clean_str(payload.get(key)):
            errors[key] = f"{key} is required"

    action = payload.get("action")
    if "action" not in errors and action is not None and action not in PERMISSION_ACTIONS:
        errors["action"] = f"Action must be one of: {', '.join(PERMISSION_ACTIONS)}"

    ptype = payload.get("type")
    if ptype is not None and ptype not in PERMISSION_TYPES:
        errors["type"] = f"Type must be one of: {', '.join(PERMISSION_TYPES)}"

    if "isActive" in payload and not isinstance(payload["isActive"], bool):
        errors["isActive"] = "isActive must be a boolean"
    check_max_lengths(payload, MAX_LENGTHS, errors)
    return errors


def code_taken(s: "Session", code: str, exclude_id: int | None = None) -> bool:
    from app.webadmin.models import Permission

    q = s.query(Permission).filter(Permission.code == code)
    if exclude_id is not None:
        q = q.filter(Permission.id != exclude_id)
    return s.query(q.exists()).scalar()


def create_permission(s: "Session", payload: dict, user: "User | None") -> "Permission":
    from app.webadmin.models import Permission

    code = clean_str(payload.get("code"))
    if code_taken(s, code):
        raise predefined_error("PERMISSION_ALREADY_EXISTS", details=["code"])

    now = datetime.utcnow()
    p = Permission(is_active=payload.get("isActive") is not False, created_at=now, updated_at=now)
    for key, attr in FIELD_MAP.items():
        value = clean_str(payload.get(key))
        setattr(p, attr, (value or None) if key in OPTIONAL_FIELDS else value)
    p.type = payload.get("type") or "action"
    s.add(p)
    s.flush()

    record_event(
        s,
        actor=user,
        action="permission.create",
        entity_type="Permission",
        entity_id=str(p.id),
        metadata={"code": p.code, "type": p.type},
    )
    return p


def update_permission(s: "Session", p: "Permission", payload: dict, user: "User") -> "Permission":
    """
    Partial update. Renaming ``code`` does not rewrite roles that list the old
    code; those entries simply stop matching anything.
    """
    changes: dict[str, Any] = {}

    if "code" in payload:
        new_code = clean_str(payload.get("code"))
        if new_code != p.code and code_taken(s, new_code, exclude_id=p.id):
            raise predefined_error("PERMISSION_ALREADY_EXISTS", details=["code"])

    for key, attr in FIELD_MAP.items():
        if key not in payload:
            continue
        new = clean_str(payload.get(key)) or None
        if key not in OPTIONAL_FIELDS and new is None:
            continue
        if new != getattr(p, attr):
            changes[key] = {"old": getattr(p, attr), "new": new}
            setattr(p, attr, new)

    if "isActive" in payload and payload["isActive"] != p.is_active:
        changes["isActive"] = {"old": p.is_active, "new": bool(payload["isActive"])}
        p.is_active = bool(payload["isActive"])

    p.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="permission.edit",
        entity_type="Permission",
        entity_id=str(p.id),
        metadata={"code": p.code, "changes": changes},
    )
    return p


def roles_using_code(s: "Session", code: str) -> list[str]:
    """Names of roles listing ``code``; permission lists are JSON so this scans in Python."""
    from app.webadmin.models import Role

    return [r.name for r in s.query(Role).order_by(Role.id).all() if code in (r.permissions or [])]


def delete_permission(s: "Session", p: "Permission", user: "User") -> None:
    used_by = roles_using_code(s, p.code)
    if used_by:
        raise predefined_error("DATA_USED", details=[f"Permission is used by role(s): {', '.join(used_by)}"])

    record_event(
        s,
        actor=user,
        action="permission.delete",
        entity_type="Permission",
        entity_id=str(p.id),
        metadata={"code": p.code},
    )
    s.delete(p)


def list_modules(s: "Session") -> list[str]:
    from app.webadmin.models import Permission

    rows = s.query(Permission.module).filter(Permission.is_active.is_(True)).distinct().all()
    return sorted(r[0] for r in rows if r[0])


def migrate_permission_types(s: "Session", user: "User | None" = None) -> dict[str, Any]:
    """Backfill ``type='action'`` on rows where it is missing or not a known type."""
    from app.webadmin.models import Permission

    updated = 0
    for p in s.query(Permission).all():
        if p.type not in PERMISSION_TYPES:
            p.type = "action"
            p.updated_at = datetime.utcnow()
            updated += 1
    s.flush()

    total = s.query(Permission).count()
    valid = s.query(Permission).filter(Permission.type.in_(PERMISSION_TYPES)).count()
    if updated:
        record_event(s, actor=user, action="permission.migrate_types", entity_type="Permission", metadata={"updated": updated})
    return {
        "updated": updated,
        "totalPermissions": total,
        "permissionsWithValidType": valid,
        "migrationComplete": total == valid,
    }
