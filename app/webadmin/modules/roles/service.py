from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.webadmin.audit import record_event
from app.webadmin.errors import predefined_error
from app.webadmin.utils import check_max_lengths, iso

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.webadmin.models import Role, User

MAX_LENGTHS = {
    "name": ("Name", 50),
    "code": ("Code", 64),
    "description": ("Description", 200),
}


def serialize_role(role: "Role", *, with_permissions: bool = True) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": role.id,
        "name": role.name,
        "code": role.code,
        "description": role.description,
        "isActive": role.is_active,
    }
    if with_permissions:
        data["permissions"] = list(role.permissions or [])
        data["createdBy"] = role.created_by
        data["createdAt"] = iso(role.created_at)
        data["updatedAt"] = iso(role.updated_at)
    return data


def _clean_permissions(value: Any) -> list[str] | None:
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        return None
    # keep order, drop blanks and duplicates
    seen: dict[str, None] = {}
    for v in value:
        v = v.strip()
        if v:
            seen.setdefault(v, None)
    return list(seen)


def validate_role_payload(payload: dict, *, partial: bool = False) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not partial or "name" in payload:
        if not str(payload.get("name") or "").strip():
            errors["name"] = "Name is required"
    if not partial:
        if not str(payload.get("description") or "").strip():
            errors["description"] = "Description is required"
    if "permissions" in payload and payload["permissions"] is not None and _clean_permissions(payload["permissions"]) is None:
        errors["permissions"] = "Permissions must be a list of permission codes"
    if "isActive" in payload and not isinstance(payload["isActive"], bool):
        errors["isActive"] = "isActive must be a boolean"
    check_max_lengths(payload, MAX_LENGTHS, errors)
    return errors


def _name_taken(s: "Session", name: str, exclude_id: int | None = None) -> bool:
    from app.webadmin.models import Role

    q = s.query(Role).filter(Role.name == name)
    if exclude_id is not None:
        q = q.filter(Role.id != exclude_id)
    return s.query(q.exists()).scalar()


def _code_taken(s: "Session", code: str, exclude_id: int | None = None) -> bool:
    from app.webadmin.models import Role

    q = s.query(Role).filter(Role.code == code)
    if exclude_id is not None:
        q = q.filter(Role.id != exclude_id)
    return s.query(q.exists()).scalar()


def create_role(s: "Session", payload: dict, user: "User") -> "Role":
    from app.webadmin.models import Role

    name = str(payload.get("name") or "").strip()
    code = str(payload.get("code") or "").strip() or None
    if _name_taken(s, name) or (code and _code_taken(s, code)):
        raise predefined_error("ROLE_ALREADY_EXISTS")

    now = datetime.utcnow()
    role = Role(
        name=name,
        code=code,
        description=str(payload.get("description") or "").strip(),
        permissions=_clean_permissions(payload.get("permissions")) or [],
        is_active=payload.get("isActive") is not False,
        created_by=str(payload.get("createdBy") or "").strip() or user.email,
        created_at=now,
        updated_at=now,
    )
    s.add(role)
    s.flush()

    record_event(
        s,
        actor=user,
        action="role.create",
        entity_type="Role",
        entity_id=str(role.id),
        metadata={"name": role.name, "permissions": role.permissions},
    )
    return role


def update_role(s: "Session", role: "Role", payload: dict, user: "User") -> "Role":
    """Partial update: only keys present in ``payload`` are touched."""
    changes: dict[str, Any] = {}

    if "name" in payload:
        new_name = str(payload.get("name") or "").strip()
        if new_name != role.name:
            if _name_taken(s, new_name, exclude_id=role.id):
                raise predefined_error("ROLE_ALREADY_EXISTS")
            changes["name"] = {"old": role.name, "new": new_name}
            role.name = new_name

    if "code" in payload:
        new_code = str(payload.get("code") or "").strip() or None
        if new_code != role.code:
            if new_code and _code_taken(s, new_code, exclude_id=role.id):
                raise predefined_error("ROLE_ALREADY_EXISTS")
            changes["code"] = {"old": role.code, "new": new_code}
            role.code = new_code

    if "description" in payload:
        new_desc = str(payload.get("description") or "").strip()
        if new_desc != role.description:
            changes["description"] = {"old": role.description, "new": new_desc}
            role.description = new_desc

    if "permissions" in payload and payload["permissions"] is not None:
        new_perms = _clean_permissions(payload["permissions"]) or []
        if new_perms != list(role.permissions or []):
            old = set(role.permissions or [])
            changes["permissions"] = {"added": sorted(set(new_perms) - old), "removed": sorted(old - set(new_perms))}
            role.permissions = new_perms

    if "isActive" in payload and payload["isActive"] != role.is_active:
        changes["isActive"] = {"old": role.is_active, "new": bool(payload["isActive"])}
        role.is_active = bool(payload["isActive"])

    role.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="role.edit",
        entity_type="Role",
        entity_id=str(role.id),
        metadata={"name": role.name, "changes": changes},
    )
    return role


def count_role_users(s: "Session", role: "Role") -> int:
    from app.webadmin.models import UserRole

    return s.query(UserRole).filter(UserRole.role_id == role.id).count()


def delete_role(s: "Session", role: "Role", user: "User") -> None:
    in_use = count_role_users(s, role)
    if in_use:
        raise predefined_error("ROLE_IN_USE", details=[f"Role is assigned to {in_use} user(s)"])

    record_event(
        s,
        actor=user,
        action="role.delete",
        entity_type="Role",
        entity_id=str(role.id),
        metadata={"name": role.name, "code": role.code},
    )
    s.delete(role)
