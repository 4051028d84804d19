from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from werkzeug.security import generate_password_hash

from app.webadmin.audit import record_event
from app.webadmin.errors import predefined_error
from app.webadmin.models import LEGACY_ROLES
from app.webadmin.modules.roles.service import serialize_role
from app.webadmin.rbac import sorted_permission_codes
from app.webadmin.utils import check_max_lengths, clean_str, is_valid_email, iso

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.webadmin.models import Role, User

MIN_PASSWORD_LENGTH = 6

# Profile fields copied verbatim (after strip) from the JSON body.
PROFILE_FIELDS = {
    "department": "department",
    "position": "position",
    "avatar": "avatar",
    "phone": "phone",
    "website": "website",
}

MAX_LENGTHS = {
    "name": ("Name", 100),
    "email": ("Email", 320),
    "department": ("Department", 50),
    "position": ("Position", 50),
    "avatar": ("Avatar", 512),
    "phone": ("Phone", 20),
    "website": ("Website", 100),
}


def serialize_user(user: "User", *, with_permissions: bool = False) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "department": user.department,
        "position": user.position,
        "avatar": user.avatar,
        "phone": user.phone,
        "website": user.website,
        "lastLogin": iso(user.last_login),
        "emailVerified": user.email_verified,
        "isActive": user.is_active,
        "roles": [serialize_role(r) for r in user.roles],
        "createdAt": iso(user.created_at),
        "updatedAt": iso(user.updated_at),
    }
    if with_permissions:
        data["permissions"] = sorted_permission_codes(user)
    return data


def normalize_email(value: Any) -> str:
    return clean_str(value).lower()


def email_taken(s: "Session", email: str, exclude_id: int | None = None) -> bool:
    from app.webadmin.models import User

    q = s.query(User).filter(User.email == email)
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    return s.query(q.exists()).scalar()


def validate_user_payload(s: "Session", payload: dict, *, user_id: int | None = None) -> dict[str, str]:
    """
    Field-level validation for create (``user_id`` None) and full update.
    Returns ``{field: message}``; empty means valid.
    """
    errors: dict[str, str] = {}
    creating = user_id is None

    if not clean_str(payload.get("name")):
        errors["name"] = "Name is required"

    email = normalize_email(payload.get("email"))
    if not email:
        errors["email"] = "Email is required"
    elif not is_valid_email(email):
        errors["email"] = "Invalid email format"
    elif not creating and email_taken(s, email, exclude_id=user_id):
        errors["email"] = "Email is already used by another user"

    password = payload.get("password")
    if creating and not password:
        errors["password"] = "Password is required"
    elif password and (not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH):
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"

    role = payload.get("role")
    if role is not None and role not in LEGACY_ROLES:
        errors["role"] = f"Role must be one of: {', '.join(LEGACY_ROLES)}"

    role_ids = payload.get("roles")
    if role_ids is not None and not _is_id_list(role_ids):
        errors["roles"] = "Roles must be a list of role ids"
    check_max_lengths(payload, MAX_LENGTHS, errors)
    return errors


def _is_id_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, int) and not isinstance(v, bool) for v in value)


def resolve_roles(s: "Session", role_ids: list[int]) -> list["Role"]:
    """All ids must exist, otherwise ROLE_NOT_FOUND listing the unknown ids."""
    from app.webadmin.models import Role

    wanted = list(dict.fromkeys(role_ids))
    if not wanted:
        return []
    found = {r.id: r for r in s.query(Role).filter(Role.id.in_(wanted)).all()}
    missing = [rid for rid in wanted if rid not in found]
    if missing:
        raise predefined_error("ROLE_NOT_FOUND", details=[f"Unknown role id(s): {', '.join(map(str, missing))}"])
    return [found[rid] for rid in wanted]


def create_user(s: "Session", payload: dict, actor: "User | None", *, force_role: str | None = None) -> "User":
    from app.webadmin.models import User

    email = normalize_email(payload.get("email"))
    if email_taken(s, email):
        raise predefined_error("USER_ALREADY_EXISTS", details=["User with this email already exists"])

    roles = resolve_roles(s, payload.get("roles") or [])
    now = datetime.utcnow()
    user = User(
        name=clean_str(payload.get("name")),
        email=email,
        password_hash=generate_password_hash(payload["password"]),
        role=force_role or payload.get("role") or "user",
        is_active=payload.get("isActive") is not False,
        email_verified=False,
        created_at=now,
        updated_at=now,
    )
    for attr, key in PROFILE_FIELDS.items():
        setattr(user, attr, clean_str(payload.get(key)) or None)
    user.roles = roles
    s.add(user)
    s.flush()

    record_event(
        s,
        actor=actor or user,
        action="user.create" if actor else "user.register",
        entity_type="User",
        entity_id=str(user.id),
        metadata={"email": user.email, "role": user.role, "roles": [r.id for r in roles]},
    )
    return user


def update_user(s: "Session", user: "User", payload: dict, actor: "User") -> "User":
    if payload.get("isActive") is False and user.id == actor.id:
        raise predefined_error("INVALID_INPUT", details=["Cannot deactivate your own account"])
    changes: dict[str, Any] = {}

    def _set(attr: str, new: Any) -> None:
        old = getattr(user, attr)
        if old != new:
            changes[attr] = {"old": old, "new": new}
            setattr(user, attr, new)

    _set("name", clean_str(payload.get("name")))
    _set("email", normalize_email(payload.get("email")))
    for attr, key in PROFILE_FIELDS.items():
        if key in payload or attr in ("department", "position"):
            _set(attr, clean_str(payload.get(key)) or None)
    _set("is_active", payload.get("isActive") is not False)
    if payload.get("role") is not None:
        _set("role", payload["role"])

    password = payload.get("password")
    if isinstance(password, str) and password.strip():
        user.password_hash = generate_password_hash(password.strip())
        changes["password"] = "changed"

    if "roles" in payload and payload["roles"] is not None:
        _replace_roles(s, user, payload["roles"], changes)

    if not user.is_active and user.deleted_at is None:
        user.deleted_at = datetime.utcnow()
        user.deleted_by_user_id = actor.id
    elif user.is_active:
        user.deleted_at = None
        user.deleted_by_user_id = None

    user.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=actor,
        action="user.edit",
        entity_type="User",
        entity_id=str(user.id),
        metadata={"email": user.email, "changes": changes},
    )
    return user


def _replace_roles(s: "Session", user: "User", role_ids: list[int], changes: dict[str, Any]) -> None:
    roles = resolve_roles(s, role_ids)
    old_ids = sorted(r.id for r in user.roles)
    new_ids = sorted(r.id for r in roles)
    if old_ids != new_ids:
        changes["roles"] = {"old": old_ids, "new": new_ids}
    user.roles = roles


def set_user_roles(s: "Session", user: "User", role_ids: list[int], actor: "User") -> "User":
    changes: dict[str, Any] = {}
    _replace_roles(s, user, role_ids, changes)
    user.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=actor,
        action="user.roles",
        entity_type="User",
        entity_id=str(user.id),
        metadata={"email": user.email, "changes": changes},
    )
    return user


def soft_delete_user(s: "Session", user: "User", actor: "User") -> "User":
    if user.id == actor.id:
        raise predefined_error("INVALID_INPUT", details=["Cannot delete your own account"])
    now = datetime.utcnow()
    user.is_active = False
    user.deleted_at = now
    user.deleted_by_user_id = actor.id
    user.updated_at = now
    record_event(
        s,
        actor=actor,
        action="user.delete",
        entity_type="User",
        entity_id=str(user.id),
        metadata={"email": user.email},
    )
    return user
