from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func

from app.webadmin.audit import record_event
from app.webadmin.utils import check_max_lengths, clean_str, iso

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.webadmin.models import User
    from app.webadmin.modules.feature1.models import Feature1

FIRST_CODE = 100001

REQUIRED_FIELDS = ("title", "description", "displayMode", "icon", "color", "type", "startDate", "endDate")

# JSON key -> model attribute, for the plain string fields
TEXT_FIELDS = {
    "title": "title",
    "description": "description",
    "displayMode": "display_mode",
    "icon": "icon",
    "color": "color",
    "type": "type",
}
MAX_LENGTHS = {
    "title": ("Title", 255),
    "displayMode": ("Display mode", 64),
    "icon": ("Icon", 64),
    "color": ("Color", 32),
    "type": ("Type", 64),
}


def parse_date(s: Any) -> date | None:
    """Parse YYYY-MM-DD date string."""
    if not isinstance(s, str) or not s.strip():
        return None
    return date.fromisoformat(s.strip())


def _user_ref(u: "User | None") -> dict[str, Any] | None:
    if u is None:
        return None
    return {"id": u.id, "name": u.name, "email": u.email}


def serialize_feature1(f: "Feature1") -> dict[str, Any]:
    return {
        "id": f.id,
        "code": f.code,
        "title": f.title,
        "description": f.description,
        "displayMode": f.display_mode,
        "icon": f.icon,
        "color": f.color,
        "type": f.type,
        "startDate": f.start_date,
        "endDate": f.end_date,
        "images": list(f.images or []),
        "isActive": f.is_active,
        "createdBy": _user_ref(f.created_by),
        "updatedBy": _user_ref(f.updated_by),
        "createdAt": iso(f.created_at),
        "updatedAt": iso(f.updated_at),
    }


def validate_feature1_payload(payload: dict, *, partial: bool = False, current: "Feature1 | None" = None) -> dict[str, str]:
    errors: dict[str, str] = {}
    for key in REQUIRED_FIELDS:
        if partial and key not in payload:
            continue
        if not clean_str(payload.get(key)):
            errors[key] = f"{key} is required"

    dates: dict[str, date | None] = {}
    for key in ("startDate", "endDate"):
        if key in errors or key not in payload:
            continue
        try:
            dates[key] = parse_date(payload.get(key))
        except ValueError:
            errors[key] = f"{key} must be a date (YYYY-MM-DD)"

    start = dates.get("startDate") or (parse_date(current.start_date) if current else None)
    end = dates.get("endDate") or (parse_date(current.end_date) if current else None)
    if start and end and end < start and "endDate" not in errors:
        errors["endDate"] = "endDate must not be before startDate"

    images = payload.get("images")
    if images is not None and (not isinstance(images, list) or not all(isinstance(i, str) for i in images)):
        errors["images"] = "images must be a list of strings"

    if "isActive" in payload and not isinstance(payload["isActive"], bool):
        errors["isActive"] = "isActive must be a boolean"
    check_max_lengths(payload, MAX_LENGTHS, errors)
    return errors


def next_feature1_code(s: "Session") -> int:
    from app.webadmin.modules.feature1.models import Feature1

    current_max = s.query(func.max(Feature1.code)).scalar()
    return FIRST_CODE if current_max is None else int(current_max) + 1


def create_feature1(s: "Session", payload: dict, user: "User") -> "Feature1":
    from app.webadmin.modules.feature1.models import Feature1

    now = datetime.utcnow()
    f = Feature1(
        code=next_feature1_code(s),
        start_date=parse_date(payload.get("startDate")).isoformat(),  # type: ignore[union-attr]
        end_date=parse_date(payload.get("endDate")).isoformat(),  # type: ignore[union-attr]
        images=list(payload.get("images") or []),
        is_active=payload.get("isActive") is not False,
        created_at=now,
        updated_at=now,
        created_by=user,
        updated_by=user,
    )
    for key, attr in TEXT_FIELDS.items():
        setattr(f, attr, clean_str(payload.get(key)))
    s.add(f)
    s.flush()

    record_event(
        s,
        actor=user,
        action="feature1.create",
        entity_type="Feature1",
        entity_id=str(f.id),
        metadata={"code": f.code, "title": f.title, "type": f.type},
    )
    return f


def update_feature1(s: "Session", f: "Feature1", payload: dict, user: "User") -> "Feature1":
    changes: dict[str, Any] = {}

    for key, attr in TEXT_FIELDS.items():
        if key in payload:
            new = clean_str(payload.get(key))
            if new != getattr(f, attr):
                changes[key] = {"old": getattr(f, attr), "new": new}
                setattr(f, attr, new)

    for key, attr in (("startDate", "start_date"), ("endDate", "end_date")):
        if key in payload:
            new = parse_date(payload.get(key)).isoformat()  # type: ignore[union-attr]
            if new != getattr(f, attr):
                changes[key] = {"old": getattr(f, attr), "new": new}
                setattr(f, attr, new)

    if "images" in payload and payload["images"] is not None:
        new_images = list(payload["images"])
        if new_images != list(f.images or []):
            changes["images"] = {"old": len(f.images or []), "new": len(new_images)}
            f.images = new_images

    if "isActive" in payload and payload["isActive"] != f.is_active:
        changes["isActive"] = {"old": f.is_active, "new": bool(payload["isActive"])}
        f.is_active = bool(payload["isActive"])

    f.updated_at = datetime.utcnow()
    f.updated_by = user

    record_event(
        s,
        actor=user,
        action="feature1.edit",
        entity_type="Feature1",
        entity_id=str(f.id),
        metadata={"code": f.code, "changes": changes},
    )
    return f


def delete_feature1(s: "Session", f: "Feature1", user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="feature1.delete",
        entity_type="Feature1",
        entity_id=str(f.id),
        metadata={"code": f.code, "title": f.title},
    )
    s.delete(f)
