from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from flask import g, request

from app.webadmin.errors import predefined_error
from app.webadmin.models import User

_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email or ""))


def json_body() -> dict[str, Any]:
    """Request JSON as a dict; anything else is a 400."""
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise predefined_error("INVALID_INPUT", details=["Request body must be a JSON object"])
    return body


def current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def clean_str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def check_max_lengths(payload: dict, limits: dict[str, tuple[str, int]], errors: dict[str, str]) -> None:
    """Add ``{key: "<Label> cannot be more than N characters"}`` for oversize strings."""
    for key, (label, limit) in limits.items():
        value = payload.get(key)
        if isinstance(value, str) and len(value.strip()) > limit:
            errors.setdefault(key, f"{label} cannot be more than {limit} characters")
