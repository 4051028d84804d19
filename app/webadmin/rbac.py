"""
Permission resolution.

A user's effective permissions are the union of the permission codes listed on
their *active* roles. The legacy ``User.role == "admin"`` flag short-circuits
every check. Missing or inactive users have no permissions at all.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from functools import wraps
from typing import Any

from flask import current_app, g

from app.webadmin.errors import predefined_error
from app.webadmin.models import User


def collect_permission_codes(user: User | None) -> set[str]:
    if not user:
        return set()
    codes: set[str] = set()
    for role in user.roles:
        if not role.is_active:
            continue
        for code in role.permissions or []:
            if code:
                codes.add(code)
    return codes


def sorted_permission_codes(user: User | None) -> list[str]:
    return sorted(collect_permission_codes(user))


def _active(user: User | None) -> bool:
    return bool(user) and bool(user.is_active)


def is_admin(user: User | None) -> bool:
    return _active(user) and user.role == "admin"  # type: ignore[union-attr]


def has_permission(user: User | None, code: str) -> bool:
    if not _active(user):
        return False
    if user.role == "admin":  # type: ignore[union-attr]
        return True
    return code in collect_permission_codes(user)


def has_any_permission(user: User | None, codes: Iterable[str]) -> bool:
    codes = list(codes)
    if not _active(user) or not codes:
        return False
    if user.role == "admin":  # type: ignore[union-attr]
        return True
    owned = collect_permission_codes(user)
    return any(c in owned for c in codes)


def has_all_permissions(user: User | None, codes: Iterable[str]) -> bool:
    if not _active(user):
        return False
    if user.role == "admin":  # type: ignore[union-attr]
        return True
    owned = collect_permission_codes(user)
    return all(c in owned for c in codes)


def can_access_module(user: User | None, module: str) -> bool:
    return has_permission(user, f"{module}.access")


def can_perform_action(user: User | None, module: str, action: str, resource: str | None = None) -> bool:
    code = f"{module}.{action}.{resource}" if resource else f"{module}.{action}"
    return has_permission(user, code)


def module_permissions(user: User | None, module: str) -> list[str]:
    """Codes under ``<module>.`` the user actually holds (no admin bypass)."""
    if not _active(user):
        return []
    prefix = f"{module}."
    return sorted(c for c in collect_permission_codes(user) if c.startswith(prefix))


# ---------- endpoint decorators ----------


def _authenticated_user() -> User:
    user: User | None = getattr(g, "current_user", None)
    if not user or not user.is_active:
        # load_current_user leaves the reason for a rejected token here
        raise predefined_error(getattr(g, "auth_error", None) or "UNAUTHORIZED")
    return user


def _forbidden(missing: list[str]) -> Exception:
    g.missing_permission = ",".join(missing)
    current_app.logger.warning(
        "Forbidden: missing_permission=%s request_id=%s", g.missing_permission, getattr(g, "request_id", None)
    )
    return predefined_error("FORBIDDEN", missingPermission=missing)


def require_login(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        _authenticated_user()
        return fn(*args, **kwargs)

    return wrapped


def require_permission(code: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user = _authenticated_user()
            if not has_permission(user, code):
                raise _forbidden([code])
            return fn(*args, **kwargs)

        return wrapped

    return decorator


def require_any_permission(*codes: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user = _authenticated_user()
            if not has_any_permission(user, codes):
                raise _forbidden(list(codes))
            return fn(*args, **kwargs)

        return wrapped

    return decorator


def require_admin(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        user = _authenticated_user()
        if not is_admin(user):
            raise _forbidden(["admin"])
        return fn(*args, **kwargs)

    return wrapped
