"""
Navigation guard, admin menu and breadcrumbs.

The frontend asks these endpoints whether a route may be entered and which
menu entries to render; the same rbac predicates back the API decorators, so
what the menu shows and what the API allows never drift apart.
"""
from __future__ import annotations

import copy
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from flask import Blueprint, g, request

from app.webadmin.db import db_session
from app.webadmin.models import Permission, User
from app.webadmin.rbac import can_access_module, has_any_permission, has_permission, is_admin, require_login
from app.webadmin.responses import success_response

bp = Blueprint("navigation", __name__)

LOGIN_PATH = "/login"
HOME_PATH = "/admin"

# Any one of the listed codes opens the route.
ROUTE_PERMISSIONS: dict[str, list[str]] = {
    "/admin": ["dashboard.access"],
    "/admin/components": ["components.access"],
    "/admin/demo": ["demo.access"],
    "/admin/user_management": ["user_management.access"],
}

# Prefix -> module whose ".access" code is needed for every page below it.
MODULE_PREFIXES: dict[str, str] = {
    "/admin/user_management/": "user_management",
}

MENU_CONFIG: list[dict[str, Any]] = [
    {
        "title": "Main",
        "items": [
            {
                "id": "dashboard",
                "title": "Dashboard",
                "icon": "dashboard",
                "path": "/admin",
                "permissions": ["dashboard.access"],
            },
        ],
    },
    {
        "title": "System",
        "items": [
            {
                "id": "user_management",
                "title": "Settings",
                "icon": "settings",
                "path": "/admin/user_management",
                "permissions": ["user_management.access"],
                "children": [
                    {
                        "id": "user_management-roles",
                        "title": "Roles & Permissions",
                        "icon": "lock",
                        "path": "/user_management?tab=roles",
                        "permissions": ["user_management.roles"],
                    },
                    {
                        "id": "user_management-users",
                        "title": "User Management",
                        "icon": "users",
                        "path": "/user_management?tab=users",
                        "permissions": ["user_management.users"],
                    },
                ],
            },
        ],
    },
]


@dataclass(frozen=True)
class GuardDecision:
    allowed: bool
    redirect: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"allowed": self.allowed, "redirect": self.redirect}


# characters JS encodeURIComponent leaves alone
_URI_COMPONENT_SAFE = "-_.!~*'()"


def _login_redirect(full_path: str) -> str:
    return f"{LOGIN_PATH}?redirect={quote(full_path, safe=_URI_COMPONENT_SAFE)}"


def check_route_access(user: User | None, path: str) -> GuardDecision:
    full_path = path or "/"
    base_path = full_path.split("?", 1)[0] or "/"

    if base_path == LOGIN_PATH or base_path.startswith("/api/"):
        return GuardDecision(True)

    if not user or not user.is_active:
        return GuardDecision(False, _login_redirect(full_path))

    required = ROUTE_PERMISSIONS.get(base_path)
    if required and not is_admin(user) and not has_any_permission(user, required):
        if base_path == HOME_PATH:
            return GuardDecision(False, _login_redirect(full_path))
        return GuardDecision(False, HOME_PATH)

    for prefix, module in MODULE_PREFIXES.items():
        if base_path.startswith(prefix) and not can_access_module(user, module):
            return GuardDecision(False, HOME_PATH)

    return GuardDecision(True)


# ---------- menu ----------


def is_menu_item_accessible(user: User | None, item: dict[str, Any] | None) -> bool:
    if is_admin(user):
        return True
    if not item:
        return False
    perms = item.get("permissions") or []
    if perms:
        return has_any_permission(user, perms)
    return True


def _filter_items(user: User | None, items: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    out = []
    admin = is_admin(user)
    for item in items:
        if item.get("separator") or admin:
            out.append(copy.deepcopy(item))
            continue
        perms = item.get("permissions") or []
        if perms and not has_any_permission(user, perms):
            continue
        visible = {k: v for k, v in item.items() if k != "children"}
        if "children" in item:
            # parent stays even when every child is hidden
            visible["children"] = _filter_items(user, item["children"])
        out.append(visible)
    return out


def filter_menu_sections(user: User | None, sections: list[dict[str, Any]] | None = None) -> list[dict[str, Any]]:
    """Return a filtered copy of ``sections`` (default MENU_CONFIG); input is left untouched."""
    if sections is None:
        sections = MENU_CONFIG
    out = []
    for section in sections:
        items = _filter_items(user, section.get("items") or [])
        if items:
            out.append({**{k: v for k, v in section.items() if k != "items"}, "items": items})
    return out


def _walk(items: Iterable[dict[str, Any]]):
    for item in items:
        yield item
        yield from _walk(item.get("children") or [])


def find_menu_item(item_id: str, sections: list[dict[str, Any]] | None = None) -> dict[str, Any] | None:
    for section in sections if sections is not None else MENU_CONFIG:
        for item in _walk(section.get("items") or []):
            if item.get("id") == item_id:
                return item
    return None


def format_label(segment: str) -> str:
    """``user_management`` / ``user-management`` -> ``User Management``."""
    words = segment.replace("-", " ").replace("_", " ").split(" ")
    return " ".join(w[:1].upper() + w[1:] for w in words)


def _chain(items: list[dict[str, Any]], path: str) -> list[dict[str, Any]] | None:
    for item in items:
        if item.get("path") == path:
            return [item]
        sub = _chain(item.get("children") or [], path)
        if sub is not None:
            return [item, *sub]
    return None


def breadcrumbs(path: str, sections: list[dict[str, Any]] | None = None) -> list[dict[str, Any]]:
    """
    Ancestor chain of the menu item whose path equals ``path``. Paths with no
    menu entry fall back to one crumb per segment, labelled by format_label.
    """
    for section in sections if sections is not None else MENU_CONFIG:
        chain = _chain(section.get("items") or [], path)
        if chain:
            return [{"id": i.get("id"), "title": i.get("title"), "path": i.get("path")} for i in chain]

    crumbs = []
    prefix = ""
    for segment in [p for p in path.split("?", 1)[0].split("/") if p]:
        prefix = f"{prefix}/{segment}"
        crumbs.append({"id": None, "title": format_label(segment), "path": prefix})
    return crumbs


def menu_stats(user: User | None, sections: list[dict[str, Any]] | None = None) -> dict[str, int]:
    stats = {"totalItems": 0, "accessibleItems": 0, "hiddenItems": 0}
    for section in sections if sections is not None else MENU_CONFIG:
        for item in _walk(section.get("items") or []):
            if item.get("separator"):
                continue
            stats["totalItems"] += 1
            if is_menu_item_accessible(user, item):
                stats["accessibleItems"] += 1
            else:
                stats["hiddenItems"] += 1
    return stats


# ---------- menu sections from menu-type permissions ----------


def generate_path(permission: Permission) -> str:
    module = permission.code.split(".", 1)[0]
    if module == "dashboard":
        return "/admin"
    return f"/admin/{module.replace('_', '-')}"


def build_menu_sections(permissions: Iterable[Permission]) -> list[dict[str, Any]]:
    grouped: dict[str, dict[str, Any]] = {}
    for p in permissions:
        if p.type != "menu":
            continue
        section = grouped.setdefault(p.module, {"title": p.module_name, "module": p.module, "items": []})
        section["items"].append(
            {
                "path": p.path or generate_path(p),
                "label": p.name,
                "icon": p.icon,
                "code": p.code,
            }
        )
    return [grouped[m] for m in sorted(grouped)]


# ---------- HTTP ----------


@bp.get("/menu")
@require_login
def menu():
    user = g.current_user
    return success_response({"sections": filter_menu_sections(user), "stats": menu_stats(user)})


@bp.get("/menu-sections")
@require_login
def menu_sections():
    user = g.current_user
    s = db_session()
    perms = (
        s.query(Permission)
        .filter(Permission.type == "menu", Permission.is_active.is_(True))
        .order_by(Permission.module.asc(), Permission.code.asc())
        .all()
    )
    return success_response(build_menu_sections(p for p in perms if has_permission(user, p.code)))


@bp.get("/guard")
def guard():
    path = (request.args.get("path") or "").strip() or "/"
    decision = check_route_access(getattr(g, "current_user", None), path)
    return success_response(decision.to_dict())


@bp.get("/breadcrumbs")
def breadcrumbs_get():
    path = (request.args.get("path") or "").strip() or "/"
    return success_response(breadcrumbs(path))


@bp.get("/routes")
def routes():
    return success_response({"routes": ROUTE_PERMISSIONS, "modulePrefixes": MODULE_PREFIXES})
