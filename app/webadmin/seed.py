"""
Idempotent seed data: permissions, roles, default users and sample Feature1 rows.

Every ``seed_*`` function takes an open session, never commits, and returns
``{"created", "skipped", "total"}``. Rows are matched by natural key (permission
code, role code, user email) and existing rows are never overwritten.
"""
from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from functools import wraps
from typing import Any

from flask import Blueprint, current_app
from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash

from app.webadmin.db import db_session
from app.webadmin.errors import predefined_error
from app.webadmin.models import Permission, Role, User
from app.webadmin.responses import success_response

bp = Blueprint("seed", __name__)

_UM = "การจัดการสิทธิ์ผู้ใช้งาน"
_DEV = "นักพัฒนา"

DEFAULT_PERMISSIONS: list[dict[str, Any]] = [
    # menu
    {"code": "dashboard.access", "name": "หน้าหลัก", "description": "Access to dashboard page", "module": "dashboard",
     "module_name": "หน้าหลัก", "action": "access", "resource": "dashboard", "icon": "home", "path": "/admin", "type": "menu"},
    {"code": "components.access", "name": "Components", "description": "Access to components page", "module": "developer",
     "module_name": _DEV, "action": "access", "resource": "developer", "icon": "stop", "path": "/admin/components", "type": "menu"},
    {"code": "demo.access", "name": "Demo", "description": "Component playground for developers", "module": "developer",
     "module_name": _DEV, "action": "access", "resource": "developer", "icon": "computer-desktop", "path": "/admin/demo", "type": "menu"},
    {"code": "user_management.access", "name": _UM, "description": "Access to settings module", "module": "user_management",
     "module_name": _UM, "action": "access", "resource": "user_management", "icon": "wrench-screwdriver",
     "path": "/admin/user_management", "type": "menu"},
    # action
    {"code": "user_management.users", "name": "ผู้ใช้ระบบ", "description": "Manage users and assign roles", "module": "user_management",
     "module_name": _UM, "action": "update", "resource": "users", "type": "action"},
    {"code": "user_management.roles", "name": "บทบาท", "description": "Manage roles and permissions", "module": "user_management",
     "module_name": _UM, "action": "update", "resource": "roles", "type": "action"},
    {"code": "user_management.permissions", "name": "สิทธิ์การใช้งาน", "description": "Manage permissions", "module": "user_management",
     "module_name": _UM, "action": "update", "resource": "permissions", "type": "action"},
]

DEFAULT_ROLES: list[dict[str, Any]] = [
    {
        "name": "ผู้ดูแลระบบ",
        "code": "admin",
        "description": "Full system access",
        "permissions": [
            "dashboard.access",
            "user_management.access",
            "user_management.roles",
            "user_management.users",
            "user_management.permissions",
            "components.access",
            "demo.access",
        ],
    },
    {
        "name": "ผู้พัฒนา",
        "code": "developer",
        "description": "developer",
        "permissions": [
            "dashboard.access",
            "components.access",
            "demo.access",
            "user_management.roles",
            "user_management.permissions",
            "user_management.users",
        ],
    },
]

# email/password of the admin entry come from ADMIN_EMAIL / ADMIN_PASSWORD
DEFAULT_USERS: list[dict[str, Any]] = [
    {"name": "Admin User", "email": None, "password": None, "role": "admin", "role_code": "admin", "position": "",
     "avatar": "https://api.dicebear.com/7.x/avataaars/svg?seed=admin"},
    {"name": "Developer", "email": "dev@moonoi.com", "password": "dev123", "role": "user", "role_code": "developer",
     "position": "Developer", "avatar": "https://api.dicebear.com/7.x/avataaars/svg?seed=developer"},
]

SAMPLE_FEATURE1: list[dict[str, Any]] = [
    {"code": 100001, "title": "ประกาศข่าวสาร", "description": "ประกาศข่าวสารสำคัญของระบบและองค์กร",
     "display_mode": "show_title_desc", "icon": "megaphone", "color": "#3B82F6", "type": "announcement",
     "start_date": "2025-01-01", "end_date": "2025-12-31", "is_active": True},
    {"code": 100002, "title": "โปรโมชั่นพิเศษ", "description": "โปรโมชั่นและส่วนลดพิเศษสำหรับสมาชิก",
     "display_mode": "show_title_icon", "icon": "gift", "color": "#EF4444", "type": "promotion",
     "start_date": "2025-02-01", "end_date": "2025-02-28", "is_active": True},
    {"code": 100003, "title": "งานกิจกรรมประจำเดือน", "description": "กิจกรรมพิเศษสำหรับสมาชิกทุกท่าน",
     "display_mode": "show_title", "icon": "calendar-days", "color": "#10B981", "type": "event",
     "start_date": "2025-03-15", "end_date": "2025-03-15", "is_active": True},
    {"code": 100004, "title": "ข่าวสารอัพเดท", "description": "ข่าวสารและการอัพเดทฟีเจอร์ใหม่ของระบบ",
     "display_mode": "show_title_desc", "icon": "newspaper", "color": "#F59E0B", "type": "news",
     "start_date": "2025-01-15", "end_date": "2025-06-30", "is_active": True},
    {"code": 100005, "title": "แจ้งปิดปรับปรุงระบบ", "description": "ระบบจะปิดปรับปรุงเพื่อพัฒนาประสิทธิภาพ",
     "display_mode": "show_title_icon", "icon": "wrench-screwdriver", "color": "#8B5CF6", "type": "announcement",
     "start_date": "2025-04-01", "end_date": "2025-04-02", "is_active": False},
]


def _result(created: int, skipped: int) -> dict[str, int]:
    return {"created": created, "skipped": skipped, "total": created + skipped}


def seed_permissions(s: Session) -> dict[str, int]:
    created = skipped = 0
    for data in DEFAULT_PERMISSIONS:
        if s.query(Permission).filter(Permission.code == data["code"]).one_or_none():
            skipped += 1
            continue
        now = datetime.utcnow()
        s.add(Permission(**data, is_active=True, created_at=now, updated_at=now))
        created += 1
    s.flush()
    return _result(created, skipped)


def seed_roles(s: Session) -> dict[str, int]:
    created = skipped = 0
    for data in DEFAULT_ROLES:
        exists = s.query(Role).filter((Role.code == data["code"]) | (Role.name == data["name"])).first()
        if exists:
            skipped += 1
            continue
        now = datetime.utcnow()
        s.add(
            Role(
                name=data["name"],
                code=data["code"],
                description=data["description"],
                permissions=list(data["permissions"]),
                is_active=True,
                created_by="system",
                created_at=now,
                updated_at=now,
            )
        )
        created += 1
    s.flush()
    return _result(created, skipped)


def seed_users(s: Session, *, admin_email: str, admin_password: str) -> dict[str, int]:
    """
    Create the default users with their role attached.
    Does NOT overwrite an existing user's password.
    """
    created = skipped = 0
    for data in DEFAULT_USERS:
        email = (data["email"] or admin_email).strip().lower()
        password = data["password"] or admin_password
        if s.query(User).filter(User.email == email).one_or_none():
            skipped += 1
            continue
        role = s.query(Role).filter(Role.code == data["role_code"]).one_or_none()
        now = datetime.utcnow()
        user = User(
            name=data["name"],
            email=email,
            password_hash=generate_password_hash(password),
            role=data["role"],
            position=data["position"] or None,
            avatar=data["avatar"],
            is_active=True,
            email_verified=False,
            created_at=now,
            updated_at=now,
        )
        if role:
            user.roles = [role]
        s.add(user)
        created += 1
    s.flush()
    return _result(created, skipped)


def seed_feature1(s: Session) -> dict[str, Any]:
    """Sample rows, only into an empty table and only once an admin user exists."""
    from app.webadmin.modules.feature1.models import Feature1

    existing = s.query(Feature1).count()
    if existing:
        return {**_result(0, existing), "message": "Feature1 records already exist; seeding skipped"}

    admin = s.query(User).filter(User.role == "admin", User.is_active.is_(True)).order_by(User.id).first()
    if not admin:
        raise predefined_error("USER_NOT_FOUND", details=["Admin user not found. Please create an admin user first."])

    now = datetime.utcnow()
    for data in SAMPLE_FEATURE1:
        s.add(Feature1(**data, images=[], created_at=now, updated_at=now, created_by=admin, updated_by=admin))
    s.flush()
    return _result(len(SAMPLE_FEATURE1), 0)


def seed_all(s: Session, *, admin_email: str, admin_password: str) -> dict[str, dict[str, int]]:
    return {
        "permissions": seed_permissions(s),
        "roles": seed_roles(s),
        "users": seed_users(s, admin_email=admin_email, admin_password=admin_password),
    }


def seed_endpoints_enabled() -> bool:
    env = (current_app.config.get("ENV") or "").strip().lower()
    return env not in ("prod", "production") or bool(current_app.config.get("SEED_ENDPOINTS_ENABLED"))


def require_seed_endpoints(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Seed endpoints look like missing routes (404) unless enabled for this deployment."""

    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        if not seed_endpoints_enabled():
            raise predefined_error("NOT_FOUND")
        return fn(*args, **kwargs)

    return wrapped


@bp.post("/seed-all")
@require_seed_endpoints
def seed_all_post():
    s = db_session()
    summary = seed_all(
        s,
        admin_email=current_app.config["ADMIN_EMAIL"],
        admin_password=current_app.config["ADMIN_PASSWORD"],
    )
    s.commit()
    current_app.logger.info("seed-all complete: %s", summary)
    created = {k: v["created"] for k, v in summary.items()}
    return success_response(
        {"summary": summary},
        message=(
            f"Seeding completed! Created {created['permissions']} permissions, "
            f"{created['roles']} roles, {created['users']} users."
        ),
    )
