"""Tests for the Permissions admin API."""
import pytest

from app.webadmin import create_app
from app.webadmin.auth import _login_attempts
from app.webadmin.db import session_scope
from app.webadmin.models import Base, Permission, Role
from app.webadmin.seed import seed_all


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("JWT_SECRET", "test-jwt-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    _login_attempts.clear()

    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])

    with session_scope(app) as s:
        seed_all(s, admin_email="admin@example.com", admin_password="admin-pw")

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _auth(client):
    r = client.post("/api/auth/login", json={"email": "admin@example.com", "password": "admin-pw"})
    assert r.status_code == 200, r.json
    return {"Authorization": f"Bearer {r.json['data']['token']}"}


NEW_PERMISSION = {
    "code": "reports.export",
    "name": "Export reports",
    "description": "Download report files",
    "module": "reports",
    "moduleName": "Reports",
    "action": "export",
}


def _permission_id(app, code):
    with session_scope(app) as s:
        return s.query(Permission).filter(Permission.code == code).one().id


def test_permissions_list_and_filters(client):
    h = _auth(client)
    r = client.get("/api/permissions?pagination[limit]=100", headers=h)
    assert r.status_code == 200
    assert r.json["pagination"]["total"] == 7

    r = client.get("/api/permissions?filter[type]=menu", headers=h)
    assert r.json["pagination"]["total"] == 4
    assert all(p["type"] == "menu" for p in r.json["data"])

    r = client.get("/api/permissions?filter[module]=user_management&filter[action]=update", headers=h)
    assert sorted(p["code"] for p in r.json["data"]) == [
        "user_management.permissions",
        "user_management.roles",
        "user_management.users",
    ]


def test_permission_modules(client):
    h = _auth(client)
    r = client.get("/api/permissions/modules", headers=h)
    assert r.json["data"] == ["dashboard", "developer", "user_management"]


def test_permission_create(client):
    h = _auth(client)
    r = client.post("/api/permissions", json=NEW_PERMISSION, headers=h)
    assert r.status_code == 201
    data = r.json["data"]
    assert data["code"] == "reports.export"
    assert data["moduleName"] == "Reports"
    assert data["type"] == "action"
    assert data["resource"] is None

    r = client.post("/api/permissions", json=NEW_PERMISSION, headers=h)
    assert r.status_code == 409
    assert r.json["statusMessage"] == "Permission already exists"


def test_permission_create_validation(client):
    h = _auth(client)
    r = client.post("/api/permissions", json={**NEW_PERMISSION, "action": "destroy", "type": "widget"}, headers=h)
    assert r.status_code == 400
    assert set(r.json["data"]["errors"]) == {"action", "type"}

    r = client.post("/api/permissions", json={"code": "x.y"}, headers=h)
    assert r.status_code == 400
    assert "moduleName" in r.json["data"]["errors"]


def test_permission_field_lengths(client):
    h = _auth(client)
    r = client.post("/api/permissions", json={**NEW_PERMISSION, "module": "m" * 51, "resource": "r" * 51}, headers=h)
    assert r.status_code == 400
    assert r.json["data"]["errors"] == {
        "module": "Module cannot be more than 50 characters",
        "resource": "Resource cannot be more than 50 characters",
    }


def test_permission_update_partial(app, client):
    h = _auth(client)
    pid = _permission_id(app, "demo.access")
    r = client.put(f"/api/permissions/{pid}", json={"name": "Playground", "icon": ""}, headers=h)
    assert r.status_code == 200
    assert r.json["data"]["name"] == "Playground"
    assert r.json["data"]["icon"] is None
    assert r.json["data"]["path"] == "/admin/demo"

    r = client.put(f"/api/permissions/{pid}", json={"code": "dashboard.access"}, headers=h)
    assert r.status_code == 409


def test_permission_code_rename_leaves_roles_untouched(app, client):
    h = _auth(client)
    pid = _permission_id(app, "demo.access")
    r = client.put(f"/api/permissions/{pid}", json={"code": "demo.view"}, headers=h)
    assert r.status_code == 200

    with session_scope(app) as s:
        admin_role = s.query(Role).filter(Role.code == "admin").one()
        assert "demo.access" in admin_role.permissions
        assert "demo.view" not in admin_role.permissions


def test_permission_delete_blocked_while_used(app, client):
    h = _auth(client)
    pid = _permission_id(app, "dashboard.access")
    r = client.delete(f"/api/permissions/{pid}", headers=h)
    assert r.status_code == 409
    assert r.json["data"]["messages"]["en"] == "Data is used"


def test_permission_delete(client):
    h = _auth(client)
    pid = client.post("/api/permissions", json=NEW_PERMISSION, headers=h).json["data"]["id"]
    r = client.delete(f"/api/permissions/{pid}", headers=h)
    assert r.status_code == 200
    r = client.get(f"/api/permissions/{pid}", headers=h)
    assert r.status_code == 404
    assert r.json["statusMessage"] == "Permission not found"


def test_migrate_permission_types(app, client):
    h = _auth(client)
    with session_scope(app) as s:
        s.add(Permission(code="legacy.read", name="Legacy", description="", module="legacy", module_name="Legacy", action="read", type=None))
        s.add(Permission(code="legacy.odd", name="Odd", description="", module="legacy", module_name="Legacy", action="read", type="weird"))

    r = client.post("/api/permissions/migrate", headers=h)
    assert r.status_code == 200
    data = r.json["data"]
    assert data == {"updated": 2, "totalPermissions": 9, "permissionsWithValidType": 9, "migrationComplete": True}

    r = client.post("/api/permissions/migrate", headers=h)
    assert r.json["data"]["updated"] == 0


def test_permissions_require_permission(client):
    reg = client.post("/api/auth/register", json={"name": "Plain", "email": "plain@example.com", "password": "secret1"})
    h = {"Authorization": f"Bearer {reg.json['data']['token']}"}
    r = client.get("/api/permissions", headers=h)
    assert r.status_code == 403
    assert r.json["data"]["missingPermission"] == ["user_management.permissions"]
