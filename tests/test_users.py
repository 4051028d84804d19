"""Tests for the Users admin API."""
import pytest

from app.webadmin import create_app
from app.webadmin.auth import _login_attempts
from app.webadmin.db import session_scope
from app.webadmin.models import Base, Role, User
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


def _auth(client, email="admin@example.com", password="admin-pw"):
    r = client.post("/api/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.json
    return {"Authorization": f"Bearer {r.json['data']['token']}"}


def _role_id(app, code):
    with session_scope(app) as s:
        return s.query(Role).filter(Role.code == code).one().id


def _new_user(client, headers, **overrides):
    payload = {"name": "Somchai", "email": "somchai@example.com", "password": "secret1", "department": "IT"}
    payload.update(overrides)
    return client.post("/api/users", json=payload, headers=headers)


def test_users_list(client):
    h = _auth(client)
    r = client.get("/api/users", headers=h)
    assert r.status_code == 200
    names = [u["name"] for u in r.json["data"]]
    assert names == ["Admin User", "Developer"]
    assert r.json["pagination"]["total"] == 2
    assert "password_hash" not in r.json["data"][0]


def test_users_list_pagination_and_search(client):
    h = _auth(client)
    r = client.get("/api/users?pagination[page]=1&pagination[limit]=1", headers=h)
    assert len(r.json["data"]) == 1
    assert r.json["pagination"]["totalPages"] == 2
    assert r.json["pagination"]["hasNext"] is True

    r = client.get("/api/users?search=DEV", headers=h)
    assert [u["email"] for u in r.json["data"]] == ["dev@moonoi.com"]


def test_users_list_filters(app, client):
    h = _auth(client)
    r = client.get("/api/users?filter[role]=admin", headers=h)
    assert [u["email"] for u in r.json["data"]] == ["admin@example.com"]

    dev_role = _role_id(app, "developer")
    r = client.get(f"/api/users?filter[roles][]={dev_role}", headers=h)
    assert [u["email"] for u in r.json["data"]] == ["dev@moonoi.com"]


def test_users_list_ignores_nested_brackets(client):
    h = _auth(client)
    for qs in ("sort[field][x]=name", "filter[role][x]=admin", "search[q]=dev"):
        r = client.get(f"/api/users?{qs}", headers=h)
        assert r.status_code == 200, qs
        assert r.json["pagination"]["total"] == 2


def test_users_list_requires_permission(client):
    reg = client.post("/api/auth/register", json={"name": "Plain", "email": "plain@example.com", "password": "secret1"})
    h = {"Authorization": f"Bearer {reg.json['data']['token']}"}
    r = client.get("/api/users", headers=h)
    assert r.status_code == 403
    assert r.json["data"]["missingPermission"] == ["user_management.users"]


def test_developer_role_grants_user_management(client):
    h = _auth(client, "dev@moonoi.com", "dev123")
    assert client.get("/api/users", headers=h).status_code == 200


def test_user_create(app, client):
    h = _auth(client)
    dev_role = _role_id(app, "developer")
    r = _new_user(client, h, roles=[dev_role])
    assert r.status_code == 201
    data = r.json["data"]
    assert data["email"] == "somchai@example.com"
    assert data["role"] == "user"
    assert data["department"] == "IT"
    assert [role["code"] for role in data["roles"]] == ["developer"]

    # new user can log in with the given password
    assert client.post("/api/auth/login", json={"email": "somchai@example.com", "password": "secret1"}).status_code == 200


def test_user_create_validation(client):
    h = _auth(client)
    r = client.post("/api/users", json={"name": "", "email": "bad", "role": "root"}, headers=h)
    assert r.status_code == 400
    errors = r.json["data"]["errors"]
    assert set(errors) == {"name", "email", "password", "role"}

    assert _new_user(client, h).status_code == 201
    r = _new_user(client, h, email="SOMCHAI@example.com")
    assert r.status_code == 409
    assert r.json["statusMessage"] == "User already exists"


def test_user_create_rejects_oversize_fields(client):
    h = _auth(client)
    r = _new_user(client, h, name="n" * 101, phone="9" * 21, department="d" * 50)
    assert r.status_code == 400
    assert r.json["data"]["errors"] == {
        "name": "Name cannot be more than 100 characters",
        "phone": "Phone cannot be more than 20 characters",
    }


def test_user_create_unknown_role(client):
    h = _auth(client)
    r = _new_user(client, h, roles=[9999])
    assert r.status_code == 404
    assert r.json["statusMessage"] == "Role not found"


def test_user_detail_self_or_permission(client):
    reg = client.post("/api/auth/register", json={"name": "Plain", "email": "plain@example.com", "password": "secret1"})
    me = reg.json["data"]["user"]
    h = {"Authorization": f"Bearer {reg.json['data']['token']}"}

    r = client.get(f"/api/users/{me['id']}", headers=h)
    assert r.status_code == 200
    assert r.json["data"]["permissions"] == []

    r = client.get("/api/users/1", headers=h)
    assert r.status_code == 403

    admin_h = _auth(client)
    r = client.get(f"/api/users/{me['id']}", headers=admin_h)
    assert r.status_code == 200
    assert client.get("/api/users/9999", headers=admin_h).status_code == 404


def test_user_update(client):
    h = _auth(client)
    uid = _new_user(client, h).json["data"]["id"]

    r = client.put(
        f"/api/users/{uid}",
        json={"name": "Somchai J.", "email": "somchai@example.com", "position": "Lead", "password": "newpass1"},
        headers=h,
    )
    assert r.status_code == 200
    assert r.json["data"]["name"] == "Somchai J."
    assert r.json["data"]["position"] == "Lead"
    # department omitted from a full update is cleared
    assert r.json["data"]["department"] is None
    assert client.post("/api/auth/login", json={"email": "somchai@example.com", "password": "newpass1"}).status_code == 200


def test_user_update_email_conflict(client):
    h = _auth(client)
    uid = _new_user(client, h).json["data"]["id"]
    r = client.put(f"/api/users/{uid}", json={"name": "X", "email": "dev@moonoi.com"}, headers=h)
    assert r.status_code == 400
    assert "email" in r.json["data"]["errors"]


def test_user_delete_is_soft(app, client):
    h = _auth(client)
    uid = _new_user(client, h).json["data"]["id"]

    r = client.delete(f"/api/users/{uid}", headers=h)
    assert r.status_code == 200
    assert r.json["data"]["isActive"] is False

    with session_scope(app) as s:
        u = s.get(User, uid)
        assert u is not None
        assert u.deleted_at is not None

    r = client.post("/api/auth/login", json={"email": "somchai@example.com", "password": "secret1"})
    assert r.status_code == 401
    assert r.json["statusMessage"] == "Account has been deactivated"


def test_cannot_delete_self(client):
    h = _auth(client)
    me = client.get("/api/auth/me", headers=h).json["data"]
    r = client.delete(f"/api/users/{me['id']}", headers=h)
    assert r.status_code == 400


def test_cannot_deactivate_self(client):
    h = _auth(client)
    me = client.get("/api/auth/me", headers=h).json["data"]
    r = client.put(f"/api/users/{me['id']}", json={"name": me["name"], "email": me["email"], "isActive": False}, headers=h)
    assert r.status_code == 400
    assert client.get("/api/auth/me", headers=h).json["data"]["isActive"] is True


def test_user_roles_endpoints(app, client):
    h = _auth(client)
    uid = _new_user(client, h).json["data"]["id"]
    admin_role = _role_id(app, "admin")
    dev_role = _role_id(app, "developer")

    assert client.get(f"/api/users/{uid}/roles", headers=h).json["data"] == []

    r = client.put(f"/api/users/{uid}/roles", json={"roleIds": [admin_role, dev_role]}, headers=h)
    assert r.status_code == 200
    assert sorted(role["code"] for role in r.json["data"]) == ["admin", "developer"]

    r = client.put(f"/api/users/{uid}/roles", json={"roleIds": "admin"}, headers=h)
    assert r.status_code == 400

    r = client.put(f"/api/users/{uid}/roles", json={"roleIds": [dev_role, 4242]}, headers=h)
    assert r.status_code == 404
    assert sorted(role["code"] for role in client.get(f"/api/users/{uid}/roles", headers=h).json["data"]) == [
        "admin",
        "developer",
    ]
