import pytest

from app.webadmin import create_app
from app.webadmin.auth import _login_attempts
from app.webadmin.db import session_scope
from app.webadmin.models import Base
from app.webadmin.seed import seed_all


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("JWT_SECRET", "test-jwt-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    _login_attempts.clear()

    app = create_app()

    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        seed_all(s, admin_email="admin@example.com", admin_password="pw1234")

    return app.test_client()


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True
    assert r.json["database"] == "ok"
    assert r.json["env"] == "test"

    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.data == b"ok"


def test_unknown_route_is_json_error(client):
    r = client.get("/api/does-not-exist")
    assert r.status_code == 404
    body = r.json
    assert body["error"] is True
    assert body["url"] == "/api/does-not-exist"
    assert body["statusCode"] == 404
    assert body["statusMessage"] == "Resource not found"
    assert body["data"]["messages"]["en"] == "Resource not found"


def test_non_object_body_rejected(client):
    r = client.post("/api/auth/login", data="not json", content_type="text/plain")
    assert r.status_code == 400
    assert r.json["statusMessage"] == "Invalid input provided"


def test_login_then_admin_api(client):
    # Anonymous is rejected
    r = client.get("/api/users")
    assert r.status_code == 401

    r = client.post("/api/auth/login", json={"email": "admin@example.com", "password": "pw1234"})
    assert r.status_code == 200
    token = r.json["data"]["token"]

    r = client.get("/api/users", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json["success"] is True
    assert r.json["pagination"]["total"] == 2
