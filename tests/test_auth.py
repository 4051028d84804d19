"""Tests for login, registration, token handling and logout."""
import pytest

from app.webadmin import create_app
from app.webadmin.auth import _login_attempts
from app.webadmin.db import session_scope
from app.webadmin.models import AuditEvent, Base, User
from app.webadmin.seed import seed_all
from app.webadmin.tokens import sign_token

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-pw"


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
        seed_all(s, admin_email=ADMIN_EMAIL, admin_password=ADMIN_PASSWORD)

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _login(client, email=ADMIN_EMAIL, password=ADMIN_PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def test_login_success(app, client):
    r = _login(client, email="  Admin@Example.com ")
    assert r.status_code == 200
    body = r.json
    assert body["success"] is True
    assert body["messages"]["en"] == "Login successful"
    assert body["data"]["token"]
    user = body["data"]["user"]
    assert user["email"] == ADMIN_EMAIL
    assert user["role"] == "admin"
    assert "user_management.users" in user["permissions"]
    assert user["lastLogin"] is not None
    assert "token=" in r.headers.get("Set-Cookie", "")

    with session_scope(app) as s:
        events = s.query(AuditEvent).filter(AuditEvent.action == "auth.login").all()
        assert len(events) == 1
        assert events[0].actor_user_email == ADMIN_EMAIL


def test_login_wrong_password(app, client):
    r = _login(client, password="nope")
    assert r.status_code == 401
    assert r.json["statusMessage"] == "Invalid email or password"
    assert r.json["data"]["messages"]["th"]

    with session_scope(app) as s:
        assert s.query(AuditEvent).filter(AuditEvent.action == "auth.login_failed").count() == 1


def test_login_unknown_email_same_error(client):
    r = _login(client, email="ghost@example.com")
    assert r.status_code == 401
    assert r.json["statusMessage"] == "Invalid email or password"


def test_login_missing_fields(client):
    r = client.post("/api/auth/login", json={"email": ADMIN_EMAIL})
    assert r.status_code == 400
    assert r.json["statusMessage"] == "Required fields are missing"


def test_login_non_string_password(client):
    r = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": 123456})
    assert r.status_code == 400
    assert r.json["statusMessage"] == "Invalid input provided"


def test_login_deactivated_account(app, client):
    with session_scope(app) as s:
        s.query(User).filter(User.email == "dev@moonoi.com").one().is_active = False

    r = _login(client, email="dev@moonoi.com", password="dev123")
    assert r.status_code == 401
    assert r.json["statusMessage"] == "Account has been deactivated"

    # wrong password still reads as bad credentials
    r = _login(client, email="dev@moonoi.com", password="wrong")
    assert r.json["statusMessage"] == "Invalid email or password"


def test_login_rate_limited(client):
    for _ in range(5):
        assert _login(client, password="bad").status_code == 401
    r = _login(client)
    assert r.status_code == 429
    assert r.json["statusMessage"] == "Too many requests"


def test_register_creates_plain_user(client):
    r = client.post(
        "/api/auth/register",
        json={"name": "New Person", "email": "New@Example.com", "password": "secret1", "role": "admin"},
    )
    assert r.status_code == 201
    data = r.json["data"]
    assert data["user"]["email"] == "new@example.com"
    assert data["user"]["role"] == "user"
    assert data["user"]["permissions"] == []
    assert r.json["messages"]["en"] == "Registration successful"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.status_code == 200
    assert me.json["data"]["name"] == "New Person"


def test_register_validation(client):
    r = client.post("/api/auth/register", json={"name": "X", "email": "x@example.com"})
    assert r.status_code == 400
    assert r.json["statusMessage"] == "Required fields are missing"

    r = client.post("/api/auth/register", json={"name": "X", "email": "not-an-email", "password": "secret1"})
    assert r.status_code == 400
    assert r.json["data"]["errors"]["email"] == "Invalid email format"

    r = client.post("/api/auth/register", json={"name": "n" * 101, "email": "x@example.com", "password": "secret1"})
    assert r.status_code == 400
    assert r.json["data"]["errors"] == {"name": "Name cannot be more than 100 characters"}

    r = client.post("/api/auth/register", json={"name": "X", "email": "x@example.com", "password": "123"})
    assert r.status_code == 400
    assert r.json["statusMessage"] == "Invalid input provided"

    r = client.post("/api/auth/register", json={"name": "X", "email": ADMIN_EMAIL, "password": "secret1"})
    assert r.status_code == 409
    assert r.json["statusMessage"] == "Resource already exists"


def test_me_requires_token(app):
    client = app.test_client()
    r = client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json["statusMessage"] == "Authentication required"

    r = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401
    assert r.json["statusMessage"] == "Authentication required"


def test_expired_token(app):
    with app.app_context():
        token = sign_token({"userId": 1, "email": ADMIN_EMAIL, "role": "admin"}, expires_in=-10)
    r = app.test_client().get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json["statusMessage"] == "Authentication token has expired"


def test_token_of_deactivated_user_rejected(app, client):
    token = _login(client).json["data"]["token"]
    with session_scope(app) as s:
        s.query(User).filter(User.email == ADMIN_EMAIL).one().is_active = False

    r = app.test_client().get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_cookie_session_and_logout(client):
    assert _login(client).status_code == 200

    # the token cookie alone authenticates
    r = client.get("/api/auth/me")
    assert r.status_code == 200
    assert r.json["data"]["email"] == ADMIN_EMAIL

    r = client.post("/api/auth/logout")
    assert r.status_code == 200
    assert r.json["messages"]["en"] == "Logout successful"

    assert client.get("/api/auth/me").status_code == 401
