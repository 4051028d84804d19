import pytest

from app.webadmin import create_app
from app.webadmin.config import load_config, parse_duration


@pytest.mark.parametrize(
    "value, seconds",
    [("7d", 604800), ("12h", 43200), ("30m", 1800), ("45s", 45), ("90", 90)],
)
def test_parse_duration(value, seconds):
    assert parse_duration(value) == seconds


def test_parse_duration_rejects_garbage():
    with pytest.raises(ValueError):
        parse_duration("soon")


def test_load_config_defaults(monkeypatch):
    for k in ("ENV", "JWT_EXPIRES_IN", "ADMIN_EMAIL", "SEED_ENDPOINTS_ENABLED"):
        monkeypatch.delenv(k, raising=False)
    cfg = load_config()
    assert cfg["ENV"] == "development"
    assert cfg["JWT_EXPIRES_SECONDS"] == 7 * 86400
    assert cfg["ADMIN_EMAIL"] == "admin@moonoi.com"
    assert cfg["SEED_ENDPOINTS_ENABLED"] is False
    assert cfg["TOKEN_COOKIE_SECURE"] is False



def test_production_env_is_case_insensitive(monkeypatch):
    monkeypatch.setenv("ENV", "Production")
    assert load_config()["TOKEN_COOKIE_SECURE"] is True


def test_production_refuses_sqlite(monkeypatch, tmp_path):
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'prod.db'}")
    monkeypatch.setenv("SECRET_KEY", "strong")
    monkeypatch.setenv("JWT_SECRET", "strong")
    with pytest.raises(RuntimeError, match="Postgres"):
        create_app()


def test_production_refuses_default_secrets(monkeypatch):
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@localhost/db")
    monkeypatch.delenv("SECRET_KEY", raising=False)
    monkeypatch.setenv("JWT_SECRET", "strong")
    with pytest.raises(RuntimeError, match="SECRET_KEY"):
        create_app()

    monkeypatch.setenv("SECRET_KEY", "strong")
    monkeypatch.delenv("JWT_SECRET", raising=False)
    with pytest.raises(RuntimeError, match="JWT_SECRET"):
        create_app()
