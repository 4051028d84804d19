import pytest

from app.webadmin.models import Role, User
from app.webadmin.modules.feature1.models import Feature1
from scripts._db_utils import script_database_url, script_session
from scripts.attach_admin_role import attach_admin_role
from scripts.init_db import main as init_db_main
from scripts.init_db import seed_only
from scripts.release import release_database_url
from scripts.start import gunicorn_argv, parse_port


@pytest.fixture()
def db_url(tmp_path, monkeypatch):
    monkeypatch.setenv("ADMIN_EMAIL", "root@example.com")
    monkeypatch.setenv("ADMIN_PASSWORD", "root-pw")
    return f"sqlite:///{tmp_path/'scripts.db'}"


def test_seed_only_creates_schema_and_defaults(db_url):
    summary = seed_only(database_url=db_url, with_samples=True, create_tables=True)
    assert summary["users"]["created"] == 2
    assert summary["feature1"]["created"] == 5

    again = seed_only(database_url=db_url)
    assert again["users"] == {"created": 0, "skipped": 2, "total": 2}

    with script_session(db_url) as s:
        assert s.query(User).filter(User.email == "root@example.com").one().role == "admin"


def test_init_db_cli_flags(db_url):
    init_db_main(["--create-tables", "--with-samples", "--database-url", db_url])
    with script_session(db_url) as s:
        assert s.query(Feature1).count() == 5

    with pytest.raises(SystemExit):
        init_db_main(["--bogus"])


def test_attach_admin_role(db_url):
    seed_only(database_url=db_url, create_tables=True)
    assert attach_admin_role("nobody@example.com", database_url=db_url) is False
    assert attach_admin_role("dev@moonoi.com", superuser=True, database_url=db_url) is True
    assert attach_admin_role("DEV@moonoi.com", superuser=True, database_url=db_url) is False

    with script_session(db_url) as s:
        dev = s.query(User).filter(User.email == "dev@moonoi.com").one()
        assert dev.role == "admin"
        assert sorted(r.code for r in dev.roles) == ["admin", "developer"]
        assert s.query(Role).count() == 2


def test_script_database_url(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    assert script_database_url() == "sqlite:///webadmin.db"
    monkeypatch.setenv("DATABASE_URL", " postgresql://x/y ")
    assert script_database_url() == "postgresql://x/y"
    assert script_database_url("sqlite:///other.db") == "sqlite:///other.db"


def test_release_database_url_guardrails(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError):
        release_database_url()

    monkeypatch.setenv("DATABASE_URL", "sqlite:///x.db")
    monkeypatch.setenv("ENV", "production")
    with pytest.raises(RuntimeError, match="Postgres"):
        release_database_url()

    monkeypatch.setenv("ENV", "development")
    assert release_database_url() == "sqlite:///x.db"


def test_start_helpers():
    assert parse_port(None) == 8080
    assert parse_port(" 5000 ") == 5000
    with pytest.raises(ValueError):
        parse_port("70000")
    with pytest.raises(ValueError):
        parse_port("http")

    argv = gunicorn_argv(5000, "3")
    assert argv[:2] == ["gunicorn", "app.wsgi:app"]
    assert "0.0.0.0:5000" in argv
    assert argv[argv.index("--workers") + 1] == "3"
