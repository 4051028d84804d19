from __future__ import annotations

from contextlib import contextmanager
from collections.abc import Generator

from flask import Flask, current_app, g
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker


def engine_options(db_url: str, *, pooled: bool = True) -> dict[str, object]:
    """
    Engine kwargs shared by the app and the command-line scripts.
    ``pooled=False`` keeps only ``pool_recycle`` for short-lived script engines.
    """
    opts: dict[str, object] = {"future": True, "pool_pre_ping": True}
    if not db_url.startswith("postgres"):
        return opts
    opts["pool_recycle"] = 1800
    if pooled:
        opts.update(pool_size=5, max_overflow=10, pool_timeout=30)
    return opts


def make_engine(db_url: str, *, pooled: bool = True) -> Engine:
    return create_engine(db_url, **engine_options(db_url, pooled=pooled))


def init_db(app: Flask) -> None:
    engine = make_engine(app.config["DATABASE_URL"])
    app.extensions["sqlalchemy_engine"] = engine
    app.extensions["sqlalchemy_sessionmaker"] = sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        expire_on_commit=False,
    )


def db_session() -> Session:
    """Request-scoped session, closed by ``teardown_db_session``."""
    s = getattr(g, "db_session", None)
    if s is None:
        s = g.db_session = current_app.extensions["sqlalchemy_sessionmaker"]()
    return s


def teardown_db_session(_exc: BaseException | None) -> None:
    s: Session | None = g.pop("db_session", None)
    if s is not None:
        s.close()


@contextmanager
def session_scope(app: Flask) -> Generator[Session, None, None]:
    """Session outside a request (tests, seeding); commits on success."""
    s: Session = app.extensions["sqlalchemy_sessionmaker"]()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
