"""Engine/session helpers for the command-line scripts (no Flask app needed)."""
from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine
from sqlalchemy.orm import Session

from app.webadmin.db import make_engine
from app.webadmin.models import Base

DEFAULT_DATABASE_URL = "sqlite:///webadmin.db"


def script_database_url(database_url: str | None = None) -> str:
    """Explicit argument first, then DATABASE_URL, then the local sqlite file."""
    return (database_url or os.environ.get("DATABASE_URL") or DEFAULT_DATABASE_URL).strip()


def create_script_engine(db_url: str) -> Engine:
    return make_engine(db_url, pooled=False)


def ensure_tables(engine: Engine) -> None:
    """Create missing tables directly; for local sqlite use without running Alembic."""
    Base.metadata.create_all(bind=engine)


@contextmanager
def script_session(db_url: str, *, create_tables: bool = False) -> Iterator[Session]:
    engine = create_script_engine(db_url)
    if create_tables:
        ensure_tables(engine)
    try:
        with Session(engine, autoflush=False, expire_on_commit=False) as s:
            try:
                yield s
                s.commit()
            except Exception:
                s.rollback()
                raise
    finally:
        engine.dispose()
