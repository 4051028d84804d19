from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.webadmin.db import db_session

bp = Blueprint("routes", __name__)


@bp.get("/health")
def health():
    """Liveness plus a ``SELECT 1`` round trip; 503 when the database is unreachable."""
    try:
        db_session().execute(text("SELECT 1"))
    except SQLAlchemyError:
        current_app.logger.exception("Health check: database unreachable")
        return {"ok": False, "env": current_app.config.get("ENV"), "database": "unreachable"}, 503
    return {"ok": True, "env": current_app.config.get("ENV"), "database": "ok"}


@bp.get("/healthz")
def healthz():
    # container probe; no DB access
    return "ok", 200
