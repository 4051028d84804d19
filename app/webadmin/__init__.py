import logging
import os

from dotenv import load_dotenv
from flask import Flask, g, request
from werkzeug.exceptions import HTTPException

from app.webadmin.auth import bp as auth_bp, load_current_user
from app.webadmin.config import DEFAULT_JWT_SECRET, DEFAULT_SECRET_KEY, load_config
from app.webadmin.db import init_db, teardown_db_session
from app.webadmin.errors import APIError, error_for_status, predefined_error
from app.webadmin.modules.feature1.admin import bp as feature1_bp
from app.webadmin.modules.permissions.admin import bp as permissions_bp
from app.webadmin.modules.roles.admin import bp as roles_bp
from app.webadmin.modules.users.admin import bp as users_bp
from app.webadmin.navigation import bp as navigation_bp
from app.webadmin.routes import bp as routes_bp
from app.webadmin.seed import bp as seed_bp


def _check_production_config(app: Flask) -> None:
    env = (app.config.get("ENV") or "").strip().lower()
    if env not in ("prod", "production"):
        return
    db_url = str(app.config.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL is required in production.")
    if db_url.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
    if str(app.config.get("SECRET_KEY") or "") in ("", DEFAULT_SECRET_KEY):
        raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
    if str(app.config.get("JWT_SECRET") or "") in ("", DEFAULT_JWT_SECRET):
        raise RuntimeError("JWT_SECRET must be set to a strong value in production (not default).")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.json.sort_keys = False
    app.logger.setLevel(app.config.get("LOG_LEVEL") or "INFO")

    # Production guardrails (fail fast with clear logs)
    _check_production_config(app)

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(users_bp, url_prefix="/api/users")
    app.register_blueprint(roles_bp, url_prefix="/api/roles")
    app.register_blueprint(permissions_bp, url_prefix="/api/permissions")
    app.register_blueprint(feature1_bp, url_prefix="/api/feature1")
    app.register_blueprint(navigation_bp, url_prefix="/api/navigation")
    app.register_blueprint(seed_bp, url_prefix="/api")

    def _load_user_wrapper():
        if request.path.startswith(("/health", "/healthz")):
            g.current_user = None
            return None
        return load_current_user()

    app.before_request(_load_user_wrapper)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(APIError)
    def _err_api(e: APIError):  # type: ignore[no-redef]
        if e.status_code >= 500:
            app.logger.error("API error %s (request_id=%s): %s", e.status_code, getattr(g, "request_id", None), e.status_message)
        return e.to_dict(url=request.path), e.status_code

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):  # type: ignore[no-redef]
        err = error_for_status(e.code or 500, e.description)
        return err.to_dict(url=request.path), err.status_code

    @app.errorhandler(Exception)
    def _err_500(e: Exception):  # type: ignore[no-redef]
        rid = getattr(g, "request_id", None)
        app.logger.exception("Unhandled 500 (request_id=%s)", rid)
        err = predefined_error("INTERNAL_ERROR")
        return err.to_dict(url=request.path), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
