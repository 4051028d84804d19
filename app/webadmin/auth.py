from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, g, jsonify, request
from werkzeug.security import check_password_hash

from app.webadmin.audit import record_event
from app.webadmin.db import db_session
from app.webadmin.errors import predefined_error, validation_error
from app.webadmin.models import User
from app.webadmin.modules.users.service import (
    MAX_LENGTHS,
    MIN_PASSWORD_LENGTH,
    create_user,
    email_taken,
    normalize_email,
    serialize_user,
)
from app.webadmin.rbac import require_login
from app.webadmin.responses import success_response
from app.webadmin.tokens import TokenError, TokenExpiredError, extract_token_from_header, sign_token, verify_token
from app.webadmin.utils import check_max_lengths, clean_str, current_user, is_valid_email, json_body

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def _request_token() -> str | None:
    token = extract_token_from_header(request.headers.get("Authorization"))
    if token:
        return token
    return request.cookies.get(current_app.config.get("TOKEN_COOKIE_NAME", "token")) or None


def load_current_user() -> None:
    """
    Loads g.current_user from the bearer token (or the token cookie).
    Also assigns a simple per-request request_id (for audit/log correlation).
    A rejected token leaves its error key in g.auth_error.
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.current_user = None
    g.auth_error = None

    token = _request_token()
    if not token:
        return

    try:
        claims = verify_token(token)
    except TokenExpiredError:
        g.auth_error = "TOKEN_EXPIRED"
        return
    except TokenError:
        g.auth_error = "UNAUTHORIZED"
        return

    try:
        user_id = int(claims.get("userId"))
    except (TypeError, ValueError):
        g.auth_error = "UNAUTHORIZED"
        return

    user = db_session().get(User, user_id)
    if not user or not user.is_active:
        g.auth_error = "UNAUTHORIZED"
        return
    g.current_user = user


def _issue_token(user: User) -> str:
    return sign_token({"userId": user.id, "email": user.email, "role": user.role})


def _set_token_cookie(response, token: str):
    response.set_cookie(
        current_app.config.get("TOKEN_COOKIE_NAME", "token"),
        token,
        max_age=current_app.config.get("JWT_EXPIRES_SECONDS", 7 * 86400),
        secure=bool(current_app.config.get("TOKEN_COOKIE_SECURE")),
        httponly=False,
        samesite="Lax",
    )
    return response


@bp.post("/login")
def login():
    body = json_body()
    email = normalize_email(body.get("email"))
    password = body.get("password") or ""
    ip = request.remote_addr or "unknown"

    if not email or not password:
        raise predefined_error("MISSING_REQUIRED_FIELDS", details=["email", "password"])
    if not isinstance(password, str):
        raise predefined_error("INVALID_INPUT", details=["Password must be a string"])

    if _check_rate_limit(ip):
        current_app.logger.warning("Login rate limit hit (ip=%s request_id=%s)", ip, g.request_id)
        raise predefined_error("TOO_MANY_REQUESTS", details=["Too many login attempts. Please wait 5 minutes."])

    _record_attempt(ip)

    s = db_session()
    user = s.query(User).filter(User.email == email).one_or_none()
    if not user or not check_password_hash(user.password_hash, password):
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email,
            reason="Invalid credentials",
            metadata={"email": email},
        )
        s.commit()
        raise predefined_error("INVALID_CREDENTIALS")

    if not user.is_active:
        record_event(s, actor=None, action="auth.login_failed", entity_type="User", entity_id=str(user.id), reason="Account deactivated")
        s.commit()
        raise predefined_error("ACCOUNT_DEACTIVATED")

    user.last_login = datetime.utcnow()
    _login_attempts[ip].clear()
    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
    s.commit()

    token = _issue_token(user)
    resp = success_response({"token": token, "user": serialize_user(user, with_permissions=True)}, message_key="LOGIN_SUCCESS")
    return _set_token_cookie(jsonify(resp), token)


@bp.post("/register")
def register():
    body = json_body()
    name = clean_str(body.get("name"))
    email = normalize_email(body.get("email"))
    password = body.get("password") or ""

    if not name or not email or not password:
        raise predefined_error("MISSING_REQUIRED_FIELDS", details=["name", "email", "password"])
    if not is_valid_email(email):
        raise validation_error({"email": "Invalid email format"})
    errors: dict[str, str] = {}
    check_max_lengths(body, {k: MAX_LENGTHS[k] for k in ("name", "email", "department", "position")}, errors)
    if errors:
        raise validation_error(errors)
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise predefined_error("INVALID_INPUT", details=[f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"])

    s = db_session()
    if email_taken(s, email):
        raise predefined_error("ALREADY_EXISTS", details=["User with this email already exists"])

    payload = {
        "name": name,
        "email": email,
        "password": password,
        "department": body.get("department"),
        "position": body.get("position"),
    }
    # self-registration never grants admin
    user = create_user(s, payload, None, force_role="user")
    s.commit()

    token = _issue_token(user)
    resp = success_response({"token": token, "user": serialize_user(user, with_permissions=True)}, message_key="REGISTER_SUCCESS")
    return _set_token_cookie(jsonify(resp), token), 201


@bp.get("/me")
@require_login
def me():
    return success_response(serialize_user(current_user(), with_permissions=True))


@bp.post("/logout")
def logout():
    s = db_session()
    user = getattr(g, "current_user", None)
    if user:
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(user.id))
        s.commit()
    resp = jsonify(success_response(None, message_key="LOGOUT_SUCCESS"))
    resp.delete_cookie(current_app.config.get("TOKEN_COOKIE_NAME", "token"))
    return resp
