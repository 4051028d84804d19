from __future__ import annotations

import time
from typing import Any

from flask import current_app
from jose import ExpiredSignatureError, JWTError, jwt


class TokenError(Exception):
    pass


class TokenExpiredError(TokenError):
    pass


def _settings(secret: str | None, algorithm: str | None) -> tuple[str, str]:
    if secret is None:
        secret = current_app.config["JWT_SECRET"]
    if algorithm is None:
        algorithm = current_app.config.get("JWT_ALGORITHM", "HS256")
    return secret, algorithm


def sign_token(
    payload: dict[str, Any],
    *,
    secret: str | None = None,
    algorithm: str | None = None,
    expires_in: int | None = None,
) -> str:
    """
    Sign ``{userId, email, role}`` into a JWT carrying ``iat``/``exp`` (seconds).
    """
    secret, algorithm = _settings(secret, algorithm)
    if expires_in is None:
        expires_in = int(current_app.config.get("JWT_EXPIRES_SECONDS", 7 * 86400))
    now = int(time.time())
    claims = dict(payload)
    claims["iat"] = now
    claims["exp"] = now + expires_in
    return jwt.encode(claims, secret, algorithm=algorithm)


def verify_token(token: str, *, secret: str | None = None, algorithm: str | None = None) -> dict[str, Any]:
    secret, algorithm = _settings(secret, algorithm)
    try:
        return jwt.decode(token, secret, algorithms=[algorithm])
    except ExpiredSignatureError as e:
        raise TokenExpiredError("Token has expired") from e
    except JWTError as e:
        raise TokenError("Invalid token") from e


def extract_token_from_header(header: str | None) -> str | None:
    if not header:
        return None
    header = header.strip()
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return header or None
