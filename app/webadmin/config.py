import os
import re
from dataclasses import dataclass

DEFAULT_SECRET_KEY = "change-me"
DEFAULT_JWT_SECRET = "web-admin-base-secret-key-change-in-production"

_DURATION_RE = re.compile(r"^(\d+)\s*([smhd]?)$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    log_level: str

    jwt_secret: str
    jwt_algorithm: str
    jwt_expires_in: str

    admin_email: str
    admin_password: str
    seed_endpoints_enabled: bool


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def parse_duration(value: str) -> int:
    """
    Parse "7d", "12h", "30m", "45s" or a plain number of seconds.
    """
    m = _DURATION_RE.match((value or "").strip().lower())
    if not m:
        raise ValueError(f"Invalid duration: {value!r}")
    return int(m.group(1)) * _DURATION_UNITS[m.group(2)]


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", DEFAULT_SECRET_KEY),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///webadmin.db"),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
        jwt_secret=_getenv("JWT_SECRET", DEFAULT_JWT_SECRET),
        jwt_algorithm=_getenv("JWT_ALGORITHM", "HS256"),
        jwt_expires_in=_getenv("JWT_EXPIRES_IN", "7d"),
        admin_email=_getenv("ADMIN_EMAIL", "admin@moonoi.com").lower(),
        admin_password=_getenv("ADMIN_PASSWORD", "admin123"),
        seed_endpoints_enabled=_getenv("SEED_ENDPOINTS_ENABLED") == "1",
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env.lower() in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "LOG_LEVEL": s.log_level,
        "JWT_SECRET": s.jwt_secret,
        "JWT_ALGORITHM": s.jwt_algorithm,
        "JWT_EXPIRES_SECONDS": parse_duration(s.jwt_expires_in),
        "ADMIN_EMAIL": s.admin_email,
        "ADMIN_PASSWORD": s.admin_password,
        "SEED_ENDPOINTS_ENABLED": s.seed_endpoints_enabled,
        # token cookie mirrors the bearer token for browser clients
        "TOKEN_COOKIE_NAME": "token",
        "TOKEN_COOKIE_SECURE": is_production,
        "MAX_CONTENT_LENGTH": 5 * 1024 * 1024,
    }
