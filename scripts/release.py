"""
Release phase: migrate the schema to head, then run the idempotent seed.

Refuses to run without DATABASE_URL, and refuses sqlite when ENV is production.

Usage:
  python scripts/release.py [--skip-seed]
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def release_database_url() -> str:
    db_url = (os.environ.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL must be set for a release.")
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Production release needs a Postgres DATABASE_URL, got sqlite.")
    return db_url


def upgrade_schema(db_url: str) -> None:
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, "head")


def run_release(*, seed: bool = True) -> None:
    db_url = release_database_url()

    print("[release] alembic upgrade head", flush=True)
    upgrade_schema(db_url)

    if seed:
        from scripts.init_db import seed_only

        print("[release] seeding defaults", flush=True)
        seed_only(database_url=db_url)
    print("[release] done", flush=True)


def main() -> None:
    run_release(seed="--skip-seed" not in sys.argv[1:])


if __name__ == "__main__":
    main()
