import sys
import argparse
from pathlib import Path

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.webadmin.config import load_settings
from app.webadmin.seed import seed_all, seed_feature1
from scripts._db_utils import script_database_url, script_session


def seed_only(*, database_url: str | None = None, with_samples: bool = False, create_tables: bool = False) -> dict:
    """
    Seed permissions/roles/default users in an idempotent way.
    Does NOT overwrite an existing user's password. ``create_tables`` skips Alembic
    and creates the schema directly (local sqlite).
    """
    settings = load_settings()
    db_url = script_database_url(database_url)

    # Direct engine/session so this can run in release without importing app.wsgi.
    with script_session(db_url, create_tables=create_tables) as s:
        summary = seed_all(s, admin_email=settings.admin_email, admin_password=settings.admin_password)
        if with_samples:
            summary["feature1"] = seed_feature1(s)

    print("Initialized database (seed_only).")
    for name, result in summary.items():
        print(f"  {name}: created={result['created']} skipped={result['skipped']}")
    print(f"Admin email: {settings.admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")
    return summary


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Seed default permissions, roles and users.")
    parser.add_argument("--with-samples", action="store_true", help="Also seed sample Feature1 records")
    parser.add_argument("--create-tables", action="store_true", help="Create the schema directly instead of via Alembic")
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL")
    args = parser.parse_args(argv)
    seed_only(database_url=args.database_url, with_samples=args.with_samples, create_tables=args.create_tables)


if __name__ == "__main__":
    main()
