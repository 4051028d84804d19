#!/usr/bin/env python3
"""Attach the admin role to a user (idempotent).

Usage:
  python scripts/attach_admin_role.py --email someone@example.com [--superuser]

--superuser also sets the legacy ``role`` flag to "admin", which bypasses
every permission check.
"""

import sys
import argparse
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.webadmin.models import Role, User
from scripts._db_utils import script_database_url, script_session


def attach_admin_role(email: str, *, superuser: bool = False, database_url: str | None = None) -> bool:
    with script_session(script_database_url(database_url)) as s:
        user = s.query(User).filter(User.email.ilike(email.strip())).one_or_none()
        if not user:
            print(f"User not found: {email}")
            return False
        role = s.query(Role).filter(Role.code == "admin").one_or_none()
        if not role:
            print("Admin role not found. Run python scripts/init_db.py first.")
            return False
        changed = False
        if role not in (user.roles or []):
            user.roles.append(role)
            changed = True
        if superuser and user.role != "admin":
            user.role = "admin"
            changed = True
        print(f"Admin role attached to {email}" if changed else f"User already has admin role: {email}")
        return changed


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", required=True, help="User email to attach admin role")
    parser.add_argument("--superuser", action="store_true", help="Also set the legacy admin flag")
    args = parser.parse_args()
    attach_admin_role(args.email, superuser=args.superuser)


if __name__ == "__main__":
    main()
