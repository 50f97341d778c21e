"""
Seed the reference user accounts.

Usage:
    python -m stockdb.scripts.seed_users [--create-tables]

Passwords default to the shipped reference values; override each one with
SEED_<USERNAME>_PASSWORD before running against a real database.
"""

from __future__ import annotations

import argparse

from stockdb.database import Base, SessionLocal, engine
from stockdb.apps.accounts import services as account_services


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed stockdb reference users")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before seeding",
    )
    args = parser.parse_args()

    if args.create_tables:
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        created = account_services.seed_reference_users(db)
        db.commit()
        if not created:
            print("[INFO] All reference users already exist.")
        for user in created:
            print(f"[OK] Created {user.role.value:<8} {user.username} (id={user.id})")
    finally:
        db.close()


if __name__ == "__main__":
    main()
