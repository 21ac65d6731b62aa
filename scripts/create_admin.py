#!/usr/bin/env python3
"""
Create or Promote a Super Admin
===============================
Grants the admin role to an account, creating it when it does not exist.

Usage:
    python scripts/create_admin.py admin@example.com --name "Ops" --password s3cret
    python scripts/create_admin.py existing@example.com --revoke
"""

import argparse
import getpass
import sys

from adpanel.auth import get_password_hash
from adpanel.database import Base, SessionLocal, engine
from adpanel.models import User


def set_admin(email: str, name: str = None, password: str = None, revoke: bool = False) -> User:
    """Create the account if needed and set its admin flag."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.lower()).first()
        if user is None:
            if revoke:
                raise SystemExit(f"No account for {email}")
            password = password or getpass.getpass("Password for new admin: ")
            user = User(
                name=name or email.split("@")[0],
                email=email.lower(),
                password_hash=get_password_hash(password),
            )
            db.add(user)
            print(f"Created account: {email}")

        user.is_admin = not revoke
        db.commit()
        db.refresh(user)
        print(f"{'Revoked' if revoke else 'Granted'} admin: {user.email} (id={user.id})")
        return user
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Grant or revoke the super-admin role")
    parser.add_argument("email", help="Account email")
    parser.add_argument("--name", help="Display name for a new account")
    parser.add_argument("--password", help="Password for a new account (prompted if omitted)")
    parser.add_argument(
        "--revoke",
        action="store_true",
        help="Remove the admin role instead of granting it"
    )
    args = parser.parse_args()

    set_admin(args.email, args.name, args.password, args.revoke)
    return 0


if __name__ == "__main__":
    sys.exit(main())
