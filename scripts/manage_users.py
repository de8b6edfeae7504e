#!/usr/bin/env python
"""
Create users, promote admins, and reset passwords for local setups.

Usage:
    python scripts/manage_users.py create-user player@example.com --name "Ash" --password secret
    python scripts/manage_users.py promote admin@example.com
    python scripts/manage_users.py set-password admin@example.com newsecret

Environment variables:
    DATABASE_URL       (optional – defaults to sqlite:///scavenger.db)
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from werkzeug.security import generate_password_hash

if __package__ in (None, ""):
    sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app import create_app  # noqa: E402
from extensions import db  # noqa: E402
from models import User  # noqa: E402


def create_user(email: str, name: Optional[str], password: Optional[str], admin: bool) -> User:
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        raise SystemExit(f"⚠️ User {email} already exists.")
    user = User(
        email=email,
        name=name,
        account_type="Admin" if admin else "Player",
        password_hash=generate_password_hash(password) if password else None,
    )
    db.session.add(user)
    db.session.commit()
    print(f"✅ Created {user.account_type.lower()} {email} (id {user.id}).")
    return user


def promote(email: str) -> User:
    user = _require_user(email)
    user.account_type = "Admin"
    db.session.commit()
    print(f"✅ {user.email} is now an admin.")
    return user


def set_password(email: str, password: str) -> User:
    user = _require_user(email)
    user.password_hash = generate_password_hash(password)
    db.session.commit()
    print(f"✅ Password updated for {user.email}.")
    return user


def _require_user(email: str) -> User:
    user = User.query.filter_by(email=email.strip().lower()).first()
    if not user:
        raise SystemExit(f"⚠️ No user with email {email}.")
    return user


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Manage scavenger hunt accounts.")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="Create a player (or admin) account")
    create.add_argument("email")
    create.add_argument("--name")
    create.add_argument("--password")
    create.add_argument("--admin", action="store_true", help="Create the account as an admin")

    promote_cmd = sub.add_parser("promote", help="Grant admin rights to an existing user")
    promote_cmd.add_argument("email")

    password_cmd = sub.add_parser("set-password", help="Set a user's password")
    password_cmd.add_argument("email")
    password_cmd.add_argument("password")

    args = parser.parse_args(argv)

    app = create_app()
    with app.app_context():
        if args.command == "create-user":
            create_user(args.email, args.name, args.password, args.admin)
        elif args.command == "promote":
            promote(args.email)
        elif args.command == "set-password":
            set_password(args.email, args.password)
        else:
            parser.error(f"Unknown command: {args.command}")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        sys.exit("\n⚠️ Cancelled by user.")
