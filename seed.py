#!/usr/bin/env python3
# seed.py
import os

from db import db
from models.user import User

ADMIN_NAME = os.environ.get("ADMIN_NAME", "Admin")
ADMIN_MOBILE = os.environ.get("ADMIN_MOBILE", "9000000000")


def seed_admin(email: str | None = None, password: str | None = None) -> User:
    """
    Creates or updates the admin account.

    Reads ADMIN_EMAIL / ADMIN_PASSWORD (and optionally ADMIN_NAME,
    ADMIN_MOBILE) from the environment. Must run inside an app context.
    Safe to run repeatedly.
    """
    email = (email or os.environ.get("ADMIN_EMAIL") or "").strip().lower()
    password = password or os.environ.get("ADMIN_PASSWORD")
    if not email or not password:
        raise SystemExit("ADMIN_EMAIL and ADMIN_PASSWORD must be set")

    user = User.query.filter_by(email=email).first()
    if not user:
        user = User(name=ADMIN_NAME, email=email, mobile=ADMIN_MOBILE, role="admin",
                    is_verified=True, status="active")
        db.session.add(user)
        print(f"➕ Created admin account `{email}`.")
    else:
        user.role = "admin"
        user.is_verified = True
        print(f"🔄 Updated admin account `{email}` with a fresh password.")

    user.set_password(password)
    db.session.commit()
    return user


if __name__ == "__main__":
    from app import create_app

    with create_app().app_context():
        seed_admin()
