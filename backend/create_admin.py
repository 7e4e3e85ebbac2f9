#!/usr/bin/env python
"""Create or reset a clinic admin account.

Usage:
    python create_admin.py                 # username "admin", random password
    python create_admin.py alice S3cret!pw
"""
import secrets
import sys

from app.core.config import settings
from app.core.security import get_password_hash
from app.db.init_db import init_db
from app.db.session import SessionLocal
from app.models.user import User


def main():
    username = sys.argv[1] if len(sys.argv) > 1 else settings.DEFAULT_ADMIN_USERNAME
    password = sys.argv[2] if len(sys.argv) > 2 else secrets.token_urlsafe(12)
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        print(f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters")
        sys.exit(1)

    init_db()
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.username == username).first()
        if user:
            user.hashed_password = get_password_hash(password)
            user.role = "admin"
            user.is_active = True
            action = "reset"
        else:
            db.add(
                User(
                    username=username,
                    full_name="System Administrator",
                    role="admin",
                    hashed_password=get_password_hash(password),
                )
            )
            action = "created"
        db.commit()

        print(f"\n{'=' * 60}")
        print(f"Admin user {action}")
        print(f"{'=' * 60}")
        print(f"Username: {username}")
        print(f"Password: {password}")
        print(f"{'=' * 60}\n")
    finally:
        db.close()


if __name__ == "__main__":
    main()
