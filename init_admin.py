"""
Quick script to create an admin login
Run this if you don't have an admin user yet, or to add another one.

    python init_admin.py [username] [password]

Defaults come from INITIAL_ADMIN_USERNAME / INITIAL_ADMIN_PASSWORD.
"""
import sys

from app.core.config import settings
from app.core.security import hash_password, validate_password
from app.db.session import SessionLocal
from app.models.user import Role, User

if __name__ == "__main__":
    username = sys.argv[1] if len(sys.argv) > 1 else settings.INITIAL_ADMIN_USERNAME
    password = sys.argv[2] if len(sys.argv) > 2 else settings.INITIAL_ADMIN_PASSWORD

    try:
        validate_password(password)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.username == username).first()
        if existing:
            print(f"User {username} already exists (role: {existing.role}), skipping")
        else:
            db.add(User(
                username=username,
                password_hash=hash_password(password),
                role=Role.ADMIN.value,
                is_active=True,
            ))
            db.commit()
            print("\nAdmin user created!")
            print(f"Login credentials: username {username}")
    finally:
        db.close()
