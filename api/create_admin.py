"""Create (or reset) the bootstrap admin account.

Usage:
    python create_admin.py --email admin@example.com --password 'S3cret!pass' --name Admin

Falls back to ADMIN_EMAIL / ADMIN_PASSWORD / ADMIN_NAME environment variables.
"""
import argparse
import os
import sys

from auth import hash_password
from db import SessionLocal, engine
from models import AuthCredential, Base, Profile, ProfileStatus, UserRole
from utils.time import utcnow


def ensure_admin(db, email: str, password: str, full_name: str) -> Profile:
    """Create an active admin, or promote/reset the existing profile with that email."""
    email = email.strip().lower()
    profile = db.query(Profile).filter(Profile.email == email).first()
    if profile is None:
        profile = Profile(email=email, full_name=full_name)
        db.add(profile)

    profile.role = UserRole.admin.value
    profile.status = ProfileStatus.active.value
    if profile.email_confirmed_at is None:
        profile.email_confirmed_at = utcnow()

    password_hash = hash_password(password)
    if profile.auth_credential is None:
        profile.auth_credential = AuthCredential(password_hash=password_hash)
    else:
        profile.auth_credential.password_hash = password_hash
        profile.auth_credential.failed_attempts = 0
        profile.auth_credential.locked_until = None

    db.commit()
    db.refresh(profile)
    return profile


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create the FieldLedger admin account")
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL"))
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD"))
    parser.add_argument("--name", default=os.getenv("ADMIN_NAME", "Admin"))
    args = parser.parse_args(argv)

    if not args.email or not args.password:
        parser.error("--email and --password (or ADMIN_EMAIL/ADMIN_PASSWORD) are required")
    if len(args.password) < 8:
        parser.error("password must be at least 8 characters")

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        admin = ensure_admin(db, args.email, args.password, args.name)
        print(f'✅ Admin ready: ID={admin.id}, email={admin.email}')
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
