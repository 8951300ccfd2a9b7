"""CRUD operations for profile management (single role per profile)"""
from typing import List, Optional

from sqlalchemy.orm import Session

from auth import hash_password
from models import AuthCredential, Profile, ProfileStatus, UserRole
from schemas import UserCreateIn, UserUpdateIn
from utils.time import utcnow

WORKER_ROLES = (UserRole.user.value, UserRole.supervisor.value)


def get_profile_by_id(db: Session, profile_id: int) -> Optional[Profile]:
    """Get profile by primary key"""
    return db.query(Profile).filter(Profile.id == profile_id).first()


def get_profile_by_email(db: Session, email: str) -> Optional[Profile]:
    return db.query(Profile).filter(Profile.email == email).first()


def list_users_with_status(db: Session) -> List[dict]:
    """Every profile with its login confirmation state, ordered by name"""
    profiles = db.query(Profile).order_by(Profile.full_name, Profile.id).all()
    return [
        {
            "id": p.id,
            "full_name": p.full_name,
            "email": p.email,
            "role": p.role,
            "status": p.status,
            "is_confirmed": p.email_confirmed_at is not None,
            "hourly_cost": p.hourly_cost,
        }
        for p in profiles
    ]


def list_workers(db: Session) -> List[Profile]:
    """Profiles that can be assigned to demands (users and supervisors)"""
    return (
        db.query(Profile)
        .filter(Profile.role.in_(WORKER_ROLES))
        .order_by(Profile.full_name, Profile.id)
        .all()
    )


def create_user(db: Session, data: UserCreateIn) -> Profile:
    """Create a confirmed, active profile with password credentials"""
    profile = Profile(
        email=data.email,
        full_name=data.full_name,
        role=data.role.value,  # Enum to string
        status=ProfileStatus.active.value,
        hourly_cost=data.hourly_cost,
        email_confirmed_at=utcnow(),
    )
    profile.auth_credential = AuthCredential(password_hash=hash_password(data.password))
    db.add(profile)
    db.flush()
    return profile


def update_user(db: Session, profile_id: int, data: UserUpdateIn) -> Optional[Profile]:
    """Update name/role, optionally password and hourly cost"""
    profile = get_profile_by_id(db, profile_id)
    if not profile:
        return None

    profile.full_name = data.full_name
    profile.role = data.role.value
    # Omitted keeps the current rate; explicit null clears it
    if "hourly_cost" in data.model_fields_set:
        profile.hourly_cost = data.hourly_cost

    if data.password:
        if profile.auth_credential is None:
            profile.auth_credential = AuthCredential(password_hash=hash_password(data.password))
        else:
            profile.auth_credential.password_hash = hash_password(data.password)
            profile.auth_credential.failed_attempts = 0
            profile.auth_credential.locked_until = None

    db.flush()
    return profile


def approve_user(db: Session, profile_id: int) -> Optional[Profile]:
    """Activate a pending profile (idempotent for active ones)"""
    profile = get_profile_by_id(db, profile_id)
    if not profile:
        return None

    profile.status = ProfileStatus.active.value
    if profile.email_confirmed_at is None:
        profile.email_confirmed_at = utcnow()
    db.flush()
    return profile
