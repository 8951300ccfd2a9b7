"""API endpoints for staff management"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

import crud_users
from auth import require_admin, require_staff
from db import get_db
from models import Profile
from schemas import UserCreateIn, UserUpdateIn, UserWithStatusOut, WorkerOut
from utils.audit import audit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])  # Will become /api/users via main.py registration


def _with_status(profile: Profile) -> UserWithStatusOut:
    return UserWithStatusOut(
        id=profile.id,
        full_name=profile.full_name,
        email=profile.email,
        role=profile.role,
        status=profile.status,
        is_confirmed=profile.email_confirmed_at is not None,
        hourly_cost=profile.hourly_cost,
    )


@router.get("", response_model=List[UserWithStatusOut])
def list_users(
    db: Session = Depends(get_db),
    staff: Profile = Depends(require_staff)
):
    """List every profile with role, status and confirmation (staff only)"""
    return crud_users.list_users_with_status(db)


@router.get("/workers", response_model=List[WorkerOut])
def list_workers(
    db: Session = Depends(get_db),
    staff: Profile = Depends(require_staff)
):
    """Profiles that can be assigned to demands (staff only)"""
    return crud_users.list_workers(db)


@router.post("", response_model=UserWithStatusOut, status_code=status.HTTP_201_CREATED)
def create_user(
    data: UserCreateIn,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_admin)
):
    """Create new user (admin only)"""
    if crud_users.get_profile_by_email(db, data.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"User with email {data.email} already exists"
        )

    profile = crud_users.create_user(db, data)
    audit(db, "user.create", "profile", profile.id, actor_id=admin.id,
          payload={"email": profile.email, "role": profile.role})
    db.commit()
    db.refresh(profile)
    logger.info("user %s created by admin %s", profile.id, admin.id)
    return _with_status(profile)


@router.put("/{user_id}", response_model=UserWithStatusOut)
def update_user(
    user_id: int,
    data: UserUpdateIn,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_admin)
):
    """Update user (admin only)"""
    profile = crud_users.update_user(db, user_id, data)
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")

    audit(db, "user.update", "profile", profile.id, actor_id=admin.id,
          payload={"role": profile.role, "password_changed": bool(data.password)})
    db.commit()
    db.refresh(profile)
    return _with_status(profile)


@router.post("/{user_id}/approve", response_model=UserWithStatusOut)
def approve_user(
    user_id: int,
    db: Session = Depends(get_db),
    staff: Profile = Depends(require_staff)
):
    """Approve a pending account (admin or supervisor)"""
    profile = crud_users.approve_user(db, user_id)
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")

    audit(db, "user.approve", "profile", profile.id, actor_id=staff.id)
    db.commit()
    db.refresh(profile)
    return _with_status(profile)
