"""Authentication endpoints: signup, login, token refresh, current profile."""
import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from auth import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    create_access_token,
    create_refresh_token,
    get_current_profile,
    hash_password,
    verify_password,
    verify_token,
)
from config import settings
from db import get_db
from models import AuthCredential, Profile, ProfileStatus, RefreshToken, UserRole
from schemas_auth import PasswordLoginIn, ProfileOut, SignupIn, TokenRefreshIn, TokenResponse
from utils.audit import audit, record_metric
from utils.time import as_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _token_response(profile: Profile, db: Session) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(profile.id, profile.role, profile.email),
        refresh_token=create_refresh_token(profile.id, db),
        expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        role=profile.role,
        user_id=profile.id,
        full_name=profile.full_name,
    )


@router.post("/signup", response_model=ProfileOut, status_code=status.HTTP_201_CREATED)
async def signup(data: SignupIn, db: Session = Depends(get_db)):
    """
    Self-registration.

    New accounts get the `user` role and stay `pending` until an admin or
    supervisor approves them.
    """
    if db.query(Profile).filter(Profile.email == data.email).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Email '{data.email}' already registered"
        )

    profile = Profile(
        email=data.email,
        full_name=data.full_name,
        role=UserRole.user.value,
        status=ProfileStatus.pending.value,
    )
    profile.auth_credential = AuthCredential(password_hash=hash_password(data.password))
    db.add(profile)
    db.flush()
    audit(db, "user.signup", "profile", profile.id, actor_id=profile.id)
    db.commit()
    db.refresh(profile)

    logger.info("signup: profile %s (%s) awaiting approval", profile.id, profile.email)
    return profile


@router.post("/login", response_model=TokenResponse)
async def password_login(credentials: PasswordLoginIn, db: Session = Depends(get_db)):
    """
    Authenticate using email/password.

    Brute-force protection: MAX_FAILED_LOGINS failures lock the account for
    LOCKOUT_MINUTES.
    """
    profile = db.query(Profile).filter(Profile.email == credentials.email).first()
    auth_cred = profile.auth_credential if profile else None

    if not auth_cred:
        record_metric("auth.login", {"email": credentials.email}, outcome="rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    now = datetime.now(timezone.utc)
    locked_until = as_utc(auth_cred.locked_until)
    if locked_until and locked_until > now:
        remaining = (locked_until - now).total_seconds()
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Account locked for {int(remaining / 60)} more minutes"
        )

    if not verify_password(credentials.password, auth_cred.password_hash):
        auth_cred.failed_attempts += 1

        if auth_cred.failed_attempts >= settings.MAX_FAILED_LOGINS:
            auth_cred.locked_until = now + timedelta(minutes=settings.LOCKOUT_MINUTES)
            auth_cred.failed_attempts = 0
            db.commit()
            logger.warning("login: profile %s locked after repeated failures", profile.id)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Account locked due to too many failed attempts ({settings.LOCKOUT_MINUTES} min)"
            )

        db.commit()
        record_metric("auth.login", {"user_id": profile.id}, outcome="rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid credentials ({settings.MAX_FAILED_LOGINS - auth_cred.failed_attempts} attempts remaining)"
        )

    # Reset failed attempts on success
    auth_cred.failed_attempts = 0
    auth_cred.locked_until = None
    db.commit()

    if profile.status != ProfileStatus.active.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account awaiting approval"
        )

    record_metric("auth.login", {"user_id": profile.id}, outcome="accepted")
    return _token_response(profile, db)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_access_token(data: TokenRefreshIn, db: Session = Depends(get_db)):
    """Rotate the refresh token and issue a new access token."""
    payload = verify_token(data.refresh_token, token_type="refresh")
    profile_id = int(payload["sub"])

    token_obj = db.query(RefreshToken).filter(
        RefreshToken.token == data.refresh_token,
        RefreshToken.profile_id == profile_id,
        RefreshToken.revoked == False  # noqa: E712
    ).first()

    if not token_obj:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or revoked refresh token"
        )

    if as_utc(token_obj.expires_at) < datetime.now(timezone.utc):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token expired"
        )

    profile = db.query(Profile).filter(Profile.id == profile_id).first()
    if not profile or profile.status != ProfileStatus.active.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account disabled"
        )

    token_obj.revoked = True
    db.commit()

    return _token_response(profile, db)


@router.get("/me", response_model=ProfileOut)
async def get_me(profile: Profile = Depends(get_current_profile)):
    """Current session profile."""
    return profile
