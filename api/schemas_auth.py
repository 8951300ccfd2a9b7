"""Authentication schemas."""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SignupIn(BaseModel):
    """Self-registration request (account starts pending approval)."""
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=8, max_length=255)
    full_name: str = Field(..., min_length=1, max_length=255)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("full_name must not be blank")
        return v


class PasswordLoginIn(BaseModel):
    """Password-based login request."""
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=255)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class TokenResponse(BaseModel):
    """JWT token response."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    role: str
    user_id: int
    full_name: str


class TokenRefreshIn(BaseModel):
    """Refresh token request."""
    refresh_token: str


class ProfileOut(BaseModel):
    """Profile of the authenticated user."""
    id: int
    email: str
    full_name: str
    role: str
    status: str
    hourly_cost: Optional[Decimal] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
