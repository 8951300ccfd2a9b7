"""Pydantic schemas for FieldLedger API."""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, condecimal, field_validator

# Money type - Decimal only, 18 digits max, 2 decimal places
Money = condecimal(max_digits=18, decimal_places=2, gt=0)
HourlyCost = condecimal(max_digits=10, decimal_places=2, ge=0)


class RoleIn(str, Enum):
    admin = "admin"
    supervisor = "supervisor"
    user = "user"


def _not_blank(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("must not be blank")
    return v


# --- Users ---

class UserCreateIn(BaseModel):
    """Admin-created account (confirmed and active immediately)."""

    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=8, max_length=255)
    full_name: str = Field(min_length=1, max_length=255)
    role: RoleIn
    hourly_cost: Optional[HourlyCost] = Field(default=None, description="Labour cost per hour")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()

    @field_validator("full_name")
    @classmethod
    def strip_full_name(cls, v):
        return _not_blank(v)


class UserUpdateIn(BaseModel):
    """Name and role are required; password is re-hashed when present."""

    full_name: str = Field(min_length=1, max_length=255)
    role: RoleIn
    password: Optional[str] = Field(default=None, min_length=8, max_length=255)
    hourly_cost: Optional[HourlyCost] = None

    @field_validator("full_name")
    @classmethod
    def strip_full_name(cls, v):
        return _not_blank(v)


class UserWithStatusOut(BaseModel):
    id: int
    full_name: str
    email: str
    role: str
    status: str
    is_confirmed: bool
    hourly_cost: Optional[Decimal] = None


class WorkerOut(BaseModel):
    id: int
    full_name: str
    role: str

    model_config = ConfigDict(from_attributes=True)


# --- Locations ---

class LocationIn(BaseModel):
    client_name: str = Field(min_length=1, max_length=200)
    street_name: str = Field(min_length=1, max_length=200)
    street_number: Optional[str] = Field(default=None, max_length=20)
    unit_number: Optional[str] = Field(default=None, max_length=50)
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=2, description="Two-letter state code")
    zip_code: Optional[str] = Field(default=None, max_length=20)

    @field_validator("client_name", "street_name")
    @classmethod
    def required_text(cls, v):
        return _not_blank(v)

    @field_validator("state")
    @classmethod
    def upper_state(cls, v):
        return v.strip().upper() if v else v


class LocationOut(BaseModel):
    id: int
    user_id: int
    client_name: str
    street_name: str
    street_number: Optional[str] = None
    unit_number: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    created_at: Optional[datetime] = None
    address: str = Field(description="Single-line formatted address")
    maps_url: str = Field(description="Directions URL, empty when no address")


# --- Tasks ---

class TaskCreateIn(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    presumed_h: Optional[int] = Field(default=0, ge=0, description="Presumed hours; null means 0")
    presumed_m: Optional[int] = Field(default=0, ge=0, lt=60, description="Presumed minutes (0-59); null means 0")

    @field_validator("title")
    @classmethod
    def strip_title(cls, v):
        return _not_blank(v)


class PresumedComparison(BaseModel):
    presumed_hours: float
    difference_seconds: int
    outcome: str = Field(description="over | under | on_time")
    message: str


class TaskOut(BaseModel):
    id: int
    demand_id: int
    title: str
    status: str
    presumed_hours: Optional[float] = None
    worker_id: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    start_photo_url: Optional[str] = Field(default=None, description="Signed URL of the start photo")
    end_photo_url: Optional[str] = Field(default=None, description="Signed URL of the end photo")
    start_latitude: Optional[float] = None
    start_longitude: Optional[float] = None
    start_accuracy: Optional[float] = None
    end_latitude: Optional[float] = None
    end_longitude: Optional[float] = None
    end_accuracy: Optional[float] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    duration_formatted: Optional[str] = None
    comparison: Optional[PresumedComparison] = None


class PhotoUploadOut(BaseModel):
    path: str


# --- Materials ---

class MaterialCostIn(BaseModel):
    description: str = Field(min_length=1, max_length=255)
    amount: Money = Field(description="Cost amount (Decimal, 2 decimal places)")

    @field_validator("description")
    @classmethod
    def strip_description(cls, v):
        return _not_blank(v)


class MaterialCostOut(BaseModel):
    id: int
    demand_id: int
    description: str
    amount: Decimal
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# --- Demands ---

class DemandCreateIn(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    start_date: Optional[date] = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v):
        return _not_blank(v)


class AssignWorkersIn(BaseModel):
    worker_ids: List[int] = Field(default_factory=list, description="Replaces the current assignment")


class DemandSummaryOut(BaseModel):
    id: int
    title: str
    user_id: int
    location_id: Optional[int] = None
    start_date: Optional[date] = None
    created_at: Optional[datetime] = None
    worker_ids: List[int] = []
    tasks: List[TaskOut] = []


class DemandOut(DemandSummaryOut):
    location: Optional[LocationOut] = None
    material_costs: List[MaterialCostOut] = []
    total_seconds: int = 0
    total_formatted: str = "0m"


class LocationDetailOut(LocationOut):
    demands: List[DemandSummaryOut] = []


# --- Dashboard ---

class AdminStatsChanges(BaseModel):
    totalDemands: float
    completedTasks: float
    delayedDemands: float


class AdminStatsOut(BaseModel):
    kind: str = "admin"
    totalDemands: int
    completedTasks: int
    delayedDemands: int
    totalUsers: int
    changes: AdminStatsChanges


class UserStatsOut(BaseModel):
    kind: str = "user"
    assignedDemands: int
    completedTasksMonth: int
    totalHoursMonth: float
    totalCostMonth: Decimal
    totalCostWeek: Decimal


# --- Reports ---

class WorkReportRow(BaseModel):
    user_id: int
    full_name: str
    total_hours: float
    total_cost: Decimal
    task_count: int
