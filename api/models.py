"""SQLAlchemy models for FieldLedger API."""
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, DateTime, Date, Numeric, Float, Boolean,
    ForeignKey, Index, UniqueConstraint, func,
)
from sqlalchemy.orm import declarative_base, relationship

from utils.time import utcnow

Base = declarative_base()


class UserRole(str, Enum):
    admin = "admin"
    supervisor = "supervisor"
    user = "user"


class ProfileStatus(str, Enum):
    pending = "pending"
    active = "active"


class TaskStatus(str, Enum):
    pending = "pending"
    in_progress = "in_progress"
    pending_approval = "pending_approval"
    approved = "approved"


STAFF_ROLES = (UserRole.admin.value, UserRole.supervisor.value)


class Profile(Base):
    """
    Application user: login identity plus the public profile
    (name, role, approval status and hourly cost).
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.user.value, index=True)
    status = Column(String(20), nullable=False, default=ProfileStatus.pending.value, index=True)
    hourly_cost = Column(Numeric(10, 2), nullable=True)
    email_confirmed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    auth_credential = relationship(
        "AuthCredential", back_populates="profile", uselist=False, cascade="all, delete-orphan"
    )
    refresh_tokens = relationship("RefreshToken", back_populates="profile", cascade="all, delete-orphan")

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


class AuthCredential(Base):
    """Password credentials, one-to-one with Profile."""

    __tablename__ = "auth_credentials"

    id = Column(Integer, primary_key=True, autoincrement=True)
    profile_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    failed_attempts = Column(Integer, nullable=False, default=0)
    locked_until = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    profile = relationship("Profile", back_populates="auth_credential")


class RefreshToken(Base):
    """JWT refresh tokens for API sessions."""

    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    profile_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(500), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    revoked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    profile = relationship("Profile", back_populates="refresh_tokens")


class Location(Base):
    """Client site where demands are carried out."""

    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    client_name = Column(String(200), nullable=False)
    street_name = Column(String(200), nullable=False)
    street_number = Column(String(20), nullable=True)
    unit_number = Column(String(50), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(2), nullable=True)
    zip_code = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)

    demands = relationship("Demand", back_populates="location")


class Demand(Base):
    """Service request at a location, broken down into tasks."""

    __tablename__ = "demands"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("locations.id", ondelete="CASCADE"), nullable=True, index=True)
    start_date = Column(Date, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)

    location = relationship("Location", back_populates="demands")
    tasks = relationship("Task", back_populates="demand", order_by="Task.id")
    workers = relationship("DemandWorker", cascade="all, delete-orphan")
    material_costs = relationship("MaterialCost", cascade="all, delete-orphan", order_by="MaterialCost.id")

    @property
    def worker_ids(self) -> list[int]:
        return sorted(w.worker_id for w in self.workers)


class DemandWorker(Base):
    """Worker assignment to a demand."""

    __tablename__ = "demand_workers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    demand_id = Column(Integer, ForeignKey("demands.id", ondelete="CASCADE"), nullable=False, index=True)
    worker_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("demand_id", "worker_id", name="uq_demand_workers_pair"),
    )


class Task(Base):
    """Unit of field work, started and finished with a geotagged photo."""

    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    demand_id = Column(Integer, ForeignKey("demands.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    presumed_hours = Column(Float, nullable=True)
    status = Column(String(20), nullable=False, default=TaskStatus.pending.value, index=True)
    worker_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True, index=True)
    start_photo_url = Column(String(500), nullable=True)
    end_photo_url = Column(String(500), nullable=True)

    start_latitude = Column(Float, nullable=True)
    start_longitude = Column(Float, nullable=True)
    start_accuracy = Column(Float, nullable=True)
    end_latitude = Column(Float, nullable=True)
    end_longitude = Column(Float, nullable=True)
    end_accuracy = Column(Float, nullable=True)

    approved_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    demand = relationship("Demand", back_populates="tasks")
    worker = relationship("Profile", foreign_keys=[worker_id])

    __table_args__ = (
        Index("ix_tasks_status_completed_at", "status", "completed_at"),
    )


class MaterialCost(Base):
    """Material expense recorded against a demand."""

    __tablename__ = "material_costs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    demand_id = Column(Integer, ForeignKey("demands.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String(255), nullable=False)
    amount = Column(Numeric(precision=18, scale=2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AuditLog(Base):
    """Append-only record of state-changing operations."""

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(String(64), nullable=False, index=True)
    entity = Column(String(32), nullable=True)
    entity_id = Column(Integer, nullable=True)
    actor_id = Column(Integer, nullable=True)
    payload_hash = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
