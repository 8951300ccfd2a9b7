"""Task endpoints: creation, geotagged photo start/finish, approval, deletion.

Lifecycle: pending -> in_progress -> pending_approval -> approved.
Each transition accepts exactly one current status; anything else is a 409.
"""
import logging
import time
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

import services
from auth import get_current_profile, require_staff
from config import settings
from db import get_db
from models import Profile, Task, TaskStatus
from schemas import PhotoUploadOut, TaskCreateIn, TaskOut
from storage import ObjectExists, ObjectStorage, get_storage
from utils.audit import audit, record_metric
from utils.time import presumed_from_parts, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["tasks"])

PHOTO_ACTIONS = ("start", "end")


def _require_status(task: Task, expected: TaskStatus) -> None:
    if task.status != expected.value:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Task is '{task.status}', expected '{expected.value}'"
        )


async def _store_photo(store: ObjectStorage, task_id: int, action: str, photo: UploadFile) -> str:
    """Validate and upload a task photo; returns its storage path."""
    if photo.content_type and not photo.content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Expected an image, got {photo.content_type}"
        )

    data = await photo.read()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty photo")
    if len(data) > settings.MAX_PHOTO_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Photo exceeds {settings.MAX_PHOTO_BYTES} bytes"
        )

    path = f"{task_id}/{action}_{int(time.time() * 1000)}.jpg"
    try:
        store.upload(settings.PHOTO_BUCKET, path, data, content_type=photo.content_type or "image/jpeg")
    except ObjectExists:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Photo already uploaded, retry")

    record_metric("task.photo", {"task_id": task_id, "action": action, "bytes": len(data)})
    return path


@router.post("/demands/{demand_id}/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(
    demand_id: int,
    data: TaskCreateIn,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
    store: ObjectStorage = Depends(get_storage)
):
    """Add a pending task; presumed duration is optional hours + minutes."""
    demand = services.get_demand_or_404(db, demand_id, profile)
    task = Task(
        demand_id=demand.id,
        title=data.title,
        presumed_hours=presumed_from_parts(data.presumed_h or 0, data.presumed_m or 0),
        status=TaskStatus.pending.value,
    )
    db.add(task)
    db.flush()
    audit(db, "task.create", "task", task.id, actor_id=profile.id)
    db.commit()
    db.refresh(task)
    return services.task_view(task, store)


@router.post("/tasks/{task_id}/photos", response_model=PhotoUploadOut, status_code=status.HTTP_201_CREATED)
async def upload_task_photo(
    task_id: int,
    photo: Annotated[UploadFile, File()],
    photo_action: Annotated[str, Form()],
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
    store: ObjectStorage = Depends(get_storage)
):
    """
    Upload a start/end photo without changing task state.

    Allowed for staff, the demand owner and workers assigned to the demand.
    """
    if photo_action not in PHOTO_ACTIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"photo_action must be one of {', '.join(PHOTO_ACTIONS)}"
        )

    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    if not services.can_access_demand(profile, task.demand):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to upload photos for this task"
        )

    path = await _store_photo(store, task.id, photo_action, photo)
    return {"path": path}


@router.post("/tasks/{task_id}/start", response_model=TaskOut)
async def start_task(
    task_id: int,
    photo: Annotated[UploadFile, File()],
    latitude: Annotated[Optional[float], Form()] = None,
    longitude: Annotated[Optional[float], Form()] = None,
    accuracy: Annotated[Optional[float], Form()] = None,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
    store: ObjectStorage = Depends(get_storage)
):
    """Start a pending task with a photo and optional geotag; caller becomes its worker."""
    task = services.get_task_or_404(db, task_id, profile)
    _require_status(task, TaskStatus.pending)

    task.start_photo_url = await _store_photo(store, task.id, "start", photo)
    task.started_at = utcnow()
    task.worker_id = profile.id
    task.start_latitude = latitude
    task.start_longitude = longitude
    task.start_accuracy = accuracy
    task.status = TaskStatus.in_progress.value

    audit(db, "task.start", "task", task.id, actor_id=profile.id,
          payload={"lat": latitude, "lng": longitude, "accuracy": accuracy})
    db.commit()
    db.refresh(task)
    logger.info("task %s started by %s", task.id, profile.id)
    return services.task_view(task, store)


@router.post("/tasks/{task_id}/finish", response_model=TaskOut)
async def finish_task(
    task_id: int,
    photo: Annotated[UploadFile, File()],
    latitude: Annotated[Optional[float], Form()] = None,
    longitude: Annotated[Optional[float], Form()] = None,
    accuracy: Annotated[Optional[float], Form()] = None,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
    store: ObjectStorage = Depends(get_storage)
):
    """Finish an in-progress task; only its worker or staff may do so."""
    task = services.get_task_or_404(db, task_id, profile)
    _require_status(task, TaskStatus.in_progress)
    if not profile.is_staff and task.worker_id != profile.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the worker who started the task can finish it"
        )

    task.end_photo_url = await _store_photo(store, task.id, "end", photo)
    task.completed_at = utcnow()
    task.end_latitude = latitude
    task.end_longitude = longitude
    task.end_accuracy = accuracy
    task.status = TaskStatus.pending_approval.value

    audit(db, "task.finish", "task", task.id, actor_id=profile.id,
          payload={"lat": latitude, "lng": longitude, "accuracy": accuracy})
    db.commit()
    db.refresh(task)
    return services.task_view(task, store)


@router.post("/tasks/{task_id}/approve", response_model=TaskOut)
def approve_task(
    task_id: int,
    db: Session = Depends(get_db),
    staff: Profile = Depends(require_staff),
    store: ObjectStorage = Depends(get_storage)
):
    task = services.get_task_or_404(db, task_id, staff)
    _require_status(task, TaskStatus.pending_approval)

    task.status = TaskStatus.approved.value
    task.approved_by = staff.id
    task.approved_at = utcnow()

    audit(db, "task.approve", "task", task.id, actor_id=staff.id)
    db.commit()
    db.refresh(task)
    return services.task_view(task, store)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
    store: ObjectStorage = Depends(get_storage)
):
    """Delete the task's photos, then the task."""
    task = services.get_task_or_404(db, task_id, profile)
    services.delete_task(db, task, store)
    audit(db, "task.delete", "task", task_id, actor_id=profile.id)
    db.commit()
