"""Domain services shared by the resource routers.

Access scoping, response assembly (signed photo URLs, durations), cascading
deletes that also clean up photo storage, dashboard statistics and the work
report aggregation.
"""
import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy import exists, func
from sqlalchemy.orm import Session

from config import settings
from models import Demand, DemandWorker, Location, Profile, Task, TaskStatus
from storage import ObjectStorage, StorageError
from utils.address import format_address, generate_maps_url
from utils.money import hours_from_seconds, labour_cost, to_money
from utils.time import (
    as_utc,
    calculate_total_duration,
    compare_to_presumed,
    day_bounds,
    format_hms,
    format_total_time,
    local_date,
    month_start,
    percentage_change,
    previous_month_start,
    task_seconds,
    utcnow,
    week_start,
)

logger = logging.getLogger(__name__)

COMPLETED_STATUSES = (TaskStatus.pending_approval.value, TaskStatus.approved.value)


# --- Access ---

def can_access_demand(profile: Profile, demand: Demand) -> bool:
    """Staff see every demand; users their own and those they are assigned to."""
    if profile.is_staff:
        return True
    return demand.user_id == profile.id or profile.id in demand.worker_ids


def get_demand_or_404(db: Session, demand_id: int, profile: Profile) -> Demand:
    demand = db.query(Demand).filter(Demand.id == demand_id).first()
    # Out-of-scope demands look exactly like missing ones
    if not demand or not can_access_demand(profile, demand):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Demand not found")
    return demand


def get_location_or_404(db: Session, location_id: int, profile: Profile) -> Location:
    location = db.query(Location).filter(Location.id == location_id).first()
    if not location or not (profile.is_staff or location.user_id == profile.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    return location


def get_task_or_404(db: Session, task_id: int, profile: Profile) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task or not can_access_demand(profile, task.demand):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return task


# --- Views ---

def location_view(location: Location) -> dict:
    return {
        "id": location.id,
        "user_id": location.user_id,
        "client_name": location.client_name,
        "street_name": location.street_name,
        "street_number": location.street_number,
        "unit_number": location.unit_number,
        "city": location.city,
        "state": location.state,
        "zip_code": location.zip_code,
        "created_at": as_utc(location.created_at),
        "address": format_address(location),
        "maps_url": generate_maps_url(location),
    }


def _signed(store: ObjectStorage, path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    return store.create_signed_url(settings.PHOTO_BUCKET, path)


def task_view(task: Task, store: ObjectStorage) -> dict:
    """Task row plus signed photo URLs, duration and presumed-time comparison."""
    seconds = task_seconds(task.started_at, task.completed_at)
    if seconds is not None:
        duration_formatted = format_hms(seconds)
    elif task.started_at is not None:
        duration_formatted = "In progress"
    else:
        duration_formatted = None

    comparison = None
    if seconds is not None:
        comparison = compare_to_presumed(seconds, task.presumed_hours, settings.PRESUMED_TOLERANCE)

    return {
        "id": task.id,
        "demand_id": task.demand_id,
        "title": task.title,
        "status": task.status,
        "presumed_hours": task.presumed_hours,
        "worker_id": task.worker_id,
        "started_at": as_utc(task.started_at),
        "completed_at": as_utc(task.completed_at),
        "start_photo_url": _signed(store, task.start_photo_url),
        "end_photo_url": _signed(store, task.end_photo_url),
        "start_latitude": task.start_latitude,
        "start_longitude": task.start_longitude,
        "start_accuracy": task.start_accuracy,
        "end_latitude": task.end_latitude,
        "end_longitude": task.end_longitude,
        "end_accuracy": task.end_accuracy,
        "approved_by": task.approved_by,
        "approved_at": as_utc(task.approved_at),
        "created_at": as_utc(task.created_at),
        "duration_seconds": seconds,
        "duration_formatted": duration_formatted,
        "comparison": comparison,
    }


def demand_summary(demand: Demand, store: ObjectStorage) -> dict:
    return {
        "id": demand.id,
        "title": demand.title,
        "user_id": demand.user_id,
        "location_id": demand.location_id,
        "start_date": demand.start_date,
        "created_at": as_utc(demand.created_at),
        "worker_ids": demand.worker_ids,
        "tasks": [task_view(t, store) for t in demand.tasks],
    }


def demand_view(demand: Demand, store: ObjectStorage) -> dict:
    total_seconds = calculate_total_duration(demand.tasks)
    view = demand_summary(demand, store)
    view.update({
        "location": location_view(demand.location) if demand.location else None,
        "material_costs": list(demand.material_costs),
        "total_seconds": total_seconds,
        "total_formatted": format_total_time(total_seconds),
    })
    return view


def location_detail(db: Session, location: Location, store: ObjectStorage) -> dict:
    demands = (
        db.query(Demand)
        .filter(Demand.location_id == location.id)
        .order_by(Demand.start_date.desc(), Demand.created_at.desc(), Demand.id.desc())
        .all()
    )
    view = location_view(location)
    view["demands"] = [demand_summary(d, store) for d in demands]
    return view


# --- Cascading deletes ---

def task_photo_paths(store: ObjectStorage, task_ids: List[int]) -> List[str]:
    """
    Collect object paths in each task's photo folder.

    A listing failure is logged and that folder skipped so one broken folder
    does not block deleting the rest.
    """
    paths: List[str] = []
    for task_id in task_ids:
        folder = str(task_id)
        try:
            objects = store.list(settings.PHOTO_BUCKET, folder)
        except (StorageError, OSError) as exc:
            logger.error("Error listing photos for task %s: %s", task_id, exc)
            continue
        paths.extend(f"{folder}/{obj.name}" for obj in objects)
    return paths


def remove_photos(store: ObjectStorage, paths: List[str]) -> int:
    """Remove all collected photos in one call; failure aborts the delete."""
    if not paths:
        return 0
    try:
        return store.remove(settings.PHOTO_BUCKET, paths)
    except (StorageError, OSError) as exc:
        logger.error("Error removing %d photos: %s", len(paths), exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete task photos"
        )


def delete_task(db: Session, task: Task, store: ObjectStorage) -> None:
    remove_photos(store, task_photo_paths(store, [task.id]))
    db.delete(task)
    db.flush()


def _delete_demand_rows(db: Session, demand: Demand, tasks: List[Task]) -> None:
    for task in tasks:
        db.delete(task)
    db.flush()
    db.expire(demand, ["tasks"])
    db.delete(demand)
    db.flush()


def delete_demand(db: Session, demand: Demand, store: ObjectStorage) -> int:
    """Photos first, then tasks, then the demand. Returns deleted task count."""
    tasks = list(demand.tasks)
    remove_photos(store, task_photo_paths(store, [t.id for t in tasks]))
    _delete_demand_rows(db, demand, tasks)
    logger.info("demand %s deleted with %d tasks", demand.id, len(tasks))
    return len(tasks)


def delete_location(db: Session, location: Location, store: ObjectStorage) -> int:
    demands = db.query(Demand).filter(Demand.location_id == location.id).all()
    tasks_by_demand = [(d, list(d.tasks)) for d in demands]
    task_ids = [t.id for _, tasks in tasks_by_demand for t in tasks]
    remove_photos(store, task_photo_paths(store, task_ids))
    for demand, tasks in tasks_by_demand:
        _delete_demand_rows(db, demand, tasks)
    db.expire(location, ["demands"])
    db.delete(location)
    db.flush()
    return len(demands)


# --- Dashboard ---

def _period_counts(db: Session, start: datetime, end: datetime) -> Dict[str, int]:
    total_demands = db.query(func.count(Demand.id)).filter(
        Demand.created_at >= start, Demand.created_at < end
    ).scalar() or 0

    completed_tasks = db.query(func.count(Task.id)).filter(
        Task.status == TaskStatus.approved.value,
        Task.completed_at >= start,
        Task.completed_at < end,
    ).scalar() or 0

    first_day = local_date(start, settings.TIMEZONE)
    # A demand starting on the end date itself is not late yet
    end_day = local_date(end, settings.TIMEZONE)
    has_tasks = exists().where(Task.demand_id == Demand.id)
    has_started = exists().where(Task.demand_id == Demand.id, Task.started_at.isnot(None))
    delayed = db.query(func.count(Demand.id)).filter(
        Demand.start_date >= first_day,
        Demand.start_date < end_day,
        has_tasks,
        ~has_started,
    ).scalar() or 0

    return {
        "totalDemands": total_demands,
        "completedTasks": completed_tasks,
        "delayedDemands": delayed,
    }


def admin_stats(db: Session, now: Optional[datetime] = None) -> dict:
    """Current month so far versus the whole previous month."""
    now = now or utcnow()
    current_start = month_start(now, settings.TIMEZONE)
    prev_start = previous_month_start(now, settings.TIMEZONE)

    # Half-open periods; nudge "now" so rows written this instant still count
    current = _period_counts(db, current_start, now + timedelta(microseconds=1))
    previous = _period_counts(db, prev_start, current_start)
    total_users = db.query(func.count(Profile.id)).scalar() or 0

    return {
        **current,
        "totalUsers": total_users,
        "changes": {
            key: round(percentage_change(current[key], previous[key]), 2)
            for key in current
        },
    }


def user_stats(db: Session, profile: Profile, now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    since_month = month_start(now, settings.TIMEZONE)
    since_week = week_start(now, settings.TIMEZONE)

    assigned = db.query(func.count(DemandWorker.id)).filter(
        DemandWorker.worker_id == profile.id
    ).scalar() or 0

    tasks = db.query(Task).filter(
        Task.worker_id == profile.id,
        Task.status.in_(COMPLETED_STATUSES),
        Task.completed_at >= since_month,
    ).all()

    month_seconds = 0
    week_seconds = 0
    for task in tasks:
        seconds = task_seconds(task.started_at, task.completed_at) or 0
        month_seconds += seconds
        if as_utc(task.completed_at) >= since_week:
            week_seconds += seconds

    return {
        "assignedDemands": assigned,
        "completedTasksMonth": len(tasks),
        "totalHoursMonth": round(float(hours_from_seconds(month_seconds)), 2),
        "totalCostMonth": to_money(labour_cost(month_seconds, profile.hourly_cost)),
        "totalCostWeek": to_money(labour_cost(week_seconds, profile.hourly_cost)),
    }


# --- Work report ---

def work_report(db: Session, start: date, end: date) -> List[dict]:
    """
    Hours and labour cost per worker for approved tasks completed between
    local ``start`` 00:00 and ``end`` 23:59:59.999999, sorted by name.
    """
    lower, upper = day_bounds(start, end, settings.TIMEZONE)
    tasks = db.query(Task).filter(
        Task.status == TaskStatus.approved.value,
        Task.completed_at >= lower,
        Task.completed_at <= upper,
    ).all()

    per_worker = defaultdict(lambda: {"seconds": 0, "task_count": 0, "profile": None})
    for task in tasks:
        if task.worker is None:
            continue  # Worker deleted after the fact
        row = per_worker[task.worker_id]
        row["profile"] = task.worker
        row["seconds"] += task_seconds(task.started_at, task.completed_at) or 0
        row["task_count"] += 1

    report = []
    for worker_id, row in per_worker.items():
        profile = row["profile"]
        report.append({
            "user_id": worker_id,
            "full_name": profile.full_name,
            "total_hours": round(float(hours_from_seconds(row["seconds"])), 2),
            "total_cost": to_money(labour_cost(row["seconds"], profile.hourly_cost)),
            "task_count": row["task_count"],
        })
    report.sort(key=lambda r: (r["full_name"].lower(), r["user_id"]))
    return report


def report_totals(rows: List[dict]) -> dict:
    return {
        "total_hours": round(sum(r["total_hours"] for r in rows), 2),
        "total_cost": to_money(sum((r["total_cost"] for r in rows), Decimal("0"))),
        "task_count": sum(r["task_count"] for r in rows),
    }
