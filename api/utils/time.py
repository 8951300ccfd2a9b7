"""Duration, period and percentage helpers.

All timestamps handled here are timezone-aware UTC. SQLite hands back
naive datetimes for ``DateTime(timezone=True)`` columns, so every value read
from the DB goes through ``as_utc`` before arithmetic.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def task_seconds(started_at: Optional[datetime], completed_at: Optional[datetime]) -> Optional[int]:
    """Whole seconds between start and completion, None if either is missing."""
    if started_at is None or completed_at is None:
        return None
    return int((as_utc(completed_at) - as_utc(started_at)).total_seconds() // 1)


def calculate_total_duration(tasks: Optional[Iterable]) -> int:
    """
    Sum the durations (whole seconds) of tasks that have both ``started_at``
    and ``completed_at``. Tasks still running or never started count as 0.
    """
    if not tasks:
        return 0
    total = 0
    for task in tasks:
        seconds = task_seconds(task.started_at, task.completed_at)
        if seconds is not None:
            total += seconds
    return total


def format_total_time(total_seconds: float) -> str:
    """Compact "2h 5m" / "45m" rendering; anything under a second is "0m"."""
    if total_seconds < 1:
        return "0m"
    total_seconds = int(total_seconds)
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_hms(total_seconds: int) -> str:
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def compare_to_presumed(
    actual_seconds: int,
    presumed_hours: Optional[float],
    tolerance: float = 0.15,
) -> Optional[dict]:
    """
    Compare a finished task against its presumed duration.

    Returns None when no presumed duration was given, otherwise a dict with
    ``outcome``:
        - "over": took longer than presumed + tolerance, message "+<time>"
        - "under": finished before the presumed duration, message "-<time>"
        - "on_time": within tolerance, empty message
    """
    if presumed_hours is None:
        return None
    presumed_seconds = presumed_hours * 3600
    difference = actual_seconds - presumed_seconds
    allowed = presumed_seconds * tolerance

    if difference > allowed:
        outcome, message = "over", f"+{format_total_time(difference)}"
    elif difference < 0:
        outcome, message = "under", f"-{format_total_time(abs(difference))}"
    else:
        outcome, message = "on_time", ""

    return {
        "presumed_hours": round(presumed_hours, 2),
        "difference_seconds": int(difference),
        "outcome": outcome,
        "message": message,
    }


def percentage_change(current: float, previous: float) -> float:
    """Relative change in percent; from zero it is 100 (growth) or 0 (flat)."""
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return ((current - previous) / previous) * 100


def presumed_from_parts(hours: int, minutes: int) -> Optional[float]:
    """Hours + minutes → fractional hours, None when both are zero."""
    if hours > 0 or minutes > 0:
        return hours + minutes / 60
    return None


# --- Local calendar periods (converted to UTC for queries) ---

def month_start(now: datetime, tz: str) -> datetime:
    local = now.astimezone(ZoneInfo(tz))
    start = datetime.combine(local.date().replace(day=1), time.min, tzinfo=ZoneInfo(tz))
    return start.astimezone(timezone.utc)


def previous_month_start(now: datetime, tz: str) -> datetime:
    local = now.astimezone(ZoneInfo(tz))
    first = local.date().replace(day=1)
    prev_first = (first - timedelta(days=1)).replace(day=1)
    return datetime.combine(prev_first, time.min, tzinfo=ZoneInfo(tz)).astimezone(timezone.utc)


def week_start(now: datetime, tz: str) -> datetime:
    """Monday 00:00 local of the current week."""
    local = now.astimezone(ZoneInfo(tz))
    monday = local.date() - timedelta(days=local.weekday())
    return datetime.combine(monday, time.min, tzinfo=ZoneInfo(tz)).astimezone(timezone.utc)


def day_bounds(start: date, end: date, tz: str) -> tuple[datetime, datetime]:
    """Local start of ``start`` and last microsecond of ``end``, in UTC."""
    zone = ZoneInfo(tz)
    lower = datetime.combine(start, time.min, tzinfo=zone)
    upper = datetime.combine(end, time.max, tzinfo=zone)
    return lower.astimezone(timezone.utc), upper.astimezone(timezone.utc)


def local_date(value: datetime, tz: str) -> date:
    """Calendar date of ``value`` in the configured local zone."""
    return as_utc(value).astimezone(ZoneInfo(tz)).date()
