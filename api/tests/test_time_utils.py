"""Duration, presumed-time and period helpers."""
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from utils.time import (
    calculate_total_duration,
    compare_to_presumed,
    day_bounds,
    format_hms,
    format_total_time,
    month_start,
    percentage_change,
    presumed_from_parts,
    previous_month_start,
    week_start,
)

T0 = datetime(2026, 3, 10, 8, 0, tzinfo=timezone.utc)


def _task(start_offset_s=None, end_offset_s=None):
    return SimpleNamespace(
        started_at=T0 + timedelta(seconds=start_offset_s) if start_offset_s is not None else None,
        completed_at=T0 + timedelta(seconds=end_offset_s) if end_offset_s is not None else None,
    )


def test_total_duration_skips_unfinished_tasks():
    tasks = [_task(0, 3600), _task(0, 1800.9), _task(0, None), _task(None, None)]

    # Partial seconds are floored per task
    assert calculate_total_duration(tasks) == 5400


def test_total_duration_handles_empty_input():
    assert calculate_total_duration(None) == 0
    assert calculate_total_duration([]) == 0


def test_total_duration_accepts_naive_db_values():
    naive = SimpleNamespace(started_at=datetime(2026, 3, 10, 8, 0), completed_at=T0 + timedelta(minutes=5))

    assert calculate_total_duration([naive]) == 300


@pytest.mark.parametrize("seconds,expected", [
    (0, "0m"),
    (0.5, "0m"),
    (59, "0m"),
    (2700, "45m"),
    (7500, "2h 5m"),
    (3600, "1h 0m"),
])
def test_format_total_time(seconds, expected):
    assert format_total_time(seconds) == expected


def test_format_hms():
    assert format_hms(0) == "00:00:00"
    assert format_hms(3725) == "01:02:05"
    assert format_hms(100 * 3600) == "100:00:00"


def test_compare_to_presumed_outcomes():
    over = compare_to_presumed(2 * 3600, 1.5)
    assert over["outcome"] == "over"
    assert over["message"] == "+30m"
    assert over["difference_seconds"] == 1800

    # 10% over a one-hour estimate is within the 15% tolerance
    on_time = compare_to_presumed(3960, 1.0)
    assert on_time["outcome"] == "on_time"
    assert on_time["message"] == ""

    under = compare_to_presumed(2700, 1.0)
    assert under["outcome"] == "under"
    assert under["message"] == "-15m"


def test_compare_to_presumed_without_estimate():
    assert compare_to_presumed(3600, None) is None


def test_percentage_change():
    assert percentage_change(15, 10) == pytest.approx(50.0)
    assert percentage_change(5, 10) == pytest.approx(-50.0)
    assert percentage_change(3, 0) == 100.0
    assert percentage_change(0, 0) == 0.0


def test_presumed_from_parts():
    assert presumed_from_parts(1, 30) == pytest.approx(1.5)
    assert presumed_from_parts(0, 45) == pytest.approx(0.75)
    assert presumed_from_parts(0, 0) is None


def test_local_periods_in_utc():
    now = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)  # Sunday
    tz = "America/Sao_Paulo"

    assert month_start(now, tz) == datetime(2026, 3, 1, 3, 0, tzinfo=timezone.utc)
    assert previous_month_start(now, tz) == datetime(2026, 2, 1, 3, 0, tzinfo=timezone.utc)
    assert week_start(now, tz) == datetime(2026, 3, 9, 3, 0, tzinfo=timezone.utc)


def test_month_start_uses_local_calendar():
    # 01:00 UTC on April 1st is still March 31st in Sao Paulo
    now = datetime(2026, 4, 1, 1, 0, tzinfo=timezone.utc)

    assert month_start(now, "America/Sao_Paulo") == datetime(2026, 3, 1, 3, 0, tzinfo=timezone.utc)
    assert previous_month_start(datetime(2026, 1, 10, tzinfo=timezone.utc), "UTC") == datetime(
        2025, 12, 1, tzinfo=timezone.utc
    )


def test_day_bounds_inclusive():
    lower, upper = day_bounds(date(2026, 3, 1), date(2026, 3, 31), "America/Sao_Paulo")

    assert lower == datetime(2026, 3, 1, 3, 0, tzinfo=timezone.utc)
    assert upper == datetime(2026, 4, 1, 2, 59, 59, 999999, tzinfo=timezone.utc)
