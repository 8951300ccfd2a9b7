"""Work report endpoints (JSON and CSV export)."""
import csv
import io
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

import services
from auth import require_staff
from db import get_db
from models import Profile
from schemas import WorkReportRow
from utils.money import fmt_money


router = APIRouter(prefix="/api/reports", tags=["reports"])


def _report_rows(db: Session, start_date: date, end_date: date) -> List[dict]:
    if start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")
    return services.work_report(db, start_date, end_date)


@router.get("/work", response_model=List[WorkReportRow])
def work_report(
    start_date: date = Query(..., description="First day (YYYY-MM-DD, local time)"),
    end_date: date = Query(..., description="Last day, inclusive (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    staff: Profile = Depends(require_staff)
):
    """Hours and labour cost per worker for tasks approved in the range."""
    return _report_rows(db, start_date, end_date)


@router.get("/work.csv")
def export_work_csv(
    start_date: date = Query(..., description="First day (YYYY-MM-DD, local time)"),
    end_date: date = Query(..., description="Last day, inclusive (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    staff: Profile = Depends(require_staff)
):
    """
    Work report as CSV.

    Columns: Worker, Tasks, Hours, Cost. A totals row follows when more than
    one worker is listed.
    """
    rows = _report_rows(db, start_date, end_date)

    output = io.StringIO()
    writer = csv.writer(output, delimiter=',', quotechar='"', quoting=csv.QUOTE_MINIMAL)

    writer.writerow(["Worker", "Tasks", "Hours", "Cost"])
    for row in rows:
        writer.writerow([
            row["full_name"],
            row["task_count"],
            f"{row['total_hours']:.2f}",
            fmt_money(row["total_cost"]),
        ])

    if len(rows) > 1:
        totals = services.report_totals(rows)
        writer.writerow([])
        writer.writerow([
            "TOTAL",
            totals["task_count"],
            f"{totals['total_hours']:.2f}",
            fmt_money(totals["total_cost"]),
        ])

    output.seek(0)
    filename = f"work_report_{start_date.isoformat()}_{end_date.isoformat()}.csv"

    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
