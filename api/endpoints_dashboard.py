"""
Dashboard API endpoint for FieldLedger.

Staff (admin, supervisor) get month-over-month KPIs for the whole company;
workers get their own assigned demands, hours and labour cost.
"""
from typing import Union

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import services
from auth import get_current_profile
from db import get_db
from models import Profile
from schemas import AdminStatsOut, UserStatsOut

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("", response_model=Union[AdminStatsOut, UserStatsOut])
def get_dashboard(
    session: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_profile)
):
    """
    Role-dependent dashboard statistics.

    Returns (staff):
        - totalDemands, completedTasks, delayedDemands: current month so far
        - totalUsers: all profiles
        - changes: percentage change of each monthly KPI vs previous month

    Returns (user):
        - assignedDemands
        - completedTasksMonth, totalHoursMonth, totalCostMonth
        - totalCostWeek: since Monday 00:00 local
    """
    if current_user.is_staff:
        return AdminStatsOut(**services.admin_stats(session))
    return UserStatsOut(**services.user_stats(session, current_user))
