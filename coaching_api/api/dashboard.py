"""
Dashboard API routes.
"""
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api.config import settings
from coaching_api.database import get_session
from coaching_api.services.dashboard_service import DashboardService
from coaching_api.api.deps import require_staff_or_coach
from coaching_api.models.user import User

router = APIRouter(prefix=f"{settings.API_PREFIX}/dashboard", tags=["dashboard"])

RangeName = Literal["week", "month", "year"]


@router.get("/stats")
async def get_dashboard_stats(
    current_user: User = Depends(require_staff_or_coach),
    session: AsyncSession = Depends(get_session)
):
    """Get dashboard statistics."""
    dashboard_service = DashboardService(session)
    return await dashboard_service.get_stats(current_user)


@router.get("/sessions")
async def get_sessions_chart(
    range: RangeName = Query("week"),
    current_user: User = Depends(require_staff_or_coach),
    session: AsyncSession = Depends(get_session)
):
    """Sessions per day over the selected range."""
    dashboard_service = DashboardService(session)
    return await dashboard_service.get_sessions_series(current_user, range)


@router.get("/goals-category")
async def get_goals_chart(
    current_user: User = Depends(require_staff_or_coach),
    session: AsyncSession = Depends(get_session)
):
    dashboard_service = DashboardService(session)
    return await dashboard_service.get_goals_breakdown(current_user)


@router.get("/revenue")
async def get_revenue_chart(
    range: RangeName = Query("month"),
    current_user: User = Depends(require_staff_or_coach),
    session: AsyncSession = Depends(get_session)
):
    """Paid revenue per day over the selected range."""
    dashboard_service = DashboardService(session)
    return await dashboard_service.get_revenue_series(current_user, range)
