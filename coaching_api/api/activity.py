"""
Admin activity feed API routes.
"""
from typing import Optional, Dict

from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api.config import settings
from coaching_api.database import get_session
from coaching_api.services.activity_service import ActivityService
from coaching_api.schemas.activity import ActivityFeedResponse
from coaching_api.api.deps import require_roles
from coaching_api.models.user import User, Roles

router = APIRouter(prefix=f"{settings.API_PREFIX}/admin/activity", tags=["activity"])

require_feed_access = require_roles(*Roles.STAFF, allow_platform_admin=True)


@router.get("", response_model=ActivityFeedResponse)
async def get_activity_feed(
    limit: int = Query(50, ge=1, le=100),
    skip: int = Query(0, ge=0),
    activity_type: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    current_user: User = Depends(require_feed_access),
    session: AsyncSession = Depends(get_session)
):
    """Newest-first audit log."""
    activity_service = ActivityService(session)
    return await activity_service.get_feed(
        current_user,
        limit=limit,
        skip=skip,
        activity_type=activity_type,
        start_date=start_date,
        end_date=end_date
    )


@router.get("/stats", response_model=Dict[str, int])
async def get_activity_stats(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    current_user: User = Depends(require_feed_access),
    session: AsyncSession = Depends(get_session)
):
    activity_service = ActivityService(session)
    return await activity_service.get_stats(current_user, start_date, end_date)
