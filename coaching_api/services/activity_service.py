"""
Activity service - audit logging and the admin activity feed.
"""
import logging
import re
import uuid
from datetime import datetime, timedelta
from typing import Optional, Dict

from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api.repositories.activity_repo import ActivityRepository
from coaching_api.models.activity import Activity
from coaching_api.models.user import User

logger = logging.getLogger(__name__)

MAX_FEED_LIMIT = 100
DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date_param(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO date/datetime query value; unparseable values are ignored."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Ignoring unparseable date filter: {value!r}")
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.replace(tzinfo=None) - parsed.utcoffset()
    return parsed


def parse_end_date_param(value: Optional[str]) -> Optional[datetime]:
    """
    Exclusive upper bound for a date filter. A bare ``YYYY-MM-DD`` covers
    that whole day, so it becomes the following midnight.
    """
    parsed = parse_date_param(value)
    if parsed is not None and DATE_ONLY.match(value.strip()):
        parsed += timedelta(days=1)
    return parsed


class ActivityService:
    """Service for activity logging."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.activity_repo = ActivityRepository(session)

    async def log(
        self,
        activity_type: str,
        description: str,
        user: Optional[User] = None,
        org_id: Optional[uuid.UUID] = None,
        session_id: Optional[uuid.UUID] = None,
        payment_id: Optional[uuid.UUID] = None,
        amount: Optional[float] = None,
        meta_data: Optional[dict] = None
    ) -> Activity:
        """Log an activity."""
        logger.info(f"{activity_type}: {description}")
        return await self.activity_repo.log(
            activity_type=activity_type,
            description=description,
            org_id=org_id,
            user=user,
            session_id=session_id,
            payment_id=payment_id,
            amount=amount,
            meta_data=meta_data
        )

    async def get_feed(
        self,
        current_user: User,
        limit: int = 50,
        skip: int = 0,
        activity_type: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> dict:
        """
        Newest-first activity feed.
        Platform admins see every organization; everyone else only their own.
        """
        limit = max(1, min(limit, MAX_FEED_LIMIT))
        skip = max(0, skip)
        org_id = None if current_user.is_platform_admin else current_user.organization_id

        items, total = await self.activity_repo.feed(
            org_id=org_id,
            limit=limit,
            skip=skip,
            activity_type=activity_type,
            start_date=parse_date_param(start_date),
            end_date=parse_end_date_param(end_date)
        )
        return {
            "items": items,
            "pagination": {
                "total": total,
                "limit": limit,
                "skip": skip,
                "has_more": skip + len(items) < total
            }
        }

    async def get_stats(
        self,
        current_user: User,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> Dict[str, int]:
        """Activity counts by type."""
        org_id = None if current_user.is_platform_admin else current_user.organization_id
        return await self.activity_repo.count_by_type(
            org_id,
            start_date=parse_date_param(start_date),
            end_date=parse_end_date_param(end_date)
        )
