"""
Activity repository.
"""
import uuid
from typing import Optional, List, Dict
from datetime import datetime

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import func

from coaching_api.models.activity import Activity
from coaching_api.models.user import User
from coaching_api.repositories.base import BaseRepository


class ActivityRepository(BaseRepository[Activity]):
    """Repository for Activity operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Activity, session)

    async def log(
        self,
        activity_type: str,
        description: str,
        org_id: Optional[uuid.UUID] = None,
        user: Optional[User] = None,
        session_id: Optional[uuid.UUID] = None,
        payment_id: Optional[uuid.UUID] = None,
        amount: Optional[float] = None,
        meta_data: Optional[dict] = None
    ) -> Activity:
        """Create an activity entry."""
        activity = Activity(
            organization_id=org_id if org_id is not None else getattr(user, "organization_id", None),
            activity_type=activity_type,
            user_id=user.id if user else None,
            user_name=user.full_name if user else None,
            user_email=user.email if user else None,
            user_role=user.role if user else None,
            session_id=session_id,
            payment_id=payment_id,
            amount=amount,
            description=description,
            meta_data=meta_data or {}
        )
        self.session.add(activity)
        await self.session.commit()
        await self.session.refresh(activity)
        return activity

    def _filtered(
        self,
        query,
        org_id: Optional[uuid.UUID],
        activity_type: Optional[str],
        start_date: Optional[datetime],
        end_date: Optional[datetime]
    ):
        if org_id is not None:
            query = query.where(Activity.organization_id == org_id)
        if activity_type:
            query = query.where(Activity.activity_type == activity_type)
        if start_date:
            query = query.where(Activity.created_at >= start_date)
        if end_date:
            query = query.where(Activity.created_at < end_date)
        return query

    async def feed(
        self,
        org_id: Optional[uuid.UUID],
        limit: int = 50,
        skip: int = 0,
        activity_type: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> tuple[List[Activity], int]:
        """Newest-first slice of the feed plus the total matching count."""
        count_query = self._filtered(
            select(func.count()).select_from(Activity), org_id, activity_type, start_date, end_date
        )
        total = (await self.session.exec(count_query)).one()

        query = self._filtered(select(Activity), org_id, activity_type, start_date, end_date)
        query = query.order_by(Activity.created_at.desc()).offset(skip).limit(limit)
        result = await self.session.exec(query)
        return list(result.all()), total

    async def count_by_type(
        self,
        org_id: Optional[uuid.UUID],
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> Dict[str, int]:
        """Get activity counts grouped by type."""
        query = self._filtered(
            select(Activity.activity_type, func.count(Activity.id)),
            org_id, None, start_date, end_date
        ).group_by(Activity.activity_type)
        result = await self.session.exec(query)
        return {activity_type: count for activity_type, count in result.all()}
