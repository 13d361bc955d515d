"""
Coaching session repository.
"""
import uuid
from typing import Optional, List
from datetime import datetime

from sqlmodel import select, col
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import func, update

from coaching_api.models.session import CoachingSession, SessionStatuses
from coaching_api.repositories.base import BaseRepository


class SessionRepository(BaseRepository[CoachingSession]):
    """Repository for CoachingSession operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(CoachingSession, session)

    async def find_conflict(
        self,
        coach_id: uuid.UUID,
        start: datetime,
        end: datetime,
        exclude_session_id: Optional[uuid.UUID] = None
    ) -> Optional[CoachingSession]:
        """
        First active session of the coach whose window overlaps [start, end).
        """
        query = select(CoachingSession).where(
            CoachingSession.coach_id == coach_id,
            col(CoachingSession.status).in_(SessionStatuses.ACTIVE),
            CoachingSession.overlapping(start, end)
        )
        if exclude_session_id:
            query = query.where(CoachingSession.id != exclude_session_id)
        query = query.order_by(CoachingSession.scheduled_at)
        result = await self.session.exec(query)
        return result.first()

    async def get_many_in_org(self, ids: List[uuid.UUID], org_id: uuid.UUID) -> List[CoachingSession]:
        if not ids:
            return []
        query = select(CoachingSession).where(
            col(CoachingSession.id).in_(ids),
            CoachingSession.organization_id == org_id
        )
        result = await self.session.exec(query)
        return list(result.all())

    async def list_in_range(
        self,
        org_id: uuid.UUID,
        start: datetime,
        end: datetime,
        filters: Optional[dict] = None
    ) -> List[CoachingSession]:
        """Sessions starting within [start, end), oldest first."""
        query = self._scoped(select(CoachingSession), org_id, filters).where(
            CoachingSession.scheduled_at >= start,
            CoachingSession.scheduled_at < end
        ).order_by(CoachingSession.scheduled_at)
        result = await self.session.exec(query)
        return list(result.all())

    async def count_upcoming(self, org_id: uuid.UUID, filters: Optional[dict] = None) -> int:
        query = self._scoped(select(func.count()).select_from(CoachingSession), org_id, filters).where(
            col(CoachingSession.status).in_(SessionStatuses.ACTIVE),
            CoachingSession.scheduled_at >= datetime.utcnow()
        )
        result = await self.session.exec(query)
        return result.one()

    async def mark_billed(self, session_ids: List[uuid.UUID], payment_id: uuid.UUID) -> int:
        """
        Attach sessions to a payment, skipping any already billed.
        Returns the number of rows claimed; the caller compares it to
        ``len(session_ids)`` and rolls back on mismatch. Does not commit.
        """
        stmt = (
            update(CoachingSession)
            .where(
                col(CoachingSession.id).in_(session_ids),
                col(CoachingSession.payment_id).is_(None)
            )
            .values(payment_id=payment_id, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.exec(stmt)
        return result.rowcount

    async def release_billed(self, payment_id: uuid.UUID) -> int:
        """Detach every session from a payment so it can be billed again. Does not commit."""
        stmt = (
            update(CoachingSession)
            .where(CoachingSession.payment_id == payment_id)
            .values(payment_id=None, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.exec(stmt)
        return result.rowcount
