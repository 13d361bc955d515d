"""
Goal repository.
"""
import uuid
from typing import Optional, Dict

from sqlmodel import select, or_
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import func, String, cast

from coaching_api.models.goal import Goal
from coaching_api.repositories.base import BaseRepository


class GoalRepository(BaseRepository[Goal]):
    """Repository for Goal operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Goal, session)

    def visible_to(self, query, user_id: uuid.UUID, owner_field: str):
        """
        Restrict to goals the user owns (via ``owner_field``) or collaborates on.
        Collaborators live in a JSON list, so the match is on its text form.
        """
        return query.where(or_(
            getattr(Goal, owner_field) == user_id,
            cast(Goal.collaborators, String).like(f'%"{user_id}"%')
        ))

    async def list_for_user(
        self,
        org_id: uuid.UUID,
        filters: dict,
        page: int,
        limit: int,
        sort: Optional[str],
        include_archived: bool = False,
        owner_field: Optional[str] = None,
        user_id: Optional[uuid.UUID] = None
    ) -> dict:
        query = select(Goal)
        if not include_archived:
            query = query.where(Goal.is_archived == False)  # noqa: E712
        if owner_field and user_id:
            query = self.visible_to(query, user_id, owner_field)
        return await self.list_paginated(
            org_id=org_id, filters=filters, page=page, limit=limit, sort=sort, query=query
        )

    async def count_grouped(self, org_id: uuid.UUID, field: str, filters: Optional[dict] = None) -> Dict[str, int]:
        """Count non-archived goals grouped by a column."""
        column = getattr(Goal, field)
        query = self._scoped(select(column, func.count(Goal.id)), org_id, filters).where(
            Goal.is_archived == False  # noqa: E712
        ).group_by(column)
        result = await self.session.exec(query)
        return {key: count for key, count in result.all()}

    async def ids_with_session(self, session_id: uuid.UUID):
        query = select(Goal.id).where(
            cast(Goal.linked_session_ids, String).like(f'%"{session_id}"%')
        )
        result = await self.session.exec(query)
        return list(result.all())
