"""
User and Organization repositories.
"""
import uuid
from typing import Optional
from datetime import datetime

from sqlmodel import select, or_
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import func

from coaching_api.core.pagination import create_paginated_response
from coaching_api.models.user import User, Organization, Roles
from coaching_api.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        query = select(User).where(User.email == email.lower())
        result = await self.session.exec(query)
        return result.first()

    async def update_last_login(self, user: User) -> None:
        """Update user's last login timestamp."""
        user.last_login_at = datetime.utcnow()
        self.session.add(user)
        await self.session.commit()

    async def count_by_role(self, org_id: uuid.UUID, role: str) -> int:
        """Count users of an organization holding a single role."""
        query = select(func.count()).select_from(User).where(
            User.organization_id == org_id,
            User.role == role,
        )
        result = await self.session.exec(query)
        return result.one()

    async def count_non_admins(self, org_id: uuid.UUID) -> int:
        query = select(func.count()).select_from(User).where(
            User.organization_id == org_id,
            User.role != Roles.ADMIN
        )
        result = await self.session.exec(query)
        return result.one()

    async def get_member(
        self,
        user_id: uuid.UUID,
        org_id: uuid.UUID,
        role: Optional[str] = None,
        active_only: bool = True
    ) -> Optional[User]:
        """Get a user that belongs to the organization (and has the role, if given)."""
        query = select(User).where(User.id == user_id, User.organization_id == org_id)
        if role:
            query = query.where(User.role == role)
        if active_only:
            query = query.where(User.is_active == True)  # noqa: E712
        result = await self.session.exec(query)
        return result.first()

class OrganizationRepository(BaseRepository[Organization]):
    """Repository for Organization operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Organization, session)

    async def get_by_slug(self, slug: str) -> Optional[Organization]:
        """Get organization by slug."""
        query = select(Organization).where(Organization.slug == slug)
        result = await self.session.exec(query)
        return result.first()

    async def search(
        self,
        page: int = 1,
        limit: int = 20,
        is_active: Optional[bool] = None,
        subscription_plan: Optional[str] = None,
        subscription_status: Optional[str] = None,
        search: Optional[str] = None
    ) -> dict:
        """Filtered, paginated listing for platform admins."""
        query = select(Organization)
        if is_active is not None:
            query = query.where(Organization.is_active == is_active)
        if subscription_plan:
            query = query.where(Organization.subscription_plan == subscription_plan)
        if subscription_status:
            query = query.where(Organization.subscription_status == subscription_status)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(or_(
                func.lower(Organization.name).like(pattern),
                func.lower(Organization.slug).like(pattern),
                func.lower(func.coalesce(Organization.billing_email, "")).like(pattern),
            ))

        total_result = await self.session.exec(select(func.count()).select_from(query.subquery()))
        total = total_result.one()

        query = query.order_by(Organization.created_at.desc()).offset((page - 1) * limit).limit(limit)
        result = await self.session.exec(query)
        return create_paginated_response(list(result.all()), total, page, limit)
