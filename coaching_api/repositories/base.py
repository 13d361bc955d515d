"""
Base repository with generic CRUD operations.
"""
import uuid
from typing import TypeVar, Generic, Type, Optional, List
from datetime import datetime

from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import func

from coaching_api.core.pagination import create_paginated_response, parse_sort

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository with CRUD operations.
    Inherit and specify the model class.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    def _scoped(self, query, org_id: Optional[uuid.UUID], filters: Optional[dict]):
        # Filter by organization if model is tenant scoped
        if org_id and hasattr(self.model, 'organization_id'):
            query = query.where(self.model.organization_id == org_id)

        if filters:
            for field, value in filters.items():
                if hasattr(self.model, field) and value is not None:
                    query = query.where(getattr(self.model, field) == value)
        return query

    async def create(self, obj_in: dict, commit: bool = True) -> ModelType:
        """Create a new record."""
        db_obj = self.model(**obj_in)
        self.session.add(db_obj)
        if commit:
            await self.session.commit()
            await self.session.refresh(db_obj)
        else:
            await self.session.flush()
        return db_obj

    async def get(self, id: uuid.UUID) -> Optional[ModelType]:
        """Get a record by ID."""
        return await self.session.get(self.model, id)

    async def get_in_org(self, id: uuid.UUID, org_id: Optional[uuid.UUID]) -> Optional[ModelType]:
        """Get a record by ID, treating records of other tenants as missing."""
        db_obj = await self.get(id)
        if db_obj is None:
            return None
        if org_id is not None and getattr(db_obj, "organization_id", None) != org_id:
            return None
        return db_obj

    async def list(
        self,
        org_id: Optional[uuid.UUID] = None,
        filters: Optional[dict] = None,
        sort: Optional[str] = None
    ) -> List[ModelType]:
        """List all records with optional filters."""
        query = self._scoped(select(self.model), org_id, filters)
        query = query.order_by(*parse_sort(self.model, sort))

        result = await self.session.exec(query)
        return list(result.all())

    async def list_paginated(
        self,
        org_id: Optional[uuid.UUID] = None,
        filters: Optional[dict] = None,
        page: int = 1,
        limit: int = 20,
        sort: Optional[str] = None,
        query=None
    ) -> dict:
        """List records with pagination."""
        # Build base query
        if query is None:
            query = select(self.model)
        query = self._scoped(query, org_id, filters)

        # Get total count
        count_query = select(func.count()).select_from(query.subquery())
        total_result = await self.session.exec(count_query)
        total = total_result.one()

        # Apply ordering
        query = query.order_by(*parse_sort(self.model, sort))

        # Apply pagination
        offset = (page - 1) * limit
        query = query.offset(offset).limit(limit)

        result = await self.session.exec(query)
        items = list(result.all())

        return create_paginated_response(items, total, page, limit)

    async def save(self, db_obj: ModelType, changes: Optional[dict] = None) -> ModelType:
        """Apply changes (None values included) to a loaded record and commit."""
        for field, value in (changes or {}).items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        # Update timestamp if exists
        if hasattr(db_obj, 'updated_at'):
            db_obj.updated_at = datetime.utcnow()

        self.session.add(db_obj)
        await self.session.commit()
        await self.session.refresh(db_obj)
        return db_obj

    async def delete(self, id: uuid.UUID) -> bool:
        """Delete a record."""
        db_obj = await self.get(id)
        if not db_obj:
            return False

        await self.session.delete(db_obj)
        await self.session.commit()
        return True

    async def count(self, org_id: Optional[uuid.UUID] = None, filters: Optional[dict] = None) -> int:
        """Count records."""
        query = self._scoped(select(func.count()).select_from(self.model), org_id, filters)
        result = await self.session.exec(query)
        return result.one()
