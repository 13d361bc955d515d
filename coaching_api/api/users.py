"""
User API routes.
"""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api.config import settings
from coaching_api.database import get_session
from coaching_api.services.user_service import UserService
from coaching_api.schemas.user import UserResponse, UserCreate, UserUpdate, RoleName
from coaching_api.core.pagination import PaginatedResponse
from coaching_api.api.deps import get_org_user, require_staff
from coaching_api.models.user import User

router = APIRouter(prefix=f"{settings.API_PREFIX}/users", tags=["users"])


@router.get("", response_model=PaginatedResponse[UserResponse])
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: Optional[RoleName] = None,
    is_active: Optional[bool] = None,
    sort: Optional[str] = None,
    current_user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session)
):
    """List users of the organization."""
    user_service = UserService(session)
    return await user_service.list_users(current_user, role, is_active, page, limit, sort)


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    user_data: UserCreate,
    current_user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session)
):
    user_service = UserService(session)
    return await user_service.create_user(current_user, user_data.model_dump())


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: uuid.UUID,
    current_user: User = Depends(get_org_user),
    session: AsyncSession = Depends(get_session)
):
    user_service = UserService(session)
    return await user_service.get_user(user_id, current_user)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: uuid.UUID,
    update_data: UserUpdate,
    current_user: User = Depends(get_org_user),
    session: AsyncSession = Depends(get_session)
):
    """Update a user; non-staff may only edit their own profile."""
    user_service = UserService(session)
    return await user_service.update_user(
        user_id,
        current_user,
        update_data.model_dump(exclude_unset=True)
    )


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: uuid.UUID,
    current_user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session)
):
    """Deactivate a user (soft delete)."""
    user_service = UserService(session)
    await user_service.deactivate_user(user_id, current_user)
    return Response(status_code=204)
