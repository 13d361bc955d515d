"""
Goal API routes.
"""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api.config import settings
from coaching_api.database import get_session
from coaching_api.services.goal_service import GoalService
from coaching_api.schemas.goal import (
    GoalCreate,
    GoalUpdate,
    GoalResponse,
    GoalStatusName,
    GoalPriorityName,
    ProgressUpdate,
    MilestoneUpdate,
    CommentCreate,
    CollaboratorCreate
)
from coaching_api.core.pagination import PaginatedResponse
from coaching_api.api.deps import get_org_user, require_staff, require_staff_or_coach
from coaching_api.models.user import User

router = APIRouter(prefix=f"{settings.API_PREFIX}/goals", tags=["goals"])


@router.get("", response_model=PaginatedResponse[GoalResponse])
async def list_goals(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[GoalStatusName] = None,
    priority: Optional[GoalPriorityName] = None,
    include_archived: bool = False,
    sort: Optional[str] = None,
    current_user: User = Depends(get_org_user),
    session: AsyncSession = Depends(get_session)
):
    goal_service = GoalService(session)
    return await goal_service.list_goals(
        current_user, status, priority, include_archived, page, limit, sort
    )


@router.post("", response_model=GoalResponse, status_code=201)
async def create_goal(
    goal_data: GoalCreate,
    current_user: User = Depends(require_staff_or_coach),
    session: AsyncSession = Depends(get_session)
):
    goal_service = GoalService(session)
    return await goal_service.create_goal(current_user, goal_data.model_dump())


@router.get("/{goal_id}", response_model=GoalResponse)
async def get_goal(
    goal_id: uuid.UUID,
    current_user: User = Depends(get_org_user),
    session: AsyncSession = Depends(get_session)
):
    goal_service = GoalService(session)
    return await goal_service.get_goal(goal_id, current_user)


@router.patch("/{goal_id}", response_model=GoalResponse)
async def update_goal(
    goal_id: uuid.UUID,
    update_data: GoalUpdate,
    current_user: User = Depends(get_org_user),
    session: AsyncSession = Depends(get_session)
):
    goal_service = GoalService(session)
    return await goal_service.update_goal(goal_id, current_user, update_data.model_dump(exclude_unset=True))


@router.delete("/{goal_id}", status_code=204)
async def delete_goal(
    goal_id: uuid.UUID,
    current_user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session)
):
    goal_service = GoalService(session)
    await goal_service.delete_goal(goal_id, current_user)
    return Response(status_code=204)


@router.patch("/{goal_id}/progress", response_model=GoalResponse)
async def update_progress(
    goal_id: uuid.UUID,
    request: ProgressUpdate,
    current_user: User = Depends(get_org_user),
    session: AsyncSession = Depends(get_session)
):
    """Record progress; 100 completes the goal."""
    goal_service = GoalService(session)
    return await goal_service.update_progress(goal_id, current_user, request.progress, request.note)


@router.patch("/{goal_id}/milestones/{milestone_id}", response_model=GoalResponse)
async def update_milestone(
    goal_id: uuid.UUID,
    milestone_id: str,
    request: MilestoneUpdate,
    current_user: User = Depends(get_org_user),
    session: AsyncSession = Depends(get_session)
):
    """Change a milestone status; goal progress follows the milestones."""
    goal_service = GoalService(session)
    return await goal_service.update_milestone(goal_id, milestone_id, current_user, request.status, request.notes)


@router.post("/{goal_id}/comments", response_model=GoalResponse, status_code=201)
async def add_comment(
    goal_id: uuid.UUID,
    request: CommentCreate,
    current_user: User = Depends(get_org_user),
    session: AsyncSession = Depends(get_session)
):
    goal_service = GoalService(session)
    return await goal_service.add_comment(goal_id, current_user, request.text)


@router.post("/{goal_id}/collaborators", response_model=GoalResponse, status_code=201)
async def add_collaborator(
    goal_id: uuid.UUID,
    request: CollaboratorCreate,
    current_user: User = Depends(require_staff_or_coach),
    session: AsyncSession = Depends(get_session)
):
    goal_service = GoalService(session)
    return await goal_service.add_collaborator(goal_id, current_user, request.user_id, request.role)


@router.post("/{goal_id}/sessions/{session_id}", response_model=GoalResponse)
async def link_session(
    goal_id: uuid.UUID,
    session_id: uuid.UUID,
    current_user: User = Depends(require_staff_or_coach),
    session: AsyncSession = Depends(get_session)
):
    """Link a coaching session to the goal."""
    goal_service = GoalService(session)
    return await goal_service.link_session(goal_id, session_id, current_user)
