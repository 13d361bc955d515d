"""
Coaching session API routes.
"""
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api.config import settings
from coaching_api.database import get_session
from coaching_api.services.session_service import SessionService
from coaching_api.schemas.session import (
    SessionCreate,
    SessionUpdate,
    SessionResponse,
    SessionStatusName,
    ConflictCheckRequest,
    ConflictCheckResponse,
    RateSessionRequest,
    CalendarResponse
)
from coaching_api.core.pagination import PaginatedResponse
from coaching_api.api.deps import get_org_user, require_staff, require_staff_or_coach
from coaching_api.models.user import User

router = APIRouter(prefix=f"{settings.API_PREFIX}/sessions", tags=["sessions"])


@router.get("", response_model=PaginatedResponse[SessionResponse])
async def list_sessions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[SessionStatusName] = None,
    upcoming: Optional[bool] = None,
    sort: Optional[str] = None,
    current_user: User = Depends(get_org_user),
    session: AsyncSession = Depends(get_session)
):
    """List sessions visible to the caller."""
    session_service = SessionService(session)
    return await session_service.list_sessions(current_user, status, upcoming, page, limit, sort)


@router.post("", response_model=SessionResponse, status_code=201)
async def create_session(
    session_data: SessionCreate,
    current_user: User = Depends(require_staff_or_coach),
    session: AsyncSession = Depends(get_session)
):
    """Book a session; the coach must be free for the whole window."""
    session_service = SessionService(session)
    return await session_service.create_session(current_user, session_data.model_dump())


@router.post("/check-conflict", response_model=ConflictCheckResponse)
async def check_conflict(
    request: ConflictCheckRequest,
    current_user: User = Depends(require_staff_or_coach),
    session: AsyncSession = Depends(get_session)
):
    session_service = SessionService(session)
    return await session_service.check_conflict(
        current_user,
        request.coach_id,
        request.scheduled_at,
        request.duration,
        request.exclude_session_id
    )


@router.get("/calendar", response_model=CalendarResponse)
async def get_calendar(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1970, le=9999),
    coach_id: Optional[uuid.UUID] = None,
    entrepreneur_id: Optional[uuid.UUID] = None,
    status: Optional[SessionStatusName] = None,
    current_user: User = Depends(get_org_user),
    session: AsyncSession = Depends(get_session)
):
    """Sessions of one month grouped by day. Defaults to the current month."""
    now = datetime.utcnow()
    session_service = SessionService(session)
    return await session_service.get_calendar(
        current_user,
        month or now.month,
        year or now.year,
        coach_id=coach_id,
        entrepreneur_id=entrepreneur_id,
        status=status
    )


@router.get("/{session_id}", response_model=SessionResponse)
async def get_coaching_session(
    session_id: uuid.UUID,
    current_user: User = Depends(get_org_user),
    session: AsyncSession = Depends(get_session)
):
    session_service = SessionService(session)
    return await session_service.get_session(session_id, current_user)


@router.patch("/{session_id}", response_model=SessionResponse)
async def update_session(
    session_id: uuid.UUID,
    update_data: SessionUpdate,
    current_user: User = Depends(require_staff_or_coach),
    session: AsyncSession = Depends(get_session)
):
    """Edit or reschedule a session."""
    session_service = SessionService(session)
    return await session_service.update_session(
        session_id,
        current_user,
        update_data.model_dump(exclude_unset=True)
    )


@router.delete("/{session_id}", status_code=204)
async def delete_session(
    session_id: uuid.UUID,
    current_user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session)
):
    session_service = SessionService(session)
    await session_service.delete_session(session_id, current_user)
    return Response(status_code=204)


@router.post("/{session_id}/rate", response_model=SessionResponse)
async def rate_session(
    session_id: uuid.UUID,
    request: RateSessionRequest,
    current_user: User = Depends(get_org_user),
    session: AsyncSession = Depends(get_session)
):
    """Rate a completed session (the session's entrepreneur only)."""
    session_service = SessionService(session)
    return await session_service.rate_session(session_id, current_user, request.score, request.comment)
