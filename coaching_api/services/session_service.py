"""
Session service - booking, conflict detection, calendar and ratings.
"""
import calendar
import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional, Dict, List

from sqlmodel import select, col
from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api.core.exceptions import (
    raise_not_found,
    raise_forbidden,
    raise_conflict,
    raise_bad_request,
    raise_validation_error
)
from coaching_api.repositories.session_repo import SessionRepository
from coaching_api.repositories.user_repo import UserRepository
from coaching_api.repositories.goal_repo import GoalRepository
from coaching_api.models.session import CoachingSession, SessionStatuses
from coaching_api.models.user import User, Roles
from coaching_api.models.activity import ActivityTypes
from coaching_api.services.activity_service import ActivityService

logger = logging.getLogger(__name__)

# Fields that change what was billed
BILLING_LOCKED_FIELDS = ("scheduled_at", "duration", "status")


def participant_filter(user: User) -> dict:
    """Coaches and entrepreneurs only see sessions they take part in."""
    if user.role == Roles.COACH:
        return {"coach_id": user.id}
    if user.role == Roles.ENTREPRENEUR:
        return {"entrepreneur_id": user.id}
    return {}


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    start = datetime(year, month, 1)
    days = calendar.monthrange(year, month)[1]
    return start, start + timedelta(days=days)


class SessionService:
    """Service for coaching sessions."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.session_repo = SessionRepository(session)
        self.user_repo = UserRepository(session)
        self.goal_repo = GoalRepository(session)
        self.activity_service = ActivityService(session)

    async def _require_member(self, user_id: uuid.UUID, org_id: uuid.UUID, role: str, field: str) -> User:
        member = await self.user_repo.get_member(user_id, org_id, role=role)
        if not member:
            raise_validation_error(f"Must reference an active {role} of this organization", field)
        return member

    async def _ensure_no_conflict(
        self,
        coach_id: uuid.UUID,
        start: datetime,
        end: datetime,
        exclude_session_id: Optional[uuid.UUID] = None
    ) -> None:
        conflict = await self.session_repo.find_conflict(coach_id, start, end, exclude_session_id)
        if conflict:
            raise_conflict(
                f"Coach already has a session from {conflict.scheduled_at.isoformat()} "
                f"to {conflict.end_time.isoformat()}"
            )

    async def get_session(self, session_id: uuid.UUID, current_user: User) -> CoachingSession:
        coaching_session = await self.session_repo.get_in_org(session_id, current_user.organization_id)
        if not coaching_session:
            raise_not_found("Session", str(session_id))
        for field, value in participant_filter(current_user).items():
            if getattr(coaching_session, field) != value:
                raise_forbidden("You are not a participant of this session")
        return coaching_session

    async def list_sessions(
        self,
        current_user: User,
        status: Optional[str] = None,
        upcoming: Optional[bool] = None,
        page: int = 1,
        limit: int = 20,
        sort: Optional[str] = None
    ) -> dict:
        query = select(CoachingSession)
        if upcoming:
            query = query.where(
                col(CoachingSession.status).in_(SessionStatuses.ACTIVE),
                CoachingSession.scheduled_at >= datetime.utcnow()
            )
            sort = sort or "scheduled_at"
        return await self.session_repo.list_paginated(
            org_id=current_user.organization_id,
            filters={"status": status, **participant_filter(current_user)},
            page=page,
            limit=limit,
            sort=sort or "-scheduled_at",
            query=query
        )

    async def create_session(self, current_user: User, data: dict) -> CoachingSession:
        org_id = current_user.organization_id
        if org_id is None:
            raise_bad_request("Sessions must belong to an organization")
        if current_user.role == Roles.COACH and data["coach_id"] != current_user.id:
            raise_forbidden("Coaches can only book their own sessions")

        await self._require_member(data["coach_id"], org_id, Roles.COACH, "coach_id")
        entrepreneur = await self._require_member(
            data["entrepreneur_id"], org_id, Roles.ENTREPRENEUR, "entrepreneur_id"
        )
        manager_id = data.get("manager_id")
        if manager_id is None and current_user.role == Roles.MANAGER:
            manager_id = current_user.id
        elif manager_id is not None:
            await self._require_member(manager_id, org_id, Roles.MANAGER, "manager_id")

        start = data["scheduled_at"]
        end = CoachingSession.compute_end(start, data["duration"])
        await self._ensure_no_conflict(data["coach_id"], start, end)

        coaching_session = await self.session_repo.create({
            **data,
            "organization_id": org_id,
            "manager_id": manager_id,
            "end_time": end,
            "notes": data.get("notes") or {},
            "status": SessionStatuses.SCHEDULED
        })
        await self.activity_service.log(
            ActivityTypes.SESSION_CREATED,
            f"Session scheduled with {entrepreneur.full_name} on {start.isoformat()}",
            user=current_user,
            session_id=coaching_session.id,
            meta_data={"coach_id": str(coaching_session.coach_id), "duration": coaching_session.duration}
        )
        return coaching_session

    async def check_conflict(
        self,
        current_user: User,
        coach_id: uuid.UUID,
        scheduled_at: datetime,
        duration: int,
        exclude_session_id: Optional[uuid.UUID] = None
    ) -> dict:
        coach = await self.user_repo.get_member(coach_id, current_user.organization_id, role=Roles.COACH)
        if not coach:
            raise_not_found("Coach", str(coach_id))
        end = CoachingSession.compute_end(scheduled_at, duration)
        conflict = await self.session_repo.find_conflict(coach_id, scheduled_at, end, exclude_session_id)
        return {"has_conflict": conflict is not None, "conflicting_session": conflict}

    async def get_calendar(
        self,
        current_user: User,
        month: int,
        year: int,
        coach_id: Optional[uuid.UUID] = None,
        entrepreneur_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None
    ) -> dict:
        """Sessions of a month grouped by day (YYYY-MM-DD)."""
        start, end = month_bounds(year, month)
        filters = {"coach_id": coach_id, "entrepreneur_id": entrepreneur_id, "status": status}
        filters.update(participant_filter(current_user))

        sessions = await self.session_repo.list_in_range(current_user.organization_id, start, end, filters)
        days: Dict[str, List[CoachingSession]] = {}
        for s in sessions:
            days.setdefault(s.scheduled_at.strftime("%Y-%m-%d"), []).append(s)
        return {"month": month, "year": year, "total": len(sessions), "days": days}

    async def update_session(self, session_id: uuid.UUID, current_user: User, data: dict) -> CoachingSession:
        coaching_session = await self.get_session(session_id, current_user)
        if current_user.role == Roles.ENTREPRENEUR:
            raise_forbidden("Entrepreneurs cannot edit sessions")

        changes = {k: v for k, v in data.items() if v is not None}
        if coaching_session.is_billed:
            locked = [
                f for f in BILLING_LOCKED_FIELDS
                if f in changes and changes[f] != getattr(coaching_session, f)
            ]
            if locked:
                raise_conflict(f"Session has been billed; cannot change {', '.join(locked)}")

        if "manager_id" in changes:
            await self._require_member(changes["manager_id"], coaching_session.organization_id, Roles.MANAGER, "manager_id")

        start = changes.get("scheduled_at", coaching_session.scheduled_at)
        duration = changes.get("duration", coaching_session.duration)
        moved = start != coaching_session.scheduled_at or duration != coaching_session.duration
        new_status = changes.get("status", coaching_session.status)

        if moved:
            changes["end_time"] = CoachingSession.compute_end(start, duration)
            if "status" not in changes and coaching_session.status == SessionStatuses.SCHEDULED:
                new_status = changes["status"] = SessionStatuses.RESCHEDULED

        if new_status in SessionStatuses.ACTIVE and (moved or coaching_session.status not in SessionStatuses.ACTIVE):
            await self._ensure_no_conflict(
                coaching_session.coach_id,
                start,
                CoachingSession.compute_end(start, duration),
                exclude_session_id=coaching_session.id
            )

        previous_status = coaching_session.status
        coaching_session = await self.session_repo.save(coaching_session, changes)

        if coaching_session.status != previous_status:
            await self._log_status_change(coaching_session, current_user)
        return coaching_session

    async def _log_status_change(self, coaching_session: CoachingSession, actor: User) -> None:
        if coaching_session.status == SessionStatuses.COMPLETED:
            activity_type, verb = ActivityTypes.SESSION_COMPLETED, "completed"
        elif coaching_session.status == SessionStatuses.CANCELLED:
            activity_type, verb = ActivityTypes.SESSION_CANCELLED, "cancelled"
        else:
            return
        await self.activity_service.log(
            activity_type,
            f"Session on {coaching_session.scheduled_at.isoformat()} {verb}",
            user=actor,
            session_id=coaching_session.id
        )

    async def delete_session(self, session_id: uuid.UUID, current_user: User) -> None:
        coaching_session = await self.get_session(session_id, current_user)
        if coaching_session.is_billed:
            raise_conflict("Session has been billed and cannot be deleted")

        for goal_id in await self.goal_repo.ids_with_session(coaching_session.id):
            goal = await self.goal_repo.get(goal_id)
            remaining = [s for s in goal.linked_session_ids if s != str(coaching_session.id)]
            await self.goal_repo.save(goal, {"linked_session_ids": remaining})

        await self.session_repo.delete(coaching_session.id)
        logger.info(f"Session {session_id} deleted by {current_user.id}")

    async def rate_session(self, session_id: uuid.UUID, current_user: User, score: int, comment: Optional[str]) -> CoachingSession:
        coaching_session = await self.get_session(session_id, current_user)
        if coaching_session.entrepreneur_id != current_user.id:
            raise_forbidden("Only the session's entrepreneur can rate it")
        if coaching_session.status != SessionStatuses.COMPLETED:
            raise_bad_request("Only completed sessions can be rated")
        return await self.session_repo.save(coaching_session, {
            "rating": {
                "score": score,
                "comment": comment,
                "rated_by": str(current_user.id),
                "rated_at": datetime.utcnow().isoformat()
            }
        })
