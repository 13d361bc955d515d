"""
Goal service - goals, milestones, progress log, comments and collaborators.
"""
import uuid
from datetime import datetime
from typing import Optional, List

from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api.core.exceptions import (
    raise_not_found,
    raise_forbidden,
    raise_already_exists,
    raise_validation_error
)
from coaching_api.repositories.goal_repo import GoalRepository
from coaching_api.repositories.user_repo import UserRepository
from coaching_api.repositories.session_repo import SessionRepository
from coaching_api.models.goal import Goal, GoalStatuses, MilestoneStatuses, milestone_progress
from coaching_api.models.user import User, Roles


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def build_milestone(data: dict) -> dict:
    """JSON-ready milestone with a generated id."""
    completed = data.get("status") == MilestoneStatuses.COMPLETED
    return {
        "id": str(uuid.uuid4()),
        "title": data["title"],
        "status": data.get("status") or MilestoneStatuses.PENDING,
        "target_date": _iso(data.get("target_date")),
        "completed_at": datetime.utcnow().isoformat() if completed else None,
        "notes": data.get("notes"),
    }


class GoalService:
    """Service for goal operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.goal_repo = GoalRepository(session)
        self.user_repo = UserRepository(session)
        self.session_repo = SessionRepository(session)

    async def get_goal(self, goal_id: uuid.UUID, current_user: User) -> Goal:
        """Goals of other tenants are not found; goals the caller is not part of are forbidden."""
        goal = await self.goal_repo.get_in_org(goal_id, current_user.organization_id)
        if not goal:
            raise_not_found("Goal", str(goal_id))
        if current_user.role not in Roles.STAFF and not goal.involves(current_user.id):
            raise_forbidden("You do not have access to this goal")
        return goal

    async def list_goals(
        self,
        current_user: User,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        include_archived: bool = False,
        page: int = 1,
        limit: int = 20,
        sort: Optional[str] = None
    ) -> dict:
        owner_field = None
        if current_user.role == Roles.ENTREPRENEUR:
            owner_field = "entrepreneur_id"
        elif current_user.role == Roles.COACH:
            owner_field = "coach_id"
        return await self.goal_repo.list_for_user(
            org_id=current_user.organization_id,
            filters={"status": status, "priority": priority},
            page=page,
            limit=limit,
            sort=sort,
            include_archived=include_archived,
            owner_field=owner_field,
            user_id=current_user.id
        )

    async def _validate_people(self, org_id: uuid.UUID, entrepreneur_id=None, coach_id=None) -> None:
        if entrepreneur_id and not await self.user_repo.get_member(entrepreneur_id, org_id, Roles.ENTREPRENEUR):
            raise_validation_error("Must reference an active entrepreneur of this organization", "entrepreneur_id")
        if coach_id and not await self.user_repo.get_member(coach_id, org_id, Roles.COACH):
            raise_validation_error("Must reference an active coach of this organization", "coach_id")

    async def create_goal(self, current_user: User, data: dict) -> Goal:
        org_id = current_user.organization_id
        if current_user.role == Roles.COACH and data.get("coach_id") is None:
            data["coach_id"] = current_user.id
        await self._validate_people(org_id, data["entrepreneur_id"], data.get("coach_id"))

        milestones = [build_milestone(m) for m in data.pop("milestones", None) or []]
        return await self.goal_repo.create({
            **data,
            "organization_id": org_id,
            "milestones": milestones
        })

    async def update_goal(self, goal_id: uuid.UUID, current_user: User, data: dict) -> Goal:
        goal = await self.get_goal(goal_id, current_user)
        changes = {k: v for k, v in data.items() if v is not None}

        if current_user.role == Roles.ENTREPRENEUR and ({"coach_id", "entrepreneur_id"} & set(changes)):
            raise_forbidden("Entrepreneurs cannot reassign goals")
        await self._validate_people(goal.organization_id, changes.get("entrepreneur_id"), changes.get("coach_id"))

        if "milestones" in changes:
            changes["milestones"] = [build_milestone(m) for m in changes["milestones"]]
            if changes["milestones"]:
                changes["progress"] = milestone_progress(changes["milestones"])

        if "status" in changes and changes["status"] != goal.status:
            changes["update_log"] = goal.update_log + [
                self._log_entry("status", goal.status, changes["status"], current_user)
            ]
        return await self.goal_repo.save(goal, changes)

    async def delete_goal(self, goal_id: uuid.UUID, current_user: User) -> None:
        goal = await self.get_goal(goal_id, current_user)
        await self.goal_repo.delete(goal.id)

    def _log_entry(self, field: str, old, new, user: User, note: Optional[str] = None) -> dict:
        entry = {
            "field": field,
            "old_value": old,
            "new_value": new,
            "updated_by": str(user.id),
            "updated_at": datetime.utcnow().isoformat(),
        }
        if note:
            entry["note"] = note
        return entry

    async def update_progress(self, goal_id: uuid.UUID, current_user: User, progress: int, note: Optional[str] = None) -> Goal:
        goal = await self.get_goal(goal_id, current_user)
        changes = {
            "progress": progress,
            "update_log": goal.update_log + [self._log_entry("progress", goal.progress, progress, current_user, note)]
        }
        if progress == 100:
            changes["status"] = GoalStatuses.COMPLETED
        elif progress > 0 and goal.status == GoalStatuses.NOT_STARTED:
            changes["status"] = GoalStatuses.IN_PROGRESS
        return await self.goal_repo.save(goal, changes)

    async def update_milestone(
        self,
        goal_id: uuid.UUID,
        milestone_id: str,
        current_user: User,
        status: str,
        notes: Optional[str] = None
    ) -> Goal:
        goal = await self.get_goal(goal_id, current_user)
        milestones: List[dict] = [dict(m) for m in goal.milestones]
        target = next((m for m in milestones if m.get("id") == milestone_id), None)
        if target is None:
            raise_not_found("Milestone", milestone_id)

        target["status"] = status
        target["completed_at"] = datetime.utcnow().isoformat() if status == MilestoneStatuses.COMPLETED else None
        if notes is not None:
            target["notes"] = notes

        progress = milestone_progress(milestones)
        changes = {
            "milestones": milestones,
            "progress": progress,
            "update_log": goal.update_log + [
                self._log_entry("progress", goal.progress, progress, current_user, f"Milestone '{target['title']}' {status}")
            ]
        }
        if progress == 100:
            changes["status"] = GoalStatuses.COMPLETED
        return await self.goal_repo.save(goal, changes)

    async def add_comment(self, goal_id: uuid.UUID, current_user: User, text: str) -> Goal:
        goal = await self.get_goal(goal_id, current_user)
        comment = {
            "id": str(uuid.uuid4()),
            "user_id": str(current_user.id),
            "user_name": current_user.full_name,
            "text": text,
            "created_at": datetime.utcnow().isoformat(),
        }
        return await self.goal_repo.save(goal, {"comments": goal.comments + [comment]})

    async def add_collaborator(self, goal_id: uuid.UUID, current_user: User, user_id: uuid.UUID, role: str) -> Goal:
        goal = await self.get_goal(goal_id, current_user)
        if not await self.user_repo.get_member(user_id, goal.organization_id):
            raise_validation_error("Collaborator must be an active user of this organization", "user_id")
        if str(user_id) in goal.collaborator_ids():
            raise_already_exists("Collaborator", "user_id", str(user_id))
        collaborator = {
            "user_id": str(user_id),
            "role": role,
            "added_at": datetime.utcnow().isoformat(),
        }
        return await self.goal_repo.save(goal, {"collaborators": goal.collaborators + [collaborator]})

    async def link_session(self, goal_id: uuid.UUID, session_id: uuid.UUID, current_user: User) -> Goal:
        goal = await self.get_goal(goal_id, current_user)
        coaching_session = await self.session_repo.get_in_org(session_id, goal.organization_id)
        if not coaching_session:
            raise_not_found("Session", str(session_id))
        if str(session_id) in goal.linked_session_ids:
            raise_already_exists("Linked session", "id", str(session_id))
        return await self.goal_repo.save(goal, {"linked_session_ids": goal.linked_session_ids + [str(session_id)]})
