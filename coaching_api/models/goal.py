"""
Goal model with embedded milestones, comments and collaborators.
"""
import uuid
from datetime import datetime
from typing import Optional, List, Dict, Any

from sqlmodel import SQLModel, Field

from coaching_api.models.columns import json_column


class GoalStatuses:
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"

    ALL = (NOT_STARTED, IN_PROGRESS, COMPLETED, BLOCKED)


class GoalPriorities:
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    ALL = (LOW, MEDIUM, HIGH)


class MilestoneStatuses:
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    ALL = (PENDING, IN_PROGRESS, COMPLETED)


class Goal(SQLModel, table=True):
    """
    A tracked entrepreneur objective.
    Sub-documents are stored as JSON lists; ids inside them are strings.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    organization_id: uuid.UUID = Field(foreign_key="organization.id", index=True)

    entrepreneur_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    coach_id: Optional[uuid.UUID] = Field(default=None, foreign_key="user.id", index=True)

    title: str
    description: Optional[str] = None
    status: str = Field(default=GoalStatuses.NOT_STARTED, index=True)
    priority: str = Field(default=GoalPriorities.MEDIUM, index=True)
    progress: int = Field(default=0)  # 0-100
    target_date: Optional[datetime] = None
    is_archived: bool = Field(default=False, index=True)

    milestones: List[Dict[str, Any]] = Field(default_factory=list, sa_column=json_column())
    # Example: [{"id": "...", "title": "MVP", "status": "pending", "target_date": null,
    #            "completed_at": null, "notes": null}]
    comments: List[Dict[str, Any]] = Field(default_factory=list, sa_column=json_column())
    collaborators: List[Dict[str, Any]] = Field(default_factory=list, sa_column=json_column())
    update_log: List[Dict[str, Any]] = Field(default_factory=list, sa_column=json_column())
    linked_session_ids: List[str] = Field(default_factory=list, sa_column=json_column())

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def collaborator_ids(self) -> List[str]:
        return [c.get("user_id") for c in self.collaborators or []]

    def involves(self, user_id: uuid.UUID) -> bool:
        """True if the user owns, coaches or collaborates on this goal."""
        return (
            self.entrepreneur_id == user_id
            or self.coach_id == user_id
            or str(user_id) in self.collaborator_ids()
        )


def milestone_progress(milestones: List[Dict[str, Any]]) -> int:
    """Percentage of completed milestones, rounded to an integer."""
    if not milestones:
        return 0
    done = sum(1 for m in milestones if m.get("status") == MilestoneStatuses.COMPLETED)
    return round(100 * done / len(milestones))
