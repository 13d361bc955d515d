"""
Coaching session model.
"""
import uuid
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any

from sqlalchemy import and_
from sqlmodel import SQLModel, Field

from coaching_api.models.columns import json_column


class SessionStatuses:
    SCHEDULED = "scheduled"
    RESCHEDULED = "rescheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"

    ALL = (SCHEDULED, RESCHEDULED, IN_PROGRESS, COMPLETED, CANCELLED, NO_SHOW)
    # Statuses that occupy the coach's calendar
    ACTIVE = (SCHEDULED, RESCHEDULED, IN_PROGRESS)


class CoachingSession(SQLModel, table=True):
    """
    A scheduled meeting between a coach and an entrepreneur.
    ``end_time`` is always ``scheduled_at + duration`` minutes.
    """
    __tablename__ = "coaching_session"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    organization_id: uuid.UUID = Field(foreign_key="organization.id", index=True)

    # Participants
    coach_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    entrepreneur_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    manager_id: Optional[uuid.UUID] = Field(default=None, foreign_key="user.id")

    # Schedule window
    scheduled_at: datetime = Field(index=True)
    end_time: datetime = Field(index=True)
    duration: int  # minutes

    status: str = Field(default=SessionStatuses.SCHEDULED, index=True)

    # Content
    agenda_items: List[Dict[str, Any]] = Field(default_factory=list, sa_column=json_column())
    # Example: [{"title": "Pitch review", "description": "...", "duration": 20}]
    notes: Dict[str, Any] = Field(default_factory=dict, sa_column=json_column())
    location: Optional[str] = None
    video_conference_url: Optional[str] = None
    rating: Optional[Dict[str, Any]] = Field(default=None, sa_column=json_column(nullable=True))

    # Billing: set once the session is included in a payment
    payment_id: Optional[uuid.UUID] = Field(default=None, foreign_key="payment.id", index=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @staticmethod
    def compute_end(scheduled_at: datetime, duration: int) -> datetime:
        return scheduled_at + timedelta(minutes=duration)

    @classmethod
    def overlapping(cls, start: datetime, end: datetime):
        """
        Clause matching sessions whose [scheduled_at, end_time) window
        overlaps [start, end). Touching windows do not overlap.
        """
        return and_(cls.scheduled_at < end, cls.end_time > start)

    @property
    def is_billed(self) -> bool:
        return self.payment_id is not None

