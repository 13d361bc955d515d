"""
Coaching session schemas.
"""
import uuid
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from coaching_api.schemas.common import normalize_datetime

SessionStatusName = Literal["scheduled", "rescheduled", "in_progress", "completed", "cancelled", "no_show"]


class AgendaItem(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    duration: Optional[int] = Field(None, ge=1, le=480)  # minutes


class SessionCreate(BaseModel):
    """Book a session."""
    coach_id: uuid.UUID
    entrepreneur_id: uuid.UUID
    manager_id: Optional[uuid.UUID] = None
    scheduled_at: datetime
    duration: int = Field(60, ge=15, le=480)
    agenda_items: List[AgendaItem] = []
    notes: Optional[Dict[str, Any]] = None
    location: Optional[str] = None
    video_conference_url: Optional[str] = None

    @field_validator("scheduled_at")
    @classmethod
    def normalize_dates(cls, value):
        return normalize_datetime(value)

    class Config:
        json_schema_extra = {
            "example": {
                "coach_id": "2b6c1f0e-3a5b-4b8e-9a49-8b7f4f1c2d3e",
                "entrepreneur_id": "9d1c8f0e-3a5b-4b8e-9a49-8b7f4f1c2d3e",
                "scheduled_at": "2026-11-03T15:00:00Z",
                "duration": 60,
                "agenda_items": [{"title": "Pitch review", "duration": 30}]
            }
        }


class SessionUpdate(BaseModel):
    """Reschedule or edit a session."""
    scheduled_at: Optional[datetime] = None
    duration: Optional[int] = Field(None, ge=15, le=480)
    status: Optional[SessionStatusName] = None
    manager_id: Optional[uuid.UUID] = None
    agenda_items: Optional[List[AgendaItem]] = None
    notes: Optional[Dict[str, Any]] = None
    location: Optional[str] = None
    video_conference_url: Optional[str] = None

    @field_validator("scheduled_at")
    @classmethod
    def normalize_dates(cls, value):
        return normalize_datetime(value)


class ConflictCheckRequest(BaseModel):
    coach_id: uuid.UUID
    scheduled_at: datetime
    duration: int = Field(60, ge=15, le=480)
    exclude_session_id: Optional[uuid.UUID] = None

    @field_validator("scheduled_at")
    @classmethod
    def normalize_dates(cls, value):
        return normalize_datetime(value)


class RateSessionRequest(BaseModel):
    score: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class SessionResponse(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    coach_id: uuid.UUID
    entrepreneur_id: uuid.UUID
    manager_id: Optional[uuid.UUID] = None
    scheduled_at: datetime
    end_time: datetime
    duration: int
    status: str
    agenda_items: List[Dict[str, Any]] = []
    notes: Dict[str, Any] = {}
    location: Optional[str] = None
    video_conference_url: Optional[str] = None
    rating: Optional[Dict[str, Any]] = None
    payment_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ConflictCheckResponse(BaseModel):
    has_conflict: bool
    conflicting_session: Optional[SessionResponse] = None


class CalendarResponse(BaseModel):
    month: int
    year: int
    total: int
    days: Dict[str, List[SessionResponse]]
