"""
Goal schemas.
"""
import uuid
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from coaching_api.schemas.common import normalize_datetime

GoalStatusName = Literal["not_started", "in_progress", "completed", "blocked"]
GoalPriorityName = Literal["low", "medium", "high"]
MilestoneStatusName = Literal["pending", "in_progress", "completed"]


class MilestoneCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    status: MilestoneStatusName = "pending"
    target_date: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("target_date")
    @classmethod
    def normalize_dates(cls, value):
        return normalize_datetime(value)


class GoalCreate(BaseModel):
    entrepreneur_id: uuid.UUID
    coach_id: Optional[uuid.UUID] = None
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    status: GoalStatusName = "not_started"
    priority: GoalPriorityName = "medium"
    progress: int = Field(0, ge=0, le=100)
    target_date: Optional[datetime] = None
    milestones: List[MilestoneCreate] = []

    @field_validator("target_date")
    @classmethod
    def normalize_dates(cls, value):
        return normalize_datetime(value)


class GoalUpdate(BaseModel):
    entrepreneur_id: Optional[uuid.UUID] = None
    coach_id: Optional[uuid.UUID] = None
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    status: Optional[GoalStatusName] = None
    priority: Optional[GoalPriorityName] = None
    target_date: Optional[datetime] = None
    is_archived: Optional[bool] = None
    milestones: Optional[List[MilestoneCreate]] = None

    @field_validator("target_date")
    @classmethod
    def normalize_dates(cls, value):
        return normalize_datetime(value)


class ProgressUpdate(BaseModel):
    progress: int = Field(..., ge=0, le=100)
    note: Optional[str] = None


class MilestoneUpdate(BaseModel):
    status: MilestoneStatusName
    notes: Optional[str] = None


class CommentCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=5000)


class CollaboratorCreate(BaseModel):
    user_id: uuid.UUID
    role: str = Field("contributor", min_length=1, max_length=50)


class GoalResponse(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    entrepreneur_id: uuid.UUID
    coach_id: Optional[uuid.UUID] = None
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    progress: int
    target_date: Optional[datetime] = None
    is_archived: bool
    milestones: List[Dict[str, Any]] = []
    comments: List[Dict[str, Any]] = []
    collaborators: List[Dict[str, Any]] = []
    update_log: List[Dict[str, Any]] = []
    linked_session_ids: List[str] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
