"""
Activity feed schemas.
"""
import uuid
from typing import Optional, List, Dict, Any
from datetime import datetime
from pydantic import BaseModel


class ActivityResponse(BaseModel):
    id: uuid.UUID
    organization_id: Optional[uuid.UUID] = None
    activity_type: str
    user_id: Optional[uuid.UUID] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    user_role: Optional[str] = None
    session_id: Optional[uuid.UUID] = None
    payment_id: Optional[uuid.UUID] = None
    amount: Optional[float] = None
    description: str
    meta_data: Dict[str, Any] = {}
    created_at: datetime

    class Config:
        from_attributes = True


class FeedPagination(BaseModel):
    total: int
    limit: int
    skip: int
    has_more: bool


class ActivityFeedResponse(BaseModel):
    items: List[ActivityResponse]
    pagination: FeedPagination
