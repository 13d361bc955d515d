"""
Activity model - append-only audit trail of domain events.
Feeds the admin activity feed and its statistics.
"""
import uuid
from datetime import datetime
from typing import Optional, Dict, Any

from sqlmodel import SQLModel, Field

from coaching_api.models.columns import json_column


class Activity(SQLModel, table=True):
    """
    Audit record for a significant action.
    User details are denormalised so entries survive later profile edits.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    organization_id: Optional[uuid.UUID] = Field(default=None, foreign_key="organization.id", index=True)
    activity_type: str = Field(index=True)

    # Actor
    user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="user.id", index=True)
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    user_role: Optional[str] = None

    # Subject
    session_id: Optional[uuid.UUID] = None
    payment_id: Optional[uuid.UUID] = None
    amount: Optional[float] = None

    description: str

    # Additional metadata
    meta_data: Dict[str, Any] = Field(default_factory=dict, sa_column=json_column())

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)


# Activity type constants for consistency
class ActivityTypes:
    USER_REGISTERED = "USER_REGISTERED"
    USER_ACTIVATED = "USER_ACTIVATED"
    USER_DEACTIVATED = "USER_DEACTIVATED"

    SESSION_CREATED = "SESSION_CREATED"
    SESSION_COMPLETED = "SESSION_COMPLETED"
    SESSION_CANCELLED = "SESSION_CANCELLED"

    PAYMENT_GENERATED = "PAYMENT_GENERATED"
    PAYMENT_COMPLETED = "PAYMENT_COMPLETED"

    ORGANIZATION_CREATED = "ORGANIZATION_CREATED"
    ORGANIZATION_UPDATED = "ORGANIZATION_UPDATED"

    ALL = (
        USER_REGISTERED, USER_ACTIVATED, USER_DEACTIVATED,
        SESSION_CREATED, SESSION_COMPLETED, SESSION_CANCELLED,
        PAYMENT_GENERATED, PAYMENT_COMPLETED,
        ORGANIZATION_CREATED, ORGANIZATION_UPDATED,
    )
