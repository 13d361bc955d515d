"""
User and Organization models.
Every user belongs to exactly one organization (tenant); an admin
without an organization is a platform admin.
"""
import uuid
from datetime import datetime
from typing import Optional, Dict, Any

from sqlmodel import SQLModel, Field

from coaching_api.models.columns import json_column


class Roles:
    ADMIN = "admin"
    MANAGER = "manager"
    COACH = "coach"
    ENTREPRENEUR = "entrepreneur"

    ALL = (ADMIN, MANAGER, COACH, ENTREPRENEUR)
    STAFF = (ADMIN, MANAGER)


class SubscriptionPlans:
    FREE = "free"
    STANDARD = "standard"
    PREMIUM = "premium"

    ALL = (FREE, STANDARD, PREMIUM)


class SubscriptionStatuses:
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    PAUSED = "paused"
    CANCELED = "canceled"

    ALL = (TRIALING, ACTIVE, PAST_DUE, PAUSED, CANCELED)


class Organization(SQLModel, table=True):
    """
    Organization/Tenant model.
    All resources are scoped to an organization.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(index=True)
    slug: str = Field(unique=True, index=True)
    is_active: bool = Field(default=True, index=True)

    # Subscription
    subscription_plan: str = Field(default=SubscriptionPlans.FREE, index=True)
    subscription_status: str = Field(default=SubscriptionStatuses.ACTIVE, index=True)
    subscription_renewal_at: Optional[datetime] = None

    # Quotas (None = unlimited)
    max_users: Optional[int] = None
    max_coaches: Optional[int] = None
    max_entrepreneurs: Optional[int] = None

    # Contact and branding
    billing_email: Optional[str] = None
    contact: Dict[str, Any] = Field(default_factory=dict, sa_column=json_column())
    logo_path: Optional[str] = None

    # Free-form configuration
    settings: Dict[str, Any] = Field(default_factory=dict, sa_column=json_column())
    preferences: Dict[str, Any] = Field(default_factory=dict, sa_column=json_column())

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class User(SQLModel, table=True):
    """
    User model with authentication and role-scoped profile info.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    organization_id: Optional[uuid.UUID] = Field(default=None, foreign_key="organization.id", index=True)

    # Auth
    email: str = Field(unique=True, index=True)
    password_hash: str
    role: str = Field(index=True)  # admin, manager, coach, entrepreneur

    # Profile
    first_name: str
    last_name: str
    phone: Optional[str] = None
    timezone: Optional[str] = None
    hourly_rate: Optional[float] = None  # coaches
    startup_name: Optional[str] = None  # entrepreneurs

    is_active: bool = Field(default=True, index=True)

    # Token invalidation: every issued token carries the version it was minted with
    token_version: int = Field(default=0)
    refresh_token_hash: Optional[str] = None
    reset_password_token_hash: Optional[str] = None
    reset_password_expires: Optional[datetime] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    last_login_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_platform_admin(self) -> bool:
        return self.role == Roles.ADMIN and self.organization_id is None
