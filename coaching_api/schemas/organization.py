"""
Organization schemas for API requests/responses.
"""
import uuid
from typing import Optional, Dict, Any, Literal
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator

from coaching_api.schemas.common import normalize_datetime

PlanName = Literal["free", "standard", "premium"]
SubscriptionStatusName = Literal["trialing", "active", "past_due", "paused", "canceled"]


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class ContactInfo(BaseModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None


class CreateOrganizationRequest(BaseModel):
    """Request to create a new organization (platform admins)."""
    name: str = Field(..., min_length=1, max_length=120)
    slug: Optional[str] = Field(None, max_length=80)  # derived from name when omitted
    subscription_plan: PlanName = "free"
    subscription_status: Optional[SubscriptionStatusName] = None
    subscription_renewal_at: Optional[datetime] = None
    max_users: Optional[int] = Field(None, ge=0)
    max_coaches: Optional[int] = Field(None, ge=0)
    max_entrepreneurs: Optional[int] = Field(None, ge=0)
    billing_email: Optional[EmailStr] = None
    contact: Optional[ContactInfo] = None
    settings: Optional[Dict[str, Any]] = None
    preferences: Optional[Dict[str, Any]] = None

    @field_validator("subscription_renewal_at")
    @classmethod
    def normalize_dates(cls, value):
        return normalize_datetime(value)


class UpdateOrganizationRequest(BaseModel):
    """Request to update organization details."""
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    slug: Optional[str] = Field(None, min_length=1, max_length=80)
    is_active: Optional[bool] = None
    subscription_plan: Optional[PlanName] = None
    subscription_status: Optional[SubscriptionStatusName] = None
    subscription_renewal_at: Optional[datetime] = None
    max_users: Optional[int] = Field(None, ge=0)
    max_coaches: Optional[int] = Field(None, ge=0)
    max_entrepreneurs: Optional[int] = Field(None, ge=0)
    billing_email: Optional[EmailStr] = None
    contact: Optional[ContactInfo] = None
    settings: Optional[Dict[str, Any]] = None
    preferences: Optional[Dict[str, Any]] = None

    @field_validator("subscription_renewal_at")
    @classmethod
    def normalize_dates(cls, value):
        return normalize_datetime(value)


class ManagerSettingsRequest(BaseModel):
    """Settings a manager may change; merged into the existing settings."""
    notification_preferences: Optional[Dict[str, Any]] = None
    dashboard_layout: Optional[Dict[str, Any]] = None
    approval_thresholds: Optional[Dict[str, Any]] = None


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class OrganizationResponse(BaseModel):
    """Organization details response."""
    id: uuid.UUID
    name: str
    slug: str
    is_active: bool
    subscription_plan: str
    subscription_status: str
    subscription_renewal_at: Optional[datetime] = None
    max_users: Optional[int] = None
    max_coaches: Optional[int] = None
    max_entrepreneurs: Optional[int] = None
    billing_email: Optional[str] = None
    contact: Dict[str, Any] = {}
    settings: Dict[str, Any] = {}
    preferences: Dict[str, Any] = {}
    logo_path: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class QuotaUsage(BaseModel):
    used: int
    limit: Optional[int] = None
    percentage: Optional[float] = None


class OrganizationStatsResponse(BaseModel):
    total_users: int
    total_coaches: int
    total_entrepreneurs: int
    total_sessions: int
    total_revenue: float
    subscription_plan: str
    subscription_status: str
    quota_usage: Dict[str, QuotaUsage]
