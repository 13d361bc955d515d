"""
User schemas.
"""
import uuid
from typing import Optional, Literal
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

RoleName = Literal["admin", "manager", "coach", "entrepreneur"]


class UserResponse(BaseModel):
    """User details response."""
    id: uuid.UUID
    email: str
    role: str
    first_name: str
    last_name: str
    organization_id: Optional[uuid.UUID] = None
    hourly_rate: Optional[float] = None
    startup_name: Optional[str] = None
    phone: Optional[str] = None
    timezone: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    """Create a user inside the caller's organization."""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    role: RoleName
    hourly_rate: Optional[float] = Field(None, ge=0)
    startup_name: Optional[str] = None
    phone: Optional[str] = None
    timezone: Optional[str] = None
    is_active: bool = True


class UserUpdate(BaseModel):
    """Update a user. Privileged fields are only honoured for admins/managers."""
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = None
    timezone: Optional[str] = None
    startup_name: Optional[str] = None
    role: Optional[RoleName] = None
    hourly_rate: Optional[float] = Field(None, ge=0)
    is_active: Optional[bool] = None
