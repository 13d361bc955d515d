"""
Authentication schemas.
"""
import uuid
from typing import Optional, Literal
from pydantic import BaseModel, EmailStr, Field

from coaching_api.schemas.user import UserResponse


class RegisterRequest(BaseModel):
    """User registration request."""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    role: Literal["admin", "manager", "coach", "entrepreneur"] = "entrepreneur"
    organization_id: Optional[uuid.UUID] = None
    hourly_rate: Optional[float] = Field(None, ge=0)
    startup_name: Optional[str] = None
    phone: Optional[str] = None
    timezone: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "email": "coach@acme.io",
                "password": "securepassword123",
                "first_name": "Jane",
                "last_name": "Doe",
                "role": "coach",
                "organization_id": "6f1c8f0e-3a5b-4b8e-9a49-8b7f4f1c2d3e",
                "hourly_rate": 120
            }
        }


class LoginRequest(BaseModel):
    """User login request."""
    email: EmailStr
    password: str

    class Config:
        json_schema_extra = {
            "example": {
                "email": "coach@acme.io",
                "password": "securepassword123"
            }
        }


class TokenResponse(BaseModel):
    """Token response after login, registration or refresh."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: UserResponse


class RefreshRequest(BaseModel):
    """Refresh token request."""
    refresh_token: str


class PasswordResetRequest(BaseModel):
    """Request password reset."""
    email: EmailStr


class VerifyResetTokenRequest(BaseModel):
    """Check a reset token before asking for a new password."""
    email: EmailStr
    token: str


class PasswordResetConfirm(BaseModel):
    """Confirm password reset with token."""
    email: EmailStr
    token: str
    new_password: str = Field(..., min_length=8, max_length=128)
