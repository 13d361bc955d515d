"""
Authentication API routes.
"""
from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api.config import settings
from coaching_api.database import get_session
from coaching_api.services.auth_service import AuthService
from coaching_api.schemas.auth import (
    RegisterRequest, LoginRequest, TokenResponse, RefreshRequest,
    PasswordResetRequest, VerifyResetTokenRequest, PasswordResetConfirm
)
from coaching_api.schemas.common import MessageResponse
from coaching_api.schemas.user import UserResponse
from coaching_api.api.deps import get_current_user
from coaching_api.models.user import User

router = APIRouter(prefix=f"{settings.API_PREFIX}/auth", tags=["auth"])


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    request: RegisterRequest,
    session: AsyncSession = Depends(get_session)
):
    """Register a new user, optionally inside an existing organization."""
    auth_service = AuthService(session)
    return await auth_service.register(
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
        role=request.role,
        organization_id=request.organization_id,
        hourly_rate=request.hourly_rate,
        startup_name=request.startup_name,
        phone=request.phone,
        timezone=request.timezone
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    session: AsyncSession = Depends(get_session)
):
    """Login and get access + refresh tokens."""
    auth_service = AuthService(session)
    return await auth_service.login(request.email, request.password)


# OAuth2 password form, used by the interactive docs
@router.post("/token", response_model=TokenResponse)
async def token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: AsyncSession = Depends(get_session)
):
    """Login (form-encoded alias for /login)."""
    auth_service = AuthService(session)
    return await auth_service.login(form_data.username, form_data.password)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    request: RefreshRequest,
    session: AsyncSession = Depends(get_session)
):
    """Exchange a refresh token for a new token pair."""
    auth_service = AuthService(session)
    return await auth_service.refresh(request.refresh_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """Logout everywhere by revoking all issued tokens."""
    auth_service = AuthService(session)
    await auth_service.logout(current_user)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)):
    """Get current user profile."""
    return current_user


@router.post("/forgot-password")
async def forgot_password(
    request: PasswordResetRequest,
    session: AsyncSession = Depends(get_session)
):
    """Request password reset."""
    auth_service = AuthService(session)
    # In DEV_MODE, also includes _dev_reset_token for testing
    return await auth_service.forgot_password(request.email)


@router.post("/verify-reset-token", response_model=MessageResponse)
async def verify_reset_token(
    request: VerifyResetTokenRequest,
    session: AsyncSession = Depends(get_session)
):
    """Check a reset token without consuming it."""
    auth_service = AuthService(session)
    await auth_service.verify_reset_token(request.email, request.token)
    return MessageResponse(message="Reset token is valid")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    request: PasswordResetConfirm,
    session: AsyncSession = Depends(get_session)
):
    """Reset password using token."""
    auth_service = AuthService(session)
    await auth_service.reset_password(request.email, request.token, request.new_password)
    return MessageResponse(message="Password reset successfully")
