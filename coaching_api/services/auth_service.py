"""
Authentication service - handles all auth operations.
"""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api.config import settings
from coaching_api.core.security import (
    get_password_hash,
    verify_password,
    create_access_token,
    create_refresh_token,
    verify_token,
    hash_token,
    tokens_match,
    generate_secure_token
)
from coaching_api.core.exceptions import (
    raise_already_exists,
    raise_unauthorized,
    raise_forbidden,
    raise_bad_request,
    raise_validation_error
)
from coaching_api.repositories.user_repo import UserRepository
from coaching_api.models.user import User, Roles
from coaching_api.models.activity import ActivityTypes
from coaching_api.services.activity_service import ActivityService
from coaching_api.services.org_service import OrganizationService
from coaching_api.services.email_service import get_email_service

logger = logging.getLogger(__name__)

RESET_REQUEST_MESSAGE = "If an account with that email exists, a password reset link has been sent"


def validate_role_fields(role: str, hourly_rate: Optional[float], startup_name: Optional[str]) -> None:
    """Coaches are billed by hourly rate; entrepreneurs are identified by startup."""
    if role == Roles.COACH and hourly_rate is None:
        raise_validation_error("Coaches require an hourly rate", "hourly_rate")
    if role == Roles.ENTREPRENEUR and not startup_name:
        raise_validation_error("Entrepreneurs require a startup name", "startup_name")


class AuthService:
    """Service for authentication operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repo = UserRepository(session)
        self.org_service = OrganizationService(session)
        self.activity_service = ActivityService(session)
        self.email_service = get_email_service()

    async def _issue_tokens(self, user: User) -> dict:
        """Mint an access/refresh pair and store the refresh digest (rotation)."""
        access_token = create_access_token({
            "sub": str(user.id),
            "email": user.email,
            "role": user.role,
            "org_id": str(user.organization_id) if user.organization_id else None,
            "tv": user.token_version
        })
        refresh_token = create_refresh_token({
            "sub": str(user.id),
            "tv": user.token_version
        })
        user = await self.user_repo.save(user, {"refresh_token_hash": hash_token(refresh_token)})

        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            "user": user
        }

    async def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: str,
        organization_id: Optional[uuid.UUID] = None,
        hourly_rate: Optional[float] = None,
        startup_name: Optional[str] = None,
        phone: Optional[str] = None,
        timezone: Optional[str] = None
    ) -> dict:
        """Register a new user, optionally inside an existing organization."""
        email = email.lower()
        existing = await self.user_repo.get_by_email(email)
        if existing:
            raise_already_exists("User", "email", email)

        if role == Roles.ADMIN and not settings.DEV_MODE:
            raise_forbidden("Admin accounts cannot be self-registered")
        if role != Roles.ADMIN and organization_id is None:
            raise_validation_error("An organization is required for this role", "organization_id")
        validate_role_fields(role, hourly_rate, startup_name)

        if organization_id is not None:
            org = await self.org_service.get_active_organization(organization_id)
            await self.org_service.check_quota(org, role)

        user = await self.user_repo.create({
            "email": email,
            "password_hash": get_password_hash(password),
            "role": role,
            "first_name": first_name,
            "last_name": last_name,
            "organization_id": organization_id,
            "hourly_rate": hourly_rate,
            "startup_name": startup_name,
            "phone": phone,
            "timezone": timezone
        })

        await self.activity_service.log(
            ActivityTypes.USER_REGISTERED,
            f"{user.full_name} registered as {role}",
            user=user
        )
        return await self._issue_tokens(user)

    async def login(self, email: str, password: str) -> dict:
        """Authenticate user and return tokens."""
        user = await self.user_repo.get_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise_unauthorized("Incorrect email or password")

        if not user.is_active:
            raise_unauthorized("User account is deactivated")

        await self.user_repo.update_last_login(user)
        return await self._issue_tokens(user)

    async def refresh(self, refresh_token: str) -> dict:
        """Rotate a refresh token: the presented one stops working."""
        payload = verify_token(refresh_token, "refresh")
        if not payload:
            raise_unauthorized("Invalid or expired refresh token")

        try:
            user = await self.user_repo.get(uuid.UUID(payload.get("sub", "")))
        except ValueError:
            user = None
        if not user or not user.is_active:
            raise_unauthorized("Invalid or expired refresh token")

        if payload.get("tv") != user.token_version or not tokens_match(refresh_token, user.refresh_token_hash):
            raise_unauthorized("Refresh token has been revoked")

        return await self._issue_tokens(user)

    async def logout(self, user: User) -> None:
        """Invalidate every token issued to the user."""
        await self.user_repo.save(user, {
            "token_version": user.token_version + 1,
            "refresh_token_hash": None
        })

    async def forgot_password(self, email: str) -> dict:
        """Initiate password reset flow."""
        response = {"message": RESET_REQUEST_MESSAGE}

        user = await self.user_repo.get_by_email(email)
        if not user or not user.is_active:
            # Don't reveal if email exists
            return response

        token = generate_secure_token()
        await self.user_repo.save(user, {
            "reset_password_token_hash": hash_token(token),
            "reset_password_expires": datetime.utcnow() + timedelta(
                minutes=settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES
            )
        })

        await self.email_service.send_password_reset_email(
            to=user.email,
            token=token,
            base_url=settings.FRONTEND_URL
        )

        # In DEV_MODE, include the token for easy testing
        if settings.DEV_MODE:
            response["_dev_reset_token"] = token

        return response

    async def _user_for_reset_token(self, email: str, token: str) -> User:
        user = await self.user_repo.get_by_email(email)
        if (
            not user
            or not user.reset_password_expires
            or user.reset_password_expires < datetime.utcnow()
            or not tokens_match(token, user.reset_password_token_hash)
        ):
            raise_bad_request("Invalid or expired reset token")
        return user

    async def verify_reset_token(self, email: str, token: str) -> bool:
        await self._user_for_reset_token(email, token)
        return True

    async def reset_password(self, email: str, token: str, new_password: str) -> None:
        """Reset password using token; every session of the user is signed out."""
        user = await self._user_for_reset_token(email, token)
        await self.user_repo.save(user, {
            "password_hash": get_password_hash(new_password),
            "reset_password_token_hash": None,
            "reset_password_expires": None,
            "refresh_token_hash": None,
            "token_version": user.token_version + 1
        })
        logger.info(f"Password reset for user {user.id}")
